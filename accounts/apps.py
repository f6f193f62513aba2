"""Accounts app configuration."""

from django.apps import AppConfig


class AccountsConfig(AppConfig):
    """Django app config for session context and company/customer lookups."""

    name = 'accounts'
