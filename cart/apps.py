"""Cart app configuration and signal registration."""

from django.apps import AppConfig


class CartConfig(AppConfig):
    """Django app config for the cart domain; registers signal handlers."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'cart'

    def ready(self):
        import cart.signals  # noqa: F401
