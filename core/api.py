"""Glue between the synchronous DRF views and the async backend services."""

import logging

from asgiref.sync import async_to_sync
from rest_framework import status
from rest_framework.response import Response

from accounts.session import SessionContext

from .backend import BackendClient
from .exceptions import (
    FulfillmentError,
    InsufficientStockError,
    NetworkError,
    UnexpectedShapeError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def error_status(exc):
    """HTTP status for a fulfillment error raised while serving a request."""
    if isinstance(exc, (ValidationError, InsufficientStockError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, NetworkError):
        if exc.status_code and 400 <= exc.status_code < 500:
            return exc.status_code
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, UnexpectedShapeError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_payload(exc):
    data = {'detail': exc.message}
    if isinstance(exc, InsufficientStockError):
        data['shortages'] = [
            {'product': name, 'requested': requested, 'available': available}
            for name, requested, available in exc.shortages
        ]
    return data


class BackendAPIMixin:
    """DRF view mixin: run a coroutine against the backend, map errors to responses."""

    def session_context(self, request):
        return SessionContext.from_request(request)

    def call_backend(self, request, func, *args, **kwargs):
        """Run ``await func(backend, session, *args, **kwargs)`` to completion."""
        session = self.session_context(request)

        async def runner():
            async with BackendClient.from_settings(token=session.token) as backend:
                return await func(backend, session, *args, **kwargs)

        return async_to_sync(runner)()

    def handle_exception(self, exc):
        if isinstance(exc, FulfillmentError):
            code = error_status(exc)
            if code >= 500:
                logger.error('%s %s failed: %s', self.request.method, self.request.path, exc.message)
            return Response(error_payload(exc), status=code)
        return super().handle_exception(exc)
