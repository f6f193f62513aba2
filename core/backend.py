"""Async HTTP access to the remote business backend.

Every app talks to the backend through :class:`BackendClient`; it owns the
``httpx.AsyncClient``, forwards the caller's bearer token and turns transport
and HTTP failures into :class:`core.exceptions.NetworkError`.
"""

import logging

import httpx
from django.conf import settings

from .exceptions import NetworkError

logger = logging.getLogger(__name__)


def default_transport():
    """Transport used for new clients; ``None`` lets httpx pick its own."""
    return None


def _error_message(response):
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        msg = body.get('message') or body.get('detail') or body.get('error')
        if isinstance(msg, list):
            msg = '; '.join(str(m) for m in msg)
        if msg:
            return str(msg), body
    return f'Backend answered {response.status_code} for {response.request.method} {response.request.url.path}', body


class BackendClient:
    """Thin JSON client over ``httpx.AsyncClient``.

    Use as an async context manager::

        async with BackendClient.from_settings(token=token) as backend:
            order = await backend.get('/client-orders/42')
    """

    def __init__(self, base_url, token=None, timeout=15.0, transport=None):
        self.base_url = str(base_url or '').rstrip('/')
        self.token = token
        self.timeout = timeout
        self._transport = transport
        self._client = None

    @classmethod
    def from_settings(cls, token=None):
        conf = settings.BACKEND_API
        return cls(
            base_url=conf['BASE_URL'],
            token=token,
            timeout=conf.get('TIMEOUT', 15.0),
            transport=default_transport(),
        )

    async def __aenter__(self):
        headers = {'Accept': 'application/json'}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        kwargs = {'base_url': self.base_url, 'headers': headers, 'timeout': self.timeout}
        if self._transport is not None:
            kwargs['transport'] = self._transport
        self._client = httpx.AsyncClient(**kwargs)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self._client.aclose()
        self._client = None

    async def request(self, method, path, *, params=None, json=None, data=None, files=None):
        """Send one request and return the decoded JSON body (``None`` when empty)."""
        if self._client is None:
            raise RuntimeError('BackendClient must be used inside "async with".')

        if params:
            params = {k: v for k, v in params.items() if v not in (None, '')}

        try:
            response = await self._client.request(method, path, params=params, json=json, data=data, files=files)
        except httpx.TimeoutException as exc:
            logger.error('Timeout calling backend %s %s', method, path)
            raise NetworkError(f'Timed out calling {method} {path}.') from exc
        except httpx.TransportError as exc:
            logger.error('Transport error calling backend %s %s: %s', method, path, exc)
            raise NetworkError(f'Could not reach backend for {method} {path}.') from exc

        if response.status_code == 401:
            logger.warning('Backend rejected the token (invalid or expired) on %s %s', method, path)

        if response.is_error:
            message, body = _error_message(response)
            logger.error('Backend error %s on %s %s: %s', response.status_code, method, path, message)
            raise NetworkError(message, status_code=response.status_code, payload=body)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    async def get(self, path, params=None):
        return await self.request('GET', path, params=params)

    async def post(self, path, json=None, **kwargs):
        return await self.request('POST', path, json=json, **kwargs)

    async def patch(self, path, json=None):
        return await self.request('PATCH', path, json=json)

    async def delete(self, path):
        return await self.request('DELETE', path)

    def absolute_url(self, url):
        """Resolve a stored file reference (absolute URL, path or bare filename)."""
        if not url:
            return None
        url = str(url)
        if url.lower().startswith(('http://', 'https://')):
            return url
        if not self.base_url:
            return url
        if not url.startswith('/'):
            return f'{self.base_url}/uploads/{url}'
        return f'{self.base_url}{url}'
