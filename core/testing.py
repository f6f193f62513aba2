"""In-process stand-in for the remote backend, used by the app test suites.

Routes are registered per ``(method, path)``; every request is recorded so
tests can assert on what was (or was not) called.
"""

import json
from contextlib import contextmanager
from dataclasses import dataclass, field
from unittest import mock

import httpx
from django.test import override_settings

from .backend import BackendClient

BASE_URL = 'https://backend.test'


@dataclass
class Call:
    method: str
    path: str
    params: dict = field(default_factory=dict)
    json: object = None
    content: bytes = b''
    headers: dict = field(default_factory=dict)

    @property
    def is_multipart(self):
        return self.headers.get('content-type', '').startswith('multipart/form-data')


class FakeBackend:
    """Route table + call log behind an ``httpx.MockTransport``.

    A reply is a JSON-able body sent with ``status``, a callable
    ``reply(call)`` returning a body or a ``(status, body)`` tuple, or an
    ``httpx.TransportError`` subclass raised as a network failure. Passing
    ``sequence=[...]`` serves one reply per call; the last one repeats.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.transport = httpx.MockTransport(self._handle)

    def on(self, method, path, reply=None, status=200, sequence=None):
        replies = list(sequence) if sequence is not None else [reply]
        self.routes[(method.upper(), path)] = [
            r if _is_active(r) else (status, r) for r in replies
        ]
        return self

    def fail(self, method, path, status=500, message='Internal error'):
        return self.on(method, path, {'message': message}, status=status)

    def calls_to(self, method, path):
        return [c for c in self.calls if c.method == method.upper() and c.path == path]

    def called(self, method, path):
        return bool(self.calls_to(method, path))

    def client(self, token=None):
        return BackendClient(base_url=BASE_URL, token=token, transport=self.transport)

    @contextmanager
    def installed(self):
        """Make ``BackendClient.from_settings`` talk to this fake."""
        with mock.patch('core.backend.default_transport', return_value=self.transport), \
                override_settings(BACKEND_API={'BASE_URL': BASE_URL, 'TIMEOUT': 5.0}):
            yield self

    def _handle(self, request):
        content = request.content or b''
        body = None
        if request.headers.get('content-type', '').startswith('application/json') and content:
            body = json.loads(content)
        call = Call(
            method=request.method,
            path=request.url.path,
            params=dict(request.url.params),
            json=body,
            content=content,
            headers={k.lower(): v for k, v in request.headers.items()},
        )
        self.calls.append(call)

        replies = self.routes.get((call.method, call.path))
        if not replies:
            return httpx.Response(404, json={'message': f'No route for {call.method} {call.path}'})
        reply = replies.pop(0) if len(replies) > 1 else replies[0]

        if isinstance(reply, type) and issubclass(reply, httpx.TransportError):
            raise reply('simulated network failure', request=request)
        if callable(reply):
            reply = reply(call)
            if not (isinstance(reply, tuple) and len(reply) == 2 and isinstance(reply[0], int)):
                reply = (200, reply)
        status, payload = reply
        if payload is None:
            return httpx.Response(status)
        return httpx.Response(status, json=payload)


def _is_active(reply):
    return callable(reply)
