"""Test setup helpers."""
from __future__ import annotations

import json
import sys
from pathlib import Path
from urllib.parse import urlparse

import pytest

# Ensure project root is on sys.path for apps.console imports.
PROJECT_ROOT = Path(__file__).resolve().parents[3]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


API_PREFIX = '/api'


class FakeResponse:
    def __init__(self, status_code=200, payload=None, raw=None):
        self.status_code = status_code
        self._payload = payload
        if raw is not None:
            self.content = raw
        elif payload is None:
            self.content = b''
        else:
            self.content = json.dumps(payload).encode('utf-8')
        self.closed = False

    def json(self):
        if self._payload is None:
            return json.loads(self.content.decode('utf-8'))
        return self._payload

    def close(self):
        self.closed = True


class FakeSession:
    """Stand-in for requests.Session serving canned records API replies.

    Routes are keyed by (METHOD, path) with the ``/api`` prefix removed. A
    route may hold a FakeResponse, a list of them (served in order, the last
    one repeating), an exception to raise, or a callable taking the call
    record and returning any of those.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.closed = False

    def add(self, method, path, payload=None, status=200, response=None):
        self.routes[(method.upper(), path)] = response if response is not None else FakeResponse(status, payload)
        return self

    def request(self, method, url, headers=None, **kwargs):
        path = urlparse(url).path
        if path.startswith(API_PREFIX):
            path = path[len(API_PREFIX):]
        call = {'method': method.upper(), 'path': path, 'headers': dict(headers or {}), **kwargs}
        self.calls.append(call)

        result = self.routes.get((method.upper(), path))
        if callable(result) and not isinstance(result, FakeResponse):
            result = result(call)
        if isinstance(result, list):
            result = result.pop(0) if len(result) > 1 else result[0]
        if isinstance(result, Exception):
            raise result
        if result is None:
            return FakeResponse(404, {'message': 'Not found'})
        return result

    def respond(self, payload=None, status=200):
        return FakeResponse(status, payload)

    def calls_to(self, method, path):
        return [c for c in self.calls if c['method'] == method.upper() and c['path'] == path]

    def close(self):
        self.closed = True


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def app(fake_session):
    from apps.console.app import create_app
    from apps.console.config import TestingConfig

    return create_app(TestingConfig, session_factory=lambda: fake_session)


@pytest.fixture
def client(app):
    return app.test_client()
