"""Shared fixtures for VaultShell tests.

Qt widgets are created offscreen so the suite runs on headless machines.
Backend traffic goes through httpx.MockTransport backed by FakeBackend.
"""

import json
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import httpx
import pytest

from vaultshell.client import BackendClient

BASE_URL = "http://backend.test"


class FakeBackend:
    """Scriptable stand-in for the vault backend; records every request."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def route(self, method, path, status=200, json=None, error=None):
        self.routes[(method, path)] = (status, json, error)

    def paths(self):
        return [path for _, path, _ in self.calls]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = None
        if request.content:
            body = json.loads(request.content)
        self.calls.append((request.method, request.url.path, body))

        status, payload, error = self.routes.get(
            (request.method, request.url.path), (404, {"message": "Not found"}, None)
        )
        if error is not None:
            raise error(f"cannot reach {request.url}", request=request)
        return httpx.Response(status, json=payload)


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def client(fake_backend):
    return BackendClient(BASE_URL, transport=httpx.MockTransport(fake_backend))
