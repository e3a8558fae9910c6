"""Shared fixtures: an in-memory client talking to a mock identity platform"""

import base64
import json
import time
from urllib.parse import parse_qs

import httpx
import pytest

from config.client_config import AppKitConfig, StorageBackend
from oauth import TokenSet
from oauth.client import AppKit

DOMAIN = "https://id.example.com"
CLIENT_ID = "c1"
REDIRECT_URI = "https://app/cb"


def make_id_token(claims):
    def encode(part):
        raw = json.dumps(part).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    return f"{encode({'alg': 'none'})}.{encode(claims)}.sig"


class MockPlatform:
    """Records requests and answers them from a route table"""

    def __init__(self):
        self.requests = []
        self.routes = {}

    def route(self, method, path, handler):
        self.routes[(method, path)] = handler

    def json(self, method, path, payload, status=200):
        self.route(method, path, lambda request: httpx.Response(status, json=payload))

    def calls(self, path):
        return [r for r in self.requests if r.url.path == path]

    def form(self, request):
        return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}

    async def __call__(self, request):
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"error": "not_found"})
        result = handler(request)
        if hasattr(result, "__await__"):
            result = await result
        return result


@pytest.fixture
def platform():
    return MockPlatform()


@pytest.fixture
def navigated():
    return []


@pytest.fixture
def config(platform, navigated):
    return AppKitConfig(
        domain=DOMAIN,
        client_id=CLIENT_ID,
        redirect_uri=REDIRECT_URI,
        storage=StorageBackend.MEMORY,
        transport=httpx.MockTransport(platform),
        auto_refresh=False,
        navigator=navigated.append,
    )


@pytest.fixture
def kit(config):
    return AppKit(config)


def token_set(expires_in=3600.0, refresh_token="R1", access_token="A1", **kwargs):
    return TokenSet(
        access_token=access_token,
        expires_at=time.time() + expires_in,
        refresh_token=refresh_token,
        **kwargs,
    )
