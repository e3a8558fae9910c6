import socket

import aiohttp
import pytest

from oauth.callback_server import OAuthCallbackServer


def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_rejects_non_loopback_redirect():
    with pytest.raises(ValueError):
        OAuthCallbackServer("https://app.example.com/callback")


@pytest.mark.asyncio
async def test_captures_first_redirect():
    port = free_port()
    redirect_uri = f"http://127.0.0.1:{port}/callback"

    async with OAuthCallbackServer(redirect_uri) as server:
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{redirect_uri}?code=ABC&state=S1") as response:
                assert response.status == 200
                assert "Authentication complete" in await response.text()
            async with session.get(f"{redirect_uri}?code=OTHER&state=S2") as response:
                assert response.status == 200

        url = await server.wait_for_callback(timeout=1)

    assert url == f"{redirect_uri}?code=ABC&state=S1"


@pytest.mark.asyncio
async def test_error_redirect_shows_failure_page():
    port = free_port()
    redirect_uri = f"http://127.0.0.1:{port}/callback"

    async with OAuthCallbackServer(redirect_uri) as server:
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{redirect_uri}?error=access_denied") as response:
                assert response.status == 400
                assert "access_denied" in await response.text()

        url = await server.wait_for_callback(timeout=1)

    assert "error=access_denied" in url


@pytest.mark.asyncio
async def test_wait_times_out():
    server = OAuthCallbackServer(f"http://127.0.0.1:{free_port()}/callback")

    assert await server.wait_for_callback(timeout=0.01) is None


@pytest.mark.asyncio
async def test_failure_page_escapes_error_description():
    port = free_port()
    redirect_uri = f"http://127.0.0.1:{port}/callback"
    payload = "<script>alert(1)</script>"

    async with OAuthCallbackServer(redirect_uri) as server:
        async with aiohttp.ClientSession() as session:
            params = {"error": "access_denied", "error_description": payload}
            async with session.get(redirect_uri, params=params) as response:
                body = await response.text()

        await server.wait_for_callback(timeout=1)

    assert response.status == 400
    assert payload not in body
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in body
