import httpx
import pytest

from oauth import NetworkError, RequestFailedError
from utils.http import HttpClient


def make_client(handler, token=None):
    async def accessor():
        return token

    return HttpClient(
        "https://id.example.com/",
        token_accessor=accessor,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_bearer_token_attached_to_json_requests():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    client = make_client(handler, token="A1")
    result = await client.post("/api/items", json={"name": "x"})

    assert result == {"ok": True}
    assert seen[0].url == "https://id.example.com/api/items"
    assert seen[0].headers["Authorization"] == "Bearer A1"
    assert seen[0].headers["Content-Type"] == "application/json"
    await client.aclose()


@pytest.mark.asyncio
async def test_no_authorization_header_without_token():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={})

    client = make_client(handler, token=None)
    await client.get("/api/items", params={"page": 2})

    assert "Authorization" not in seen[0].headers
    assert seen[0].url.params["page"] == "2"


@pytest.mark.asyncio
async def test_post_form_never_consults_token_accessor():
    calls = []
    seen = []

    async def accessor():
        calls.append(1)
        return "A1"

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"access_token": "x"})

    client = HttpClient("https://id.example.com", token_accessor=accessor, transport=httpx.MockTransport(handler))
    await client.post_form("/oauth/token", {"grant_type": "refresh_token"})

    assert calls == []
    assert "Authorization" not in seen[0].headers
    assert seen[0].headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert seen[0].content == b"grant_type=refresh_token"


@pytest.mark.asyncio
async def test_error_body_maps_to_request_failed():
    def handler(request):
        return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Token revoked"})

    client = make_client(handler)
    with pytest.raises(RequestFailedError) as exc_info:
        await client.get("/api/items")

    assert exc_info.value.code == "invalid_grant"
    assert exc_info.value.message == "Token revoked"
    assert exc_info.value.status == 400
    assert exc_info.value.body == {"error": "invalid_grant", "error_description": "Token revoked"}


@pytest.mark.asyncio
async def test_error_without_json_body_uses_generic_code():
    def handler(request):
        return httpx.Response(502, text="Bad Gateway")

    client = make_client(handler)
    with pytest.raises(RequestFailedError) as exc_info:
        await client.get("/api/items")

    assert exc_info.value.code == "request_failed"
    assert exc_info.value.status == 502
    assert exc_info.value.body == "Bad Gateway"


@pytest.mark.asyncio
async def test_error_message_field_used_when_no_description():
    def handler(request):
        return httpx.Response(404, json={"message": "No such item"})

    client = make_client(handler)
    with pytest.raises(RequestFailedError) as exc_info:
        await client.delete("/api/items/1")

    assert exc_info.value.code == "request_failed"
    assert exc_info.value.message == "No such item"


@pytest.mark.asyncio
async def test_empty_and_text_bodies():
    responses = iter([httpx.Response(204), httpx.Response(200, text="plain")])

    client = make_client(lambda request: next(responses))

    assert await client.delete("/api/items/1") == {}
    assert await client.get("/api/text") == "plain"


@pytest.mark.asyncio
async def test_transport_failure_raises_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)
    with pytest.raises(NetworkError) as exc_info:
        await client.get("/api/items")

    assert exc_info.value.code == "network_error"


@pytest.mark.asyncio
async def test_timeout_raises_network_error_with_timeout_code():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    client = make_client(handler)
    with pytest.raises(NetworkError) as exc_info:
        await client.get("/api/items")

    assert exc_info.value.code == "timeout"
