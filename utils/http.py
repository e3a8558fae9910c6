"""HTTP request executor for calls to the identity platform"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

import settings
from oauth.errors import NetworkError, RequestFailedError

logger = logging.getLogger(__name__)

TokenAccessor = Callable[[], Awaitable[Optional[str]]]


def _parse_body(response: httpx.Response) -> Any:
    """Decode a response body: {} when empty, JSON when possible, else text"""
    if not response.content or not response.content.strip():
        return {}
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text


def _raise_for_status(method: str, path: str, response: httpx.Response) -> None:
    if response.is_success:
        return

    body = _parse_body(response)
    code = "request_failed"
    message = f"Request failed with status {response.status_code}"
    if isinstance(body, dict):
        if isinstance(body.get("error"), str) and body["error"]:
            code = body["error"]
        for field in ("error_description", "message"):
            if isinstance(body.get(field), str) and body[field]:
                message = body[field]
                break

    logger.debug(f"{method} {path} failed with status {response.status_code} ({code})")
    raise RequestFailedError(message, code=code, status=response.status_code, body=body)


class HttpClient:
    """Executes JSON and form requests against the identity platform

    The bearer token is pulled from ``token_accessor`` right before each JSON
    request; the executor itself never stores a token. Form posts (token,
    revoke) are sent without a bearer token.
    """

    def __init__(
        self,
        base_url: str,
        token_accessor: Optional[TokenAccessor] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = settings.REQUEST_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_accessor = token_accessor
        self.transport = transport
        self.timeout = httpx.Timeout(timeout, connect=min(timeout, settings.CONNECT_TIMEOUT))
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                transport=self.transport,
                timeout=self.timeout,
            )
        return self._client

    async def _send(self, method: str, path: str, **kwargs: Any) -> Any:
        client = self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"{method} {path} timed out: {e}")
            raise NetworkError(f"Request to {path} timed out", "timeout") from e
        except httpx.RequestError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise NetworkError(f"Could not reach the identity platform: {e}") from e

        _raise_for_status(method, path, response)
        return _parse_body(response)

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Send a JSON request with the current bearer token attached

        Raises:
            NetworkError: If the platform could not be reached
            RequestFailedError: If the platform answered with a non-2xx status
        """
        request_headers = {"Accept": "application/json"}
        if headers:
            request_headers.update(headers)

        if self.token_accessor is not None:
            token = await self.token_accessor()
            if token:
                request_headers["Authorization"] = f"Bearer {token}"

        kwargs: Dict[str, Any] = {"headers": request_headers}
        if params:
            kwargs["params"] = params
        if json is not None:
            kwargs["json"] = json
        return await self._send(method.upper(), path, **kwargs)

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def patch(self, path: str, json: Any = None) -> Any:
        return await self.request("PATCH", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    async def post_form(self, path: str, data: Dict[str, str]) -> Any:
        """POST an application/x-www-form-urlencoded body

        Used for the token and revocation endpoints. Never consults the token
        accessor, so a refresh cannot recurse into itself.
        """
        return await self._send(
            "POST",
            path,
            data=data,
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "application/json",
            },
        )

    async def aclose(self) -> None:
        """Close the underlying connection pool"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
