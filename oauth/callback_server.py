"""
Loopback listener that captures the OAuth redirect for desktop and CLI hosts
"""
import asyncio
import html
import logging
from typing import Optional
from urllib.parse import urlparse

from aiohttp import web

logger = logging.getLogger(__name__)

SUCCESS_PAGE = """
<html>
    <body>
        <h1>Authentication complete</h1>
        <p>You can close this window and return to the terminal.</p>
    </body>
</html>
"""

FAILURE_PAGE = """
<html>
    <body>
        <h1>Authentication Failed</h1>
        <p>Error: {error}</p>
        <p>You can close this window.</p>
    </body>
</html>
"""


class OAuthCallbackServer:
    """Local HTTP server bound to the host, port and path of a redirect URI

    Captures the full redirect URL and leaves validation (state, code) to
    AuthManager.handle_callback.
    """

    def __init__(self, redirect_uri: str):
        parsed = urlparse(redirect_uri)
        if parsed.hostname not in ("localhost", "127.0.0.1", "::1"):
            raise ValueError(f"Redirect URI is not a loopback address: {redirect_uri}")

        self.host = parsed.hostname
        self.port = parsed.port or 80
        self.path = parsed.path or "/"
        self.callback_url: Optional[str] = None
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None
        self._event = asyncio.Event()

        self.app.router.add_get(self.path, self._handle_callback)

    async def _handle_callback(self, request: web.Request) -> web.Response:
        """Record the redirect and answer the browser"""
        # Keep the first redirect; later hits (reloads) are ignored
        if self.callback_url is None:
            self.callback_url = str(request.url)
            self._event.set()

        error = request.query.get("error")
        if error:
            logger.warning(f"Identity platform returned error: {error}")
            return web.Response(
                text=FAILURE_PAGE.format(error=html.escape(request.query.get("error_description") or error)),
                content_type="text/html",
                status=400,
            )

        return web.Response(text=SUCCESS_PAGE, content_type="text/html")

    async def start(self) -> None:
        """Start the callback server"""
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        site = web.TCPSite(self.runner, host=self.host, port=self.port)
        await site.start()
        logger.info(f"OAuth callback server listening on {self.host}:{self.port}{self.path}")

    async def wait_for_callback(self, timeout: float = 300) -> Optional[str]:
        """
        Wait for the redirect.

        Args:
            timeout: Maximum time to wait in seconds

        Returns:
            Full redirect URL, or None on timeout
        """
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"OAuth callback timeout after {timeout} seconds")
            return None
        return self.callback_url

    async def stop(self) -> None:
        """Stop the callback server"""
        if self.runner:
            await self.runner.cleanup()
            self.runner = None

    async def __aenter__(self) -> "OAuthCallbackServer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
