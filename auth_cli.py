"""Interactive OAuth authentication flow for the command line"""

import logging
import webbrowser
from typing import Optional

from rich.console import Console

import settings
from config.client_config import AppKitConfig
from oauth import AppKitError, AuthUrlOptions, LogoutOptions, ProtocolError, RefreshFailedError
from oauth.callback_server import OAuthCallbackServer
from oauth.client import AppKit

logger = logging.getLogger(__name__)


class CLIAuthFlow:
    """Drive login, refresh and logout of an AppKit client from a terminal"""

    def __init__(self, kit: AppKit, console: Optional[Console] = None):
        self.kit = kit
        self.console = console or Console()

    @classmethod
    def from_env(cls, console: Optional[Console] = None) -> "CLIAuthFlow":
        # The CLI opens the browser itself so it can report failures
        config = AppKitConfig.from_env(navigator=lambda url: None)
        return cls(AppKit(config), console=console)

    def _open_browser(self, auth_url: str) -> None:
        if webbrowser.open(auth_url):
            self.console.print("[green][OK][/green] Browser opened successfully")
        else:
            self.console.print("[yellow]Could not open browser automatically[/yellow]")
            self.console.print(f"Please open this URL manually:\n{auth_url}")

    async def _wait_for_redirect(self, timeout: float) -> Optional[str]:
        """Capture the redirect on a loopback listener, or ask for it"""
        try:
            server = OAuthCallbackServer(self.kit.config.redirect_uri)
        except ValueError:
            server = None

        if server is None:
            self.console.print("\n[bold]Step 2:[/bold] Paste the URL you were redirected to")
            try:
                return input("Callback URL: ").strip() or None
            except KeyboardInterrupt:
                self.console.print("\n[yellow]Authentication cancelled by user[/yellow]")
                return None

        async with server:
            self.console.print("\n[bold]Step 2:[/bold] Complete the login process in your browser")
            self.console.print(f"[dim]Waiting for the redirect to {self.kit.config.redirect_uri}[/dim]")
            return await server.wait_for_callback(timeout=timeout)

    async def authenticate(
        self,
        login_hint: Optional[str] = None,
        timeout: float = settings.CALLBACK_TIMEOUT,
    ) -> bool:
        """
        Run the OAuth authentication flow
        Returns True if successful, False otherwise
        """
        self.console.print("\n[bold]Step 1:[/bold] Opening browser for authentication...")
        auth_url = self.kit.auth.login(AuthUrlOptions(login_hint=login_hint))
        logger.debug(f"Generated auth URL: {auth_url[:50]}...")
        self._open_browser(auth_url)

        callback_url = await self._wait_for_redirect(timeout)
        if not callback_url:
            self.console.print("[red][ERROR][/red] No redirect received")
            # Discard the pending verifier and state
            self.kit.credentials.clear_pkce_verifier()
            self.kit.credentials.clear_state()
            return False

        self.console.print("\n[bold]Step 3:[/bold] Exchanging code for tokens...")
        try:
            result = await self.kit.auth.handle_callback(callback_url)
        except ProtocolError as e:
            self.console.print(f"[red][ERROR][/red] Invalid callback ({e.code}): {e.message}")
            return False
        except AppKitError as e:
            self.console.print(f"[red][ERROR][/red] Token exchange failed: {e.message}")
            return False

        self.console.print("[green][OK][/green] Authentication successful!")
        if result.user:
            name = result.user.get("name") or result.user.get("email") or result.user.get("sub")
            if name:
                self.console.print(f"Signed in as [bold]{name}[/bold]")
        return True

    async def print_access_token(self) -> bool:
        """Print a valid access token, refreshing it first when needed"""
        try:
            token = await self.kit.auth.get_access_token()
        except RefreshFailedError as e:
            self.console.print(f"[red][ERROR][/red] Session expired ({e.code}). Please login again")
            return False
        except AppKitError as e:
            self.console.print(f"[red][ERROR][/red] Could not refresh token: {e.message}")
            return False

        if not token:
            self.console.print("[yellow]Not authenticated. Please login first[/yellow]")
            return False

        # Plain print so the token can be piped
        print(token)
        return True

    async def logout(self, revoke: bool = True) -> None:
        await self.kit.auth.logout(LogoutOptions(revoke_token=revoke))
        self.console.print("[green][OK][/green] Logged out")
