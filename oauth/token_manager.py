"""OAuth session lifecycle: login, callback, refresh, logout"""

import asyncio
import hmac
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional
from urllib.parse import parse_qs, urlparse

import settings
from .authorization import AuthorizationURLBuilder
from .errors import AppKitError, ProtocolError, RefreshFailedError, RequestFailedError
from .events import ERROR, LOGIN, LOGOUT, TOKEN_EXPIRED, TOKEN_REFRESHED, EventBus
from .jwt_utils import decode_jwt_claims
from .models import AuthState, AuthUrlOptions, CallbackResult, LogoutOptions, TokenSet
from .pkce import generate_pkce_challenge, generate_random_string
from .token_exchange import exchange_code
from .token_refresh import refresh_tokens, revoke_token

if TYPE_CHECKING:
    from config.client_config import AppKitConfig
    from utils.credentials import CredentialStore
    from utils.http import HttpClient

logger = logging.getLogger(__name__)

STATE_LENGTH = 32
USERINFO_PATH = "/oauth/userinfo"


def _first_param(params: Dict[str, list], name: str) -> Optional[str]:
    values = params.get(name)
    return values[0] if values else None


def _session_ended() -> RefreshFailedError:
    return RefreshFailedError("Session ended while refreshing", "session_ended")


def _consume_exception(task: "asyncio.Task") -> None:
    # Waiters may all have been cancelled; keep the loop from warning
    if not task.cancelled():
        task.exception()


class AuthManager:
    """Owns the authentication state machine of one client

    UNAUTHENTICATED -> login() -> AUTHENTICATING -> handle_callback() ->
    AUTHENTICATED -> (stale token) -> REFRESHING -> AUTHENTICATED or
    UNAUTHENTICATED. The state is derived from what is stored, see ``state``.

    Refreshes are single-flight: every caller that needs a refresh while one
    is running awaits the same task and gets the same token set or error.
    Refresh tokens may be single-use, so two parallel refreshes would
    invalidate the session.
    """

    def __init__(
        self,
        config: "AppKitConfig",
        credentials: "CredentialStore",
        http: "HttpClient",
        events: EventBus,
    ):
        self.config = config
        self.credentials = credentials
        self.http = http
        self.events = events
        self.auth_builder = AuthorizationURLBuilder(config)

        self._refresh_task: Optional[asyncio.Task] = None
        self._refresh_timer: Optional[asyncio.TimerHandle] = None
        self._scheduled_task: Optional[asyncio.Task] = None
        # Bumped on logout so an in-flight refresh cannot restore the session
        self._session_epoch = 0
        self._destroyed = False

    @property
    def state(self) -> AuthState:
        """Current lifecycle state, derived from stored evidence"""
        if self._refresh_task is not None:
            return AuthState.REFRESHING
        if self.credentials.get_tokens() is not None:
            return AuthState.AUTHENTICATED
        if self.credentials.get_state() and self.credentials.get_pkce_verifier():
            return AuthState.AUTHENTICATING
        return AuthState.UNAUTHENTICATED

    # Login
    def build_auth_url(self, options: Optional[AuthUrlOptions] = None) -> str:
        """Generate and persist state + PKCE verifier, return the authorize URL

        Does not navigate.
        """
        options = options or AuthUrlOptions()
        state = options.state or generate_random_string(STATE_LENGTH)
        pkce = generate_pkce_challenge()

        # Both must be persisted before the URL leaves this method
        self.credentials.set_state(state)
        self.credentials.set_pkce_verifier(pkce.verifier)

        return self.auth_builder.get_authorize_url(state, pkce, options)

    def login(self, options: Optional[AuthUrlOptions] = None) -> str:
        """Build the authorize URL and navigate to it

        Returns:
            The URL handed to the navigator
        """
        url = self.build_auth_url(options)
        logger.info(f"Redirecting to {self.config.domain} for login")
        self.config.navigator(url)
        return url

    async def handle_callback(self, url: Optional[str]) -> CallbackResult:
        """Validate the redirect and exchange the code for tokens

        The stored state and verifier are consumed by this call whether it
        succeeds or fails.

        Args:
            url: Full redirect URL received from the identity platform

        Raises:
            ProtocolError: Invalid callback; raised before any network call
            NetworkError, RequestFailedError: Token exchange failed
        """
        stored_state = self.credentials.get_state()
        verifier = self.credentials.get_pkce_verifier()
        self.credentials.clear_state()
        self.credentials.clear_pkce_verifier()

        if not url:
            raise ProtocolError("No callback URL available", "no_callback_url")

        params = parse_qs(urlparse(url).query)

        error = _first_param(params, "error")
        if error:
            raise ProtocolError(_first_param(params, "error_description") or error, error)

        code = _first_param(params, "code")
        if not code:
            raise ProtocolError("Missing authorization code", "missing_code")

        returned_state = _first_param(params, "state")
        if not stored_state:
            raise ProtocolError("No stored state found. Start login flow first.", "missing_state")
        if not hmac.compare_digest((returned_state or "").encode("utf-8"), stored_state.encode("utf-8")):
            logger.warning("Callback state does not match the stored state")
            raise ProtocolError("State mismatch, possible CSRF attack", "state_mismatch")
        if not verifier:
            raise ProtocolError("No PKCE verifier found. Start login flow first.", "missing_verifier")

        tokens = await exchange_code(self.http, self.config, code, verifier)

        self._session_epoch += 1
        self.credentials.set_tokens(tokens)
        self._schedule_refresh(tokens)
        self.events.emit(LOGIN, tokens)

        logger.info("Authentication complete")
        return CallbackResult(tokens=tokens, state=returned_state, user=decode_jwt_claims(tokens.id_token))

    # Refresh
    async def refresh_token(self) -> TokenSet:
        """Refresh the token set, joining a refresh that is already running

        Raises:
            RefreshFailedError: The refresh token was missing or rejected
            NetworkError: The platform could not be reached (tokens kept)
            RequestFailedError: The platform failed with a 5xx (tokens kept)
        """
        task = self._refresh_task
        if task is None:
            task = asyncio.ensure_future(self._run_refresh())
            task.add_done_callback(_consume_exception)
            self._refresh_task = task
        # A cancelled waiter must not cancel the shared refresh
        return await asyncio.shield(task)

    async def _run_refresh(self) -> TokenSet:
        try:
            current = self.credentials.get_tokens()
            if current is None or not current.refresh_token:
                logger.warning("No refresh token available for refresh")
                raise RefreshFailedError("No refresh token available", "no_refresh_token")

            epoch = self._session_epoch
            try:
                tokens = await refresh_tokens(self.http, self.config, current.refresh_token)
            except RequestFailedError as e:
                if e.status is not None and e.status >= 500:
                    logger.error(f"Token refresh failed with server error {e.status}, keeping tokens")
                    raise
                raise self._refresh_rejected(epoch, e.message, e.code, e.status) from e
            except ProtocolError as e:
                raise self._refresh_rejected(epoch, e.message, e.code, e.status) from e

            if epoch != self._session_epoch:
                logger.info("Session changed during refresh, discarding refreshed tokens")
                raise _session_ended()

            self.credentials.set_tokens(tokens)
            self._schedule_refresh(tokens)
            self.events.emit(TOKEN_REFRESHED, tokens)
            return tokens
        finally:
            self._refresh_task = None

    def _refresh_rejected(self, epoch: int, message: str, code: str, status: Optional[int]) -> RefreshFailedError:
        if epoch != self._session_epoch:
            # The rejected token belonged to a session that has since ended
            logger.info(f"Ignoring refresh rejection ({code}) from an ended session")
            return _session_ended()

        logger.error(f"Refresh token rejected ({code}), clearing credentials")
        self._cancel_scheduled_refresh()
        self._session_epoch += 1
        self.credentials.clear()
        error = RefreshFailedError(message, code, status)
        self.events.emit(ERROR, error)
        return error

    # Token access
    async def get_access_token(self) -> Optional[str]:
        """Return a usable access token, refreshing first when it is stale

        Returns:
            Access token, or None when there is no session or the token is
            stale and cannot be refreshed

        Raises:
            RefreshFailedError: The refresh token was rejected
        """
        tokens = self.credentials.get_tokens()
        if tokens is None:
            return None

        if not tokens.is_expired(self.config.expiry_skew):
            return tokens.access_token

        if self._refresh_task is None and not tokens.refresh_token:
            logger.info("Access token expired and no refresh token available")
            self.events.emit(TOKEN_EXPIRED, tokens)
            return None

        logger.info("Token expired, attempting automatic refresh...")
        refreshed = await self.refresh_token()
        return refreshed.access_token

    def is_authenticated(self) -> bool:
        tokens = self.credentials.get_tokens()
        return tokens is not None and not tokens.is_expired()

    def get_tokens(self) -> Optional[TokenSet]:
        return self.credentials.get_tokens()

    async def get_user_info(self) -> Dict[str, Any]:
        """Fetch the OIDC userinfo document with the current access token"""
        return await self.http.get(USERINFO_PATH)

    # Logout
    async def logout(self, options: Optional[LogoutOptions] = None) -> Optional[str]:
        """Clear the local session, revoking the refresh token when possible

        Revocation is best effort; local state is cleared even if it fails.

        Returns:
            End-session URL when a post-logout redirect was requested
        """
        options = options or LogoutOptions()
        self._cancel_scheduled_refresh()
        self._session_epoch += 1

        tokens = self.credentials.get_tokens()
        try:
            if options.revoke_token and tokens is not None and tokens.refresh_token:
                try:
                    await revoke_token(self.http, self.config, tokens.refresh_token)
                except AppKitError as e:
                    logger.warning(f"Token revocation failed, continuing logout: {e.message}")
        finally:
            self.credentials.clear()

        self.events.emit(LOGOUT)
        logger.info("Logged out")

        if options.post_logout_redirect_uri:
            url = self.auth_builder.get_logout_url(
                options.post_logout_redirect_uri,
                id_token_hint=tokens.id_token if tokens else None,
            )
            self.config.navigator(url)
            return url
        return None

    # Scheduling
    def _schedule_refresh(self, tokens: TokenSet) -> None:
        self._cancel_scheduled_refresh()
        if self._destroyed or not self.config.auto_refresh or not tokens.refresh_token:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, proactive refresh not scheduled")
            return

        delay = max(tokens.expires_in() - self.config.refresh_leeway, settings.MIN_REFRESH_DELAY)
        logger.debug(f"Scheduling token refresh in {delay:.0f}s")
        self._refresh_timer = loop.call_later(delay, self._on_refresh_timer)

    def _on_refresh_timer(self) -> None:
        self._refresh_timer = None
        self._scheduled_task = asyncio.ensure_future(self._scheduled_refresh())

    async def _scheduled_refresh(self) -> None:
        try:
            await self.refresh_token()
        except AppKitError as e:
            logger.warning(f"Scheduled token refresh failed: {e.message}")
            self.events.emit(TOKEN_EXPIRED, None)

    def _cancel_scheduled_refresh(self) -> None:
        if self._refresh_timer is not None:
            self._refresh_timer.cancel()
            self._refresh_timer = None

    @property
    def refresh_scheduled(self) -> bool:
        return self._refresh_timer is not None

    def destroy(self) -> None:
        """Cancel the scheduled refresh and drop all event subscriptions

        An already running refresh request is not aborted.
        """
        self._cancel_scheduled_refresh()
        self.events.clear()
        self._destroyed = True
