"""OAuth authorization and end-session URL construction"""

from typing import TYPE_CHECKING, Dict, Optional
from urllib.parse import urlencode

from .models import AuthUrlOptions, PKCEChallenge

if TYPE_CHECKING:
    from config.client_config import AppKitConfig

AUTHORIZE_PATH = "/oauth/authorize"
LOGOUT_PATH = "/oauth/logout"


class AuthorizationURLBuilder:
    """Builds authorization URLs with PKCE for the configured client"""

    def __init__(self, config: "AppKitConfig"):
        self.config = config

    def get_authorize_url(
        self,
        state: str,
        pkce: PKCEChallenge,
        options: Optional[AuthUrlOptions] = None,
    ) -> str:
        """Construct the authorize URL

        Args:
            state: Anti-CSRF state value, already persisted by the caller
            pkce: PKCE pair whose verifier the caller has persisted
            options: Per-call overrides and extra parameters

        Returns:
            Full authorization URL
        """
        options = options or AuthUrlOptions()

        params: Dict[str, str] = {
            "client_id": self.config.client_id,
            "redirect_uri": options.redirect_uri or self.config.redirect_uri,
            "response_type": "code",
            "scope": options.scope or self.config.scope_string,
            "state": state,
            "code_challenge": pkce.challenge,
            "code_challenge_method": pkce.method,
        }
        if options.login_hint:
            params["login_hint"] = options.login_hint
        if options.prompt:
            params["prompt"] = options.prompt
        params.update(options.extra_params)

        return f"{self.config.domain}{AUTHORIZE_PATH}?{urlencode(params)}"

    def get_logout_url(self, post_logout_redirect_uri: str, id_token_hint: Optional[str] = None) -> str:
        """Construct the end-session URL used after local logout"""
        params = {
            "post_logout_redirect_uri": post_logout_redirect_uri,
            "client_id": self.config.client_id,
        }
        if id_token_hint:
            params["id_token_hint"] = id_token_hint
        return f"{self.config.domain}{LOGOUT_PATH}?{urlencode(params)}"
