"""OAuth authorization code exchange"""

import logging
from typing import TYPE_CHECKING, Optional

import settings
from .errors import ProtocolError
from .models import TokenSet

if TYPE_CHECKING:
    from config.client_config import AppKitConfig
    from utils.http import HttpClient

logger = logging.getLogger(__name__)

TOKEN_PATH = "/oauth/token"


def parse_token_response(payload, previous_refresh_token: Optional[str] = None) -> TokenSet:
    """Map a token endpoint body to a TokenSet

    Raises:
        ProtocolError: If the body has no usable access token
    """
    try:
        return TokenSet.from_token_response(
            payload,
            default_expires_in=settings.DEFAULT_EXPIRES_IN,
            previous_refresh_token=previous_refresh_token,
        )
    except ValueError as e:
        logger.error(f"Invalid token endpoint response: {e}")
        raise ProtocolError(f"Token endpoint returned an invalid response: {e}", "invalid_token_response") from e


async def exchange_code(
    http: "HttpClient",
    config: "AppKitConfig",
    code: str,
    code_verifier: str,
    redirect_uri: Optional[str] = None,
) -> TokenSet:
    """Exchange an authorization code and PKCE verifier for tokens

    Args:
        http: Request executor bound to the identity platform
        config: Client configuration
        code: Authorization code from the callback
        code_verifier: PKCE verifier persisted at login
        redirect_uri: Redirect URI used in the authorize request

    Returns:
        Newly issued token set

    Raises:
        NetworkError, RequestFailedError: Propagated from the executor
        ProtocolError: If the response carries no access token
    """
    data = {
        "grant_type": "authorization_code",
        "code": code,
        "client_id": config.client_id,
        "redirect_uri": redirect_uri or config.redirect_uri,
        "code_verifier": code_verifier,
    }

    logger.info(f"Exchanging authorization code for tokens at {config.domain}{TOKEN_PATH}")
    payload = await http.post_form(TOKEN_PATH, data)

    tokens = parse_token_response(payload)
    logger.info("Successfully exchanged authorization code for tokens")
    return tokens
