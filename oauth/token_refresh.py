"""OAuth token refresh and revocation requests"""

import logging
from typing import TYPE_CHECKING

from .models import TokenSet
from .token_exchange import TOKEN_PATH, parse_token_response

if TYPE_CHECKING:
    from config.client_config import AppKitConfig
    from utils.http import HttpClient

logger = logging.getLogger(__name__)

REVOKE_PATH = "/oauth/revoke"


async def refresh_tokens(http: "HttpClient", config: "AppKitConfig", refresh_token: str) -> TokenSet:
    """Exchange a refresh token for a new token set

    The previous refresh token is kept when the platform does not rotate it.

    Raises:
        NetworkError, RequestFailedError: Propagated from the executor
        ProtocolError: If the response carries no access token
    """
    logger.info("Attempting to refresh OAuth tokens...")
    payload = await http.post_form(
        TOKEN_PATH,
        {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": config.client_id,
        },
    )

    tokens = parse_token_response(payload, previous_refresh_token=refresh_token)
    logger.info("Successfully refreshed OAuth tokens")
    return tokens


async def revoke_token(
    http: "HttpClient",
    config: "AppKitConfig",
    token: str,
    token_type_hint: str = "refresh_token",
) -> None:
    """Ask the platform to revoke a token

    Raises:
        NetworkError, RequestFailedError: Propagated from the executor
    """
    await http.post_form(
        REVOKE_PATH,
        {
            "token": token,
            "token_type_hint": token_type_hint,
            "client_id": config.client_id,
        },
    )
    logger.info(f"Revoked {token_type_hint}")
