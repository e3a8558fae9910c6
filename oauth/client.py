"""AppKit client: wires configuration, storage, HTTP and the auth lifecycle"""

import logging
from typing import Any, Callable, Optional

from config.client_config import AppKitConfig
from utils.credentials import CredentialStore
from utils.http import HttpClient
from utils.storage import StorageAdapter, create_storage
from .events import EventBus
from .token_manager import AuthManager

logger = logging.getLogger(__name__)


class AppKit:
    """Client for one identity-platform application

    Every instance owns its storage adapter, credential store, request
    executor, event bus and auth manager; nothing is shared through module
    globals, so independent clients stay isolated.

    Example:
        async with AppKit(AppKitConfig(domain=..., client_id=..., redirect_uri=...)) as kit:
            url = kit.auth.build_auth_url()
            ...
            await kit.auth.handle_callback(redirect_url)
            profile = await kit.http.get("/api/identity/profile")
    """

    def __init__(self, config: AppKitConfig, storage: Optional[StorageAdapter] = None):
        """Initialize the client

        Args:
            config: Client configuration
            storage: Explicit adapter; by default one is created from
                config.storage
        """
        self.config = config
        self.storage = storage if storage is not None else create_storage(config)
        self.credentials = CredentialStore(self.storage)
        self.events = EventBus()
        self.http = HttpClient(
            config.domain,
            token_accessor=self._access_token,
            transport=config.transport,
            timeout=config.request_timeout,
        )
        self.auth = AuthManager(config, self.credentials, self.http, self.events)
        logger.debug(f"AppKit client created for {config.origin} ({config.storage.value} storage)")

    async def _access_token(self) -> Optional[str]:
        return await self.auth.get_access_token()

    def on(self, event: str, handler: Callable[[Any], None]) -> Callable[[], None]:
        """Subscribe to an auth lifecycle event; returns an unsubscribe function"""
        return self.events.on(event, handler)

    def off(self, event: str, handler: Callable[[Any], None]) -> None:
        self.events.off(event, handler)

    def destroy(self) -> None:
        """Stop background refresh and drop event subscriptions"""
        self.auth.destroy()

    async def aclose(self) -> None:
        """Destroy the client and release its HTTP connections"""
        self.destroy()
        await self.http.aclose()

    async def __aenter__(self) -> "AppKit":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
