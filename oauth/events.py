"""Synchronous publish/subscribe for auth lifecycle notifications"""

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

# Lifecycle events emitted by AuthManager
LOGIN = "login"
LOGOUT = "logout"
TOKEN_REFRESHED = "token_refreshed"
TOKEN_EXPIRED = "token_expired"
ERROR = "error"

Handler = Callable[[Any], None]


class EventBus:
    """Dispatches events to subscribed handlers

    Handlers are called in subscription order with a single payload argument.
    A handler that raises is logged and skipped; the remaining handlers still
    run and the emitter never sees the exception.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = {}

    def on(self, event: str, handler: Handler) -> Callable[[], None]:
        """Subscribe a handler

        Returns:
            Function that removes this subscription when called
        """
        self._handlers.setdefault(event, []).append(handler)

        def unsubscribe() -> None:
            self.off(event, handler)

        return unsubscribe

    def off(self, event: str, handler: Handler) -> None:
        """Remove a handler; unknown handlers are ignored"""
        handlers = self._handlers.get(event)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._handlers[event]

    def emit(self, event: str, payload: Any = None) -> None:
        """Dispatch to a snapshot of the handlers subscribed right now"""
        # Handlers may subscribe or unsubscribe while we dispatch
        for handler in list(self._handlers.get(event, ())):
            try:
                handler(payload)
            except Exception:
                logger.exception(f"Event handler for '{event}' raised")

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, ()))

    def clear(self) -> None:
        """Drop every subscription"""
        self._handlers.clear()
