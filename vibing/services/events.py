"""
Session-expiry event channel.

The API client emits on every 401; stores and applications subscribe to
drop their state and return to the logged-out entry point.
"""

from collections.abc import Callable

from structlog import get_logger

logger = get_logger(__name__)

Listener = Callable[[], None]


class AuthEventEmitter:
    """Synchronous listener list for session expiration."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._listeners = [existing for existing in self._listeners if existing is not listener]

    def emit(self) -> None:
        """Call every listener; a failing listener does not stop the rest."""
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as exc:
                logger.error(
                    "session_listener_failed",
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(exc),
                )

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


auth_events = AuthEventEmitter()
