"""
Observable store base.

Shared, lifecycle-scoped mutable state with subscriber notification: each
store holds one area of client state and calls its subscribers after every
change.
"""

from collections.abc import Callable

from structlog import get_logger

logger = get_logger(__name__)

Subscriber = Callable[["Store"], None]


class Store:
    """Base class for client-side state stores."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self)
            except Exception as exc:
                logger.error(
                    "store_subscriber_failed",
                    store=type(self).__name__,
                    error=str(exc),
                )
