"""
CellSync Backend — Change Notifier (Live Edit Fan-out)
========================================================

What:  In-process publish/subscribe registry that hands every newly
       committed edit record to the subscribers of its spreadsheet.
Who:   EditLogService publishes; the WebSocket route subscribes one handler
       per open connection.
When:  Immediately after an append commits.

Delivery Semantics:
    - No backlog: a subscriber only sees records published after it
      registered. Catching up is done through the history endpoint.
    - At-most-once, best-effort: no acknowledgement, no retry, nothing
      persisted. A subscriber that is gone at publish time misses the event.
    - Per-subscriber order equals publish order for synchronous handlers.
      Each append publishes right after its own commit, so with concurrent
      appends to one spreadsheet "append order" is commit-completion order,
      which can differ from the (timestamp, id) order of the history read.
    - A handler that raises is logged and skipped; the remaining handlers
      still run.

Concurrency:
    subscribe/unsubscribe mutate the registry under a lock. publish copies
    the current handler tuple under the same lock and invokes handlers
    outside it, so registry changes never wait on slow handlers and
    publishing to one spreadsheet never contends with another's handlers.

    Subscriptions live in process memory only. They are lost on restart and
    are not shared between worker processes.
"""

import inspect
import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, Union

from cellsync.schemas.edit import EditRecordResponse

logger = logging.getLogger(__name__)

EditHandler = Callable[[EditRecordResponse], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class SubscriptionHandle:
    """Opaque token returned by subscribe(); pass it back to unsubscribe()."""
    spreadsheet_id: str
    subscription_id: int


class ChangeNotifier:
    """
    Registry of live-edit subscribers keyed by spreadsheet identity.

    Handlers may be plain callables or coroutine functions. Coroutine
    handlers are awaited one after another, so a slow coroutine delays the
    handlers registered after it; the WebSocket route therefore registers a
    non-blocking ``queue.put_nowait``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: Dict[str, Dict[int, EditHandler]] = {}
        self._ids = itertools.count(1)

    def subscribe(self, spreadsheet_id: str, handler: EditHandler) -> SubscriptionHandle:
        """Register ``handler`` for every subsequent edit of ``spreadsheet_id``."""
        with self._lock:
            subscription_id = next(self._ids)
            self._subscribers.setdefault(spreadsheet_id, {})[subscription_id] = handler
        logger.debug("Subscribed #%d to spreadsheet %s", subscription_id, spreadsheet_id)
        return SubscriptionHandle(spreadsheet_id=spreadsheet_id, subscription_id=subscription_id)

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Remove a subscription. Unknown or already-removed handles are ignored."""
        with self._lock:
            handlers = self._subscribers.get(handle.spreadsheet_id)
            if not handlers or handlers.pop(handle.subscription_id, None) is None:
                return
            if not handlers:
                del self._subscribers[handle.spreadsheet_id]
        logger.debug(
            "Unsubscribed #%d from spreadsheet %s",
            handle.subscription_id,
            handle.spreadsheet_id,
        )

    def subscriber_count(self, spreadsheet_id: Optional[str] = None) -> int:
        """Subscribers of one spreadsheet, or of all spreadsheets when omitted."""
        with self._lock:
            if spreadsheet_id is None:
                return sum(len(handlers) for handlers in self._subscribers.values())
            return len(self._subscribers.get(spreadsheet_id, {}))

    async def publish(self, record: EditRecordResponse) -> int:
        """
        Deliver ``record`` to the current subscribers of its spreadsheet.

        Returns:
            Number of handlers that accepted the record without raising.
        """
        with self._lock:
            handlers = tuple(self._subscribers.get(record.spreadsheet_id, {}).items())

        delivered = 0
        for subscription_id, handler in handlers:
            try:
                result = handler(record)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.warning(
                    "Dropped edit %d for subscriber #%d on spreadsheet %s: %s",
                    record.id,
                    subscription_id,
                    record.spreadsheet_id,
                    repr(e),
                )

        if handlers:
            logger.debug(
                "Published edit %d to %d/%d subscribers of %s",
                record.id,
                delivered,
                len(handlers),
                record.spreadsheet_id,
            )
        return delivered

    def clear(self) -> None:
        """Drop every subscription."""
        with self._lock:
            self._subscribers.clear()


# ── Singleton Instance ────────────────────────────────────────────────────
change_notifier = ChangeNotifier()
