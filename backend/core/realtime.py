from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Any, Callable


logger = logging.getLogger(__name__)

Listener = Callable[[dict[str, Any]], None]


class ChangeFeed:
    """In-process pub/sub of table change notifications.

    Channels are named after tables ("feedback", "subjects", ...). Messages carry
    only the table and event kind; subscribers are expected to re-fetch.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, channel: str, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners[channel].append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(channel, [])
                if listener in listeners:
                    listeners.remove(listener)
                if not listeners:
                    self._listeners.pop(channel, None)

        return _unsubscribe

    def subscriber_count(self, channel: str) -> int:
        with self._lock:
            return len(self._listeners.get(channel, []))

    def publish(self, channel: str, message: dict[str, Any]) -> None:
        with self._lock:
            listeners = list(self._listeners.get(channel, []))
        for listener in listeners:
            try:
                listener(message)
            except Exception:
                # One broken subscriber must not block the committing request.
                logger.exception("Change listener failed channel=%s", channel)


change_feed = ChangeFeed()
