from __future__ import annotations

import threading
from typing import Callable


Subscriber = Callable[[int], None]


class RefreshChannel:
    """Counter that tells subscribed views to re-fetch after a write.

    ``trigger`` bumps the key and calls every subscriber with the new value,
    outside the lock so a subscriber may trigger or unsubscribe.
    """

    def __init__(self):
        self._key = 0
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    @property
    def key(self) -> int:
        return self._key

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def trigger(self) -> int:
        with self._lock:
            self._key += 1
            key = self._key
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(key)
        return key
