"""In-memory real-time bus — records published messages and calls subscribers."""

import threading
from collections.abc import Callable

import structlog
from notifications.realtime.bus_port import RealtimeBusPort

logger = structlog.get_logger(__name__)


class InMemoryBus(RealtimeBusPort):
    """Bus that keeps every published message for inspection.

    Subscribers are invoked synchronously; a subscriber error is logged and
    does not reach the publisher.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.published: list[dict] = []
        self._subscribers: dict[str, list[Callable[[dict], None]]] = {}

    def subscribe(self, topic: str, callback: Callable[[dict], None]) -> None:
        with self._lock:
            self._subscribers.setdefault(topic, []).append(callback)

    def publish(self, topic: str, payload: dict) -> None:
        with self._lock:
            self.published.append({"topic": topic, "payload": payload})
            subscribers = list(self._subscribers.get(topic, []))

        for callback in subscribers:
            try:
                callback(payload)
            except Exception as e:
                logger.error("Realtime subscriber failed", topic=topic, error=str(e))

    def messages_for(self, topic: str) -> list[dict]:
        with self._lock:
            return [m["payload"] for m in self.published if m["topic"] == topic]

    def reset(self) -> None:
        with self._lock:
            self.published.clear()
            self._subscribers.clear()
