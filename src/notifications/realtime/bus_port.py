"""Real-time bus port — fan-out to connected clients (socket gateway)."""

from abc import ABC, abstractmethod


class RealtimeBusPort(ABC):
    """Abstract interface for fire-and-forget real-time publishing."""

    @abstractmethod
    def publish(self, topic: str, payload: dict) -> None:
        """Publish ``payload`` on ``topic``. Must not block on subscribers."""
        ...
