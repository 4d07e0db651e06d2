"""Channel ports: senders the dispatcher talks to, and the email transport
under the email sender.

Every delivery channel implements ``ChannelSender.send``. The dispatcher
only ever talks to this interface, so a new channel is added by writing a
sender and registering it; nothing in the dispatch path changes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of handing one notification to one channel.

    ``status`` is the notification status the channel reached on success
    ("sent" or "delivered"), or "failed".
    """

    success: bool
    status: str
    error: str | None = None
    delivered_at: datetime | None = None
    message_id: str | None = None

    @classmethod
    def failed(cls, error: str) -> "DeliveryResult":
        return cls(success=False, status="failed", error=error)


class ChannelSender(ABC):
    """Abstract delivery channel."""

    channel: str

    @abstractmethod
    def send(self, notification) -> DeliveryResult:
        """Deliver ``notification``. Failures are returned, not raised."""
        ...


class EmailTransport(ABC):
    """Puts one rendered message on the wire: SMTP, a provider API or a test fake."""

    @abstractmethod
    def send(self, to: str, subject: str, body: str, html_body: str | None = None) -> dict:
        """Hand the message over.

        Returns ``{"message_id": ..., "status": "sent"}``, or
        ``{"status": "failed", "error": ...}`` when the transport refused it.
        """
        ...
