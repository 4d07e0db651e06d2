"""In-app channel — the record itself is the delivery; connected clients are told via the bus."""

from datetime import UTC, datetime

from notifications.channel.port import ChannelSender, DeliveryResult
from notifications.notification.notification import NotificationChannel, notification_to_dict
from notifications.realtime import get_bus

NOTIFICATION_CREATED_TOPIC = "notification.created"


class InAppSender(ChannelSender):
    """Always available. Delivery is confirmed synchronously."""

    channel = NotificationChannel.IN_APP.value

    def __init__(self, bus=None):
        self._bus = bus

    @property
    def bus(self):
        return self._bus or get_bus()

    def send(self, notification) -> DeliveryResult:
        now = datetime.now(UTC)
        payload = notification_to_dict(notification)
        payload["status"] = "delivered"
        try:
            self.bus.publish(
                NOTIFICATION_CREATED_TOPIC,
                {"userId": str(notification.user_id), "tenantId": str(notification.tenant_id), "notification": payload},
            )
        except Exception as e:
            return DeliveryResult.failed(f"Realtime publish failed: {e}")
        return DeliveryResult(success=True, status="delivered", delivered_at=now)
