"""WebSocket channel — fire-and-forget push to connected clients."""

from datetime import UTC, datetime

from notifications.channel.port import ChannelSender, DeliveryResult
from notifications.notification.notification import NotificationChannel, notification_to_dict
from notifications.realtime import get_bus

WEBSOCKET_TOPIC = "notification.websocket"


class WebSocketSender(ChannelSender):
    """Reports success as soon as the event is on the bus; no delivery receipt."""

    channel = NotificationChannel.WEBSOCKET.value

    def __init__(self, bus=None):
        self._bus = bus

    @property
    def bus(self):
        return self._bus or get_bus()

    def send(self, notification) -> DeliveryResult:
        try:
            self.bus.publish(
                WEBSOCKET_TOPIC,
                {
                    "userId": str(notification.user_id),
                    "tenantId": str(notification.tenant_id),
                    "notification": notification_to_dict(notification),
                },
            )
        except Exception as e:
            return DeliveryResult.failed(f"Realtime publish failed: {e}")
        return DeliveryResult(success=True, status="sent", delivered_at=datetime.now(UTC))
