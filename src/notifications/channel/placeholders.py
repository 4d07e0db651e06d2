"""Channels without a provider integration yet.

They fail every send with a fixed reason so the dispatcher records a normal
FAILED result instead of crashing.
"""

from notifications.channel.port import ChannelSender, DeliveryResult
from notifications.notification.notification import NotificationChannel


class NotImplementedSender(ChannelSender):
    reason = "Channel not implemented"

    def send(self, notification) -> DeliveryResult:
        return DeliveryResult.failed(self.reason)


class SMSSender(NotImplementedSender):
    channel = NotificationChannel.SMS.value
    reason = "SMS service not implemented"


class PushSender(NotImplementedSender):
    channel = NotificationChannel.PUSH.value
    reason = "Push notification service not implemented"


class WebhookSender(NotImplementedSender):
    channel = NotificationChannel.WEBHOOK.value
    reason = "Webhook service not implemented"
