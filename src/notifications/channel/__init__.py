"""Channel sender registry — pluggable notification delivery channels.

Senders are built lazily on first use. Email gets an SMTP transport when
SMTP settings are present and no transport otherwise, which makes every
email send fail with "Email service not configured".
"""

import threading

from notifications.channel.port import ChannelSender
from notifications.config import get_settings
from notifications.errors import ChannelNotSupportedError
from notifications.notification.notification import NotificationChannel


def _build_email_sender() -> ChannelSender:
    from notifications.channel.email_sender import EmailSender

    settings = get_settings()
    transport = None
    if settings.smtp_configured:
        from notifications.channel.smtp_email import SMTPEmailTransport

        transport = SMTPEmailTransport(settings)
    return EmailSender(transport=transport, settings=settings)


def _build_in_app_sender() -> ChannelSender:
    from notifications.channel.in_app import InAppSender

    return InAppSender()


def _build_websocket_sender() -> ChannelSender:
    from notifications.channel.websocket import WebSocketSender

    return WebSocketSender()


def _build_placeholder(channel_type: str) -> ChannelSender:
    from notifications.channel.placeholders import PushSender, SMSSender, WebhookSender

    return {
        NotificationChannel.SMS.value: SMSSender,
        NotificationChannel.PUSH.value: PushSender,
        NotificationChannel.WEBHOOK.value: WebhookSender,
    }[channel_type]()


_DEFAULT_FACTORIES = {
    NotificationChannel.IN_APP.value: _build_in_app_sender,
    NotificationChannel.EMAIL.value: _build_email_sender,
    NotificationChannel.WEBSOCKET.value: _build_websocket_sender,
    NotificationChannel.SMS.value: lambda: _build_placeholder(NotificationChannel.SMS.value),
    NotificationChannel.PUSH.value: lambda: _build_placeholder(NotificationChannel.PUSH.value),
    NotificationChannel.WEBHOOK.value: lambda: _build_placeholder(NotificationChannel.WEBHOOK.value),
}


class ChannelRegistry:
    """Maps channel values to sender instances (one per channel)."""

    def __init__(self, factories=None):
        self._factories = dict(_DEFAULT_FACTORIES if factories is None else factories)
        self._instances: dict[str, ChannelSender] = {}
        self._lock = threading.Lock()

    def get(self, channel_type: str) -> ChannelSender:
        with self._lock:
            if channel_type not in self._instances:
                factory = self._factories.get(channel_type)
                if factory is None:
                    raise ChannelNotSupportedError(f"Unsupported channel: {channel_type}")
                self._instances[channel_type] = factory()
            return self._instances[channel_type]

    def register(self, channel_type: str, sender: ChannelSender) -> None:
        with self._lock:
            self._instances[channel_type] = sender

    def unregister(self, channel_type: str) -> None:
        """Remove a channel entirely, including its default factory."""
        with self._lock:
            self._instances.pop(channel_type, None)
            self._factories.pop(channel_type, None)

    def reset(self) -> None:
        with self._lock:
            self._instances.clear()
            self._factories = dict(_DEFAULT_FACTORIES)


_registry = ChannelRegistry()


def get_registry() -> ChannelRegistry:
    return _registry


def get_channel(channel_type: str) -> ChannelSender:
    """Return the sender for ``channel_type`` (singleton per channel).

    Raises:
        ChannelNotSupportedError: if no sender is registered for the channel.
    """
    return _registry.get(channel_type)


def register_channel(channel_type: str, sender: ChannelSender) -> None:
    _registry.register(channel_type, sender)


def unregister_channel(channel_type: str) -> None:
    _registry.unregister(channel_type)


def reset_channels():
    """Reset all channel singletons (useful for testing)."""
    _registry.reset()
