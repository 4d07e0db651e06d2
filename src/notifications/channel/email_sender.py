"""Email channel — formats a notification as multipart mail and hands it to a transport."""

from datetime import UTC, datetime

import structlog
from jinja2 import Environment
from notifications.channel.port import ChannelSender, DeliveryResult, EmailTransport
from notifications.config import Settings, get_settings
from notifications.directory import get_directory
from notifications.notification.notification import NotificationChannel, NotificationPriority

logger = structlog.get_logger(__name__)

_ACTION_COLORS = {
    "primary": "#007bff",
    "secondary": "#6c757d",
    "danger": "#dc3545",
}

_PRIORITY_COLORS = {
    NotificationPriority.LOW.value: "#6c757d",
    NotificationPriority.MEDIUM.value: "#007bff",
    NotificationPriority.HIGH.value: "#fd7e14",
    NotificationPriority.CRITICAL.value: "#dc3545",
}

_HTML_LAYOUT = """\
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{{ title }}</title></head>
<body style="font-family: Arial, sans-serif; color: #333; background: #f4f4f4; margin: 0; padding: 20px;">
  <div style="max-width: 600px; margin: 0 auto; background: #fff; border-radius: 8px; overflow: hidden;">
    <div style="background: {{ banner_color }}; color: #fff; padding: 20px;">
      <h1 style="margin: 0; font-size: 20px;">{{ title }}</h1>
    </div>
    <div style="padding: 20px;">
      <div>{{ message|safe }}</div>
      {% if actions %}
      <div style="margin-top: 30px;">
        {% for action in actions %}
        <a href="{{ base_url }}/notifications/{{ notification_id }}/action/{{ action.action }}"
           style="display: inline-block; padding: 10px 20px; margin: 5px; background-color: {{ action.color }};
                  color: white; text-decoration: none; border-radius: 5px;">{{ action.label }}</a>
        {% endfor %}
      </div>
      {% endif %}
      {% if action_url %}
      <p style="margin-top: 20px;"><a href="{{ base_url }}{{ action_url }}">View in PlantOps</a></p>
      {% endif %}
    </div>
    <div style="padding: 10px 20px; font-size: 12px; color: #999;">
      You are receiving this because of your notification preferences.
      <a href="{{ base_url }}/settings/notifications">Manage preferences</a>
    </div>
  </div>
</body>
</html>
"""

_TEXT_LAYOUT = """\
{{ title }}
{{ '=' * title|length }}

{{ message }}
{% if actions %}
Actions:
{% for action in actions %}- {{ action.label }}: {{ base_url }}/notifications/{{ notification_id }}/action/{{ action.action }}
{% endfor %}{% endif %}{% if action_url %}
View in PlantOps: {{ base_url }}{{ action_url }}
{% endif %}
Manage preferences: {{ base_url }}/settings/notifications
"""

# Message bodies may hold template HTML and go in unescaped; everything else is escaped.
_html_env = Environment(autoescape=True)
_text_env = Environment(autoescape=False, keep_trailing_newline=True)
_html_template = _html_env.from_string(_HTML_LAYOUT)
_text_template = _text_env.from_string(_TEXT_LAYOUT)


def _subject_for(notification) -> str:
    if notification.priority == NotificationPriority.CRITICAL.value:
        return f"[CRITICAL] {notification.title}"
    if notification.priority == NotificationPriority.HIGH.value:
        return f"[HIGH] {notification.title}"
    return notification.title


def _layout_context(notification, base_url: str) -> dict:
    metadata = notification.metadata_dict
    actions = [
        {
            "label": action.get("label", ""),
            "action": action.get("action", ""),
            "color": _ACTION_COLORS.get(action.get("style"), _ACTION_COLORS["primary"]),
        }
        for action in notification.action_list
    ]
    return {
        "notification_id": str(notification.id),
        "title": notification.title,
        "message": notification.message,
        "actions": actions,
        "action_url": metadata.get("actionUrl"),
        "base_url": base_url.rstrip("/"),
        "banner_color": _PRIORITY_COLORS.get(notification.priority, _PRIORITY_COLORS["medium"]),
    }


def format_html_email(notification, base_url: str) -> str:
    return _html_template.render(**_layout_context(notification, base_url))


def format_text_email(notification, base_url: str) -> str:
    return _text_template.render(**_layout_context(notification, base_url))


class EmailSender(ChannelSender):
    """Email channel.

    Without a transport (no SMTP configuration) every send fails cleanly
    with "Email service not configured".
    """

    channel = NotificationChannel.EMAIL.value

    def __init__(self, transport: EmailTransport | None = None, settings: Settings | None = None, directory=None):
        self.transport = transport
        self.settings = settings or get_settings()
        self._directory = directory

    @property
    def directory(self):
        return self._directory or get_directory()

    def recipient_address(self, notification) -> str | None:
        """Explicit address in the notification data wins over the directory."""
        address = notification.data_dict.get("email")
        if address:
            return address
        return self.directory.email_address_of(str(notification.user_id))

    def send(self, notification) -> DeliveryResult:
        if self.transport is None:
            return DeliveryResult.failed("Email service not configured")

        try:
            to = self.recipient_address(notification)
            if not to:
                return DeliveryResult.failed("Recipient email not found")

            result = self.transport.send(
                to=to,
                subject=_subject_for(notification),
                body=format_text_email(notification, self.settings.frontend_url),
                html_body=format_html_email(notification, self.settings.frontend_url),
            )
        except Exception as e:
            logger.error("Email send raised", notification_id=str(notification.id), error=str(e))
            return DeliveryResult.failed(str(e))

        if result.get("status") != "sent":
            return DeliveryResult.failed(result.get("error") or "Email delivery failed")

        logger.info("Email sent", notification_id=str(notification.id), to=to, message_id=result.get("message_id"))
        return DeliveryResult(
            success=True,
            status="sent",
            message_id=result.get("message_id"),
            delivered_at=datetime.now(UTC),
        )
