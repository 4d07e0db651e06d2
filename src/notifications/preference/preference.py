"""NotificationPreference aggregate (CQRS) — per-channel opt-in for one event type.

One row per (user, tenant, notification type, channel). The dispatcher
only sends on a pair whose row exists and is enabled. Channel settings are
a free-form JSON object; the keys read here are ``quiet_hours``
(``{enabled, start_time, end_time, timezone}``) and contact overrides.
"""

import json
from datetime import UTC, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from notifications.domain import notifications
from notifications.notification.notification import NotificationChannel, NotificationType
from notifications.preference.events import (
    PreferenceCreated,
    PreferenceUnsubscribed,
    PreferenceUpdated,
)
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, String, Text


def parse_clock(value: str, label: str) -> time:
    """Parse an ``HH:MM`` string, raising ValidationError on bad input."""
    parts = value.split(":") if isinstance(value, str) else []
    try:
        if len(parts) != 2:
            raise ValueError
        hour, minute = int(parts[0]), int(parts[1])
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError
    except ValueError:
        raise ValidationError({f"quiet_hours_{label}": [f"Invalid time format: {value}. Use HH:MM"]}) from None
    return time(hour, minute)


def validate_quiet_hours(quiet_hours: dict) -> None:
    if not isinstance(quiet_hours, dict):
        raise ValidationError({"quiet_hours": ["Quiet hours must be an object"]})
    if not quiet_hours.get("enabled", True):
        return
    parse_clock(quiet_hours.get("start_time"), "start")
    parse_clock(quiet_hours.get("end_time"), "end")
    timezone = quiet_hours.get("timezone") or "UTC"
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError({"quiet_hours_timezone": [f"Unknown timezone: {timezone}"]}) from None


def quiet_hours_end(quiet_hours: dict | None, at: datetime) -> datetime | None:
    """Return when the quiet window containing ``at`` ends, or None if ``at`` is outside it.

    Windows may cross midnight (22:00 → 08:00). Start is inclusive, end exclusive.
    """
    if not quiet_hours or not quiet_hours.get("enabled", True):
        return None

    tz = ZoneInfo(quiet_hours.get("timezone") or "UTC")
    start = parse_clock(quiet_hours.get("start_time"), "start")
    end = parse_clock(quiet_hours.get("end_time"), "end")
    if start == end:
        return None

    if at.tzinfo is None:
        at = at.replace(tzinfo=UTC)
    local = at.astimezone(tz)
    clock = local.time().replace(second=0, microsecond=0)

    if start < end:
        inside = start <= clock < end
        end_date = local.date()
    else:
        inside = clock >= start or clock < end
        end_date = local.date() + timedelta(days=1) if clock >= start else local.date()

    if not inside:
        return None
    return datetime.combine(end_date, end, tzinfo=tz).astimezone(UTC)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@notifications.aggregate
class NotificationPreference:
    """Whether ``user_id`` wants ``notification_type`` on ``channel`` in ``tenant_id``."""

    user_id: Identifier(required=True)
    tenant_id: Identifier(required=True)
    notification_type: String(choices=NotificationType, required=True)
    channel: String(choices=NotificationChannel, required=True)

    enabled: Boolean(default=True)
    settings: Text()  # JSON object
    unsubscribe_tokens: Text()  # JSON: {channel: token}

    created_at: DateTime()
    updated_at: DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id, tenant_id, notification_type, channel, enabled=True, settings=None):
        settings = settings or {}
        if "quiet_hours" in settings:
            validate_quiet_hours(settings["quiet_hours"])

        now = datetime.now(UTC)
        preference = cls(
            user_id=user_id,
            tenant_id=tenant_id,
            notification_type=notification_type,
            channel=channel,
            enabled=enabled,
            settings=json.dumps(settings),
            unsubscribe_tokens=json.dumps({}),
            created_at=now,
            updated_at=now,
        )

        preference.raise_(
            PreferenceCreated(
                preference_id=str(preference.id),
                user_id=str(user_id),
                tenant_id=str(tenant_id),
                notification_type=notification_type,
                channel=channel,
                enabled=enabled,
                created_at=now,
            )
        )

        return preference

    # -------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------
    @property
    def settings_dict(self) -> dict:
        return json.loads(self.settings) if self.settings else {}

    @property
    def tokens(self) -> dict:
        return json.loads(self.unsubscribe_tokens) if self.unsubscribe_tokens else {}

    @property
    def quiet_hours(self) -> dict | None:
        return self.settings_dict.get("quiet_hours")

    def quiet_hours_end(self, at: datetime) -> datetime | None:
        return quiet_hours_end(self.quiet_hours, at)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def _record_update(self):
        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(
            PreferenceUpdated(
                preference_id=str(self.id),
                user_id=str(self.user_id),
                tenant_id=str(self.tenant_id),
                notification_type=self.notification_type,
                channel=self.channel,
                enabled=self.enabled,
                updated_at=now,
            )
        )

    def update(self, enabled=None, settings=None):
        """Overwrite ``enabled`` (when given) and shallow-merge ``settings``."""
        if enabled is None and settings is None:
            return
        if settings is not None:
            if "quiet_hours" in settings and settings["quiet_hours"] is not None:
                validate_quiet_hours(settings["quiet_hours"])
            merged = self.settings_dict
            merged.update(settings)
            self.settings = json.dumps(merged)
        if enabled is not None:
            self.enabled = enabled
        self._record_update()

    def set_enabled(self, enabled: bool) -> bool:
        """Returns True if the flag changed."""
        if self.enabled == enabled:
            return False
        self.enabled = enabled
        self._record_update()
        return True

    def store_unsubscribe_token(self, channel: str, token: str) -> None:
        tokens = self.tokens
        tokens[channel] = token
        self.unsubscribe_tokens = json.dumps(tokens)
        self.updated_at = datetime.now(UTC)

    def redeem_unsubscribe_token(self, token: str) -> bool:
        """Disable this row if ``token`` is the one stored for its channel."""
        if self.tokens.get(self.channel) != token:
            return False

        now = datetime.now(UTC)
        self.enabled = False
        self.updated_at = now
        self.raise_(
            PreferenceUnsubscribed(
                preference_id=str(self.id),
                user_id=str(self.user_id),
                tenant_id=str(self.tenant_id),
                notification_type=self.notification_type,
                channel=self.channel,
                unsubscribed_at=now,
            )
        )
        return True


def preference_to_dict(preference) -> dict:
    return {
        "id": str(preference.id),
        "userId": str(preference.user_id),
        "tenantId": str(preference.tenant_id),
        "type": preference.notification_type,
        "channel": preference.channel,
        "enabled": preference.enabled,
        "settings": preference.settings_dict,
    }
