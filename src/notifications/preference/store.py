"""Preference store — reads and writes NotificationPreference rows.

All writes go through the aggregate so every change raises its event.
"""

import base64
import binascii
import time
from datetime import UTC, datetime

import structlog
from notifications.notification.notification import OUT_OF_BAND_CHANNELS, NotificationChannel
from notifications.preference.defaults import DEFAULT_PREFERENCES
from notifications.preference.preference import NotificationPreference, quiet_hours_end
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)


def encode_unsubscribe_token(user_id: str, channel: str, issued_at_ms: int | None = None) -> str:
    issued_at_ms = issued_at_ms if issued_at_ms is not None else int(time.time() * 1000)
    raw = f"{user_id}:{channel}:{issued_at_ms}".encode()
    return base64.urlsafe_b64encode(raw).decode()


def decode_unsubscribe_token(token: str) -> tuple[str, str, int] | None:
    """Return ``(user_id, channel, issued_at_ms)`` or None if the token is malformed."""
    try:
        raw = base64.urlsafe_b64decode(token.encode()).decode()
        user_id, channel, issued_at = raw.rsplit(":", 2)
        return user_id, channel, int(issued_at)
    except (binascii.Error, UnicodeError, ValueError, AttributeError):
        return None


class PreferenceStore:
    """Per-(user, tenant, type, channel) opt-in storage."""

    @property
    def repo(self):
        return current_domain.repository_for(NotificationPreference)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def get_preference(self, user_id, tenant_id, notification_type, channel) -> NotificationPreference | None:
        return self.repo.find_one(str(user_id), str(tenant_id), notification_type, channel)

    def get_user_preferences(self, user_id, tenant_id) -> list[NotificationPreference]:
        return self.repo.find_for_user(str(user_id), str(tenant_id))

    def has_preferences(self, user_id, tenant_id) -> bool:
        return bool(self.get_user_preferences(user_id, tenant_id))

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def upsert_preference(
        self, user_id, tenant_id, notification_type, channel, enabled=True, settings=None
    ) -> NotificationPreference:
        """Create the row, or overwrite ``enabled`` and shallow-merge ``settings`` into it."""
        repo = self.repo
        preference = repo.find_one(str(user_id), str(tenant_id), notification_type, channel)
        if preference is None:
            preference = NotificationPreference.create(
                user_id=str(user_id),
                tenant_id=str(tenant_id),
                notification_type=notification_type,
                channel=channel,
                enabled=enabled,
                settings=settings,
            )
        else:
            preference.update(enabled=enabled, settings=settings)
        repo.add(preference)
        return preference

    def bulk_upsert(self, user_id, tenant_id, items) -> list[NotificationPreference]:
        """Upsert many rows. ``items`` are dicts with notification_type, channel, enabled, settings."""
        return [
            self.upsert_preference(
                user_id,
                tenant_id,
                item["notification_type"],
                item["channel"],
                enabled=item.get("enabled", True),
                settings=item.get("settings"),
            )
            for item in items
        ]

    def set_defaults(self, user_id, tenant_id) -> int:
        """Insert the default matrix rows the user is missing. Existing rows are left alone."""
        repo = self.repo
        existing = {(p.notification_type, p.channel) for p in repo.find_for_user(str(user_id), str(tenant_id))}

        created = 0
        for notification_type, channel, enabled in DEFAULT_PREFERENCES:
            if (notification_type, channel) in existing:
                continue
            repo.add(
                NotificationPreference.create(
                    user_id=str(user_id),
                    tenant_id=str(tenant_id),
                    notification_type=notification_type,
                    channel=channel,
                    enabled=enabled,
                )
            )
            created += 1

        logger.info("Default preferences seeded", user_id=str(user_id), tenant_id=str(tenant_id), created=created)
        return created

    def _set_all(self, user_id, tenant_id, enabled: bool) -> int:
        repo = self.repo
        changed = 0
        for preference in repo.find_for_user(str(user_id), str(tenant_id)):
            if preference.set_enabled(enabled):
                repo.add(preference)
                changed += 1
        return changed

    def enable_all(self, user_id, tenant_id) -> int:
        return self._set_all(user_id, tenant_id, True)

    def disable_all(self, user_id, tenant_id) -> int:
        return self._set_all(user_id, tenant_id, False)

    def update_channel_settings(self, user_id, tenant_id, channel, settings: dict) -> int:
        """Merge ``settings`` into every row the user has for ``channel``."""
        repo = self.repo
        preferences = repo.find_for_user(str(user_id), str(tenant_id), channel=channel)
        for preference in preferences:
            preference.update(settings=settings)
            repo.add(preference)
        return len(preferences)

    # -------------------------------------------------------------------
    # Unsubscribe links
    # -------------------------------------------------------------------
    def generate_unsubscribe_token(self, user_id, channel) -> str:
        """Issue a token and store it on every row the user has for ``channel``."""
        if NotificationChannel(channel) not in OUT_OF_BAND_CHANNELS:
            raise ValidationError({"channel": [f"Unsubscribe links are not issued for {channel}"]})

        token = encode_unsubscribe_token(str(user_id), channel)
        repo = self.repo
        for preference in repo.find_for_user(str(user_id), channel=channel):
            preference.store_unsubscribe_token(channel, token)
            repo.add(preference)
        return token

    def unsubscribe_by_token(self, token: str) -> bool:
        """Disable the rows of the token's channel whose stored token matches.

        Returns False for malformed tokens and for tokens that match nothing.
        """
        decoded = decode_unsubscribe_token(token)
        if decoded is None:
            logger.info("Malformed unsubscribe token")
            return False

        user_id, channel, _ = decoded
        repo = self.repo
        redeemed = 0
        for preference in repo.find_for_user(user_id, channel=channel):
            if preference.redeem_unsubscribe_token(token):
                repo.add(preference)
                redeemed += 1

        logger.info("Unsubscribe token redeemed", user_id=user_id, channel=channel, rows=redeemed)
        return redeemed > 0

    # -------------------------------------------------------------------
    # Quiet hours
    # -------------------------------------------------------------------
    def get_quiet_hours(self, user_id, tenant_id) -> dict | None:
        """Return the first quiet-hours window configured on any of the user's rows."""
        for preference in self.get_user_preferences(user_id, tenant_id):
            quiet_hours = preference.quiet_hours
            if quiet_hours:
                return quiet_hours
        return None

    def is_in_quiet_hours(self, user_id, tenant_id, at: datetime | None = None) -> bool:
        at = at or datetime.now(UTC)
        return quiet_hours_end(self.get_quiet_hours(user_id, tenant_id), at) is not None
