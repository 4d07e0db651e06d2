"""Domain events for the NotificationPreference aggregate."""

from notifications.domain import notifications
from protean.fields import Boolean, DateTime, Identifier, String


@notifications.event(part_of="NotificationPreference")
class PreferenceCreated:
    """A preference row was created for (user, tenant, type, channel)."""

    __version__ = 1

    preference_id: Identifier(required=True)
    user_id: Identifier(required=True)
    tenant_id: Identifier(required=True)
    notification_type: String(required=True)
    channel: String(required=True)
    enabled: Boolean(required=True)
    created_at: DateTime(required=True)


@notifications.event(part_of="NotificationPreference")
class PreferenceUpdated:
    """A preference's enabled flag or settings changed."""

    __version__ = 1

    preference_id: Identifier(required=True)
    user_id: Identifier(required=True)
    tenant_id: Identifier(required=True)
    notification_type: String(required=True)
    channel: String(required=True)
    enabled: Boolean(required=True)
    updated_at: DateTime(required=True)


@notifications.event(part_of="NotificationPreference")
class PreferenceUnsubscribed:
    """An unsubscribe link was redeemed against this preference."""

    __version__ = 1

    preference_id: Identifier(required=True)
    user_id: Identifier(required=True)
    tenant_id: Identifier(required=True)
    notification_type: String(required=True)
    channel: String(required=True)
    unsubscribed_at: DateTime(required=True)
