"""Preference management commands + handlers — defaults, blanket toggles, channel settings."""

import json

from notifications.domain import notifications
from notifications.preference.preference import NotificationPreference
from notifications.preference.store import PreferenceStore
from protean.fields import Identifier, String, Text
from protean.utils.mixins import handle


@notifications.command(part_of="NotificationPreference")
class SetDefaultPreferences:
    """Seed the default preference matrix for a user (missing rows only)."""

    user_id: Identifier(required=True)
    tenant_id: Identifier(required=True)


@notifications.command(part_of="NotificationPreference")
class EnableAllPreferences:
    """Turn on every preference row a user has in a tenant."""

    user_id: Identifier(required=True)
    tenant_id: Identifier(required=True)


@notifications.command(part_of="NotificationPreference")
class DisableAllPreferences:
    """Turn off every preference row a user has in a tenant."""

    user_id: Identifier(required=True)
    tenant_id: Identifier(required=True)


@notifications.command(part_of="NotificationPreference")
class UpdateChannelSettings:
    """Merge settings into every row a user has for one channel."""

    user_id: Identifier(required=True)
    tenant_id: Identifier(required=True)
    channel: String(required=True, max_length=20)
    settings: Text(required=True)  # JSON object


@notifications.command_handler(part_of=NotificationPreference)
class ManagePreferencesHandler:
    @handle(SetDefaultPreferences)
    def set_defaults(self, command: SetDefaultPreferences):
        return PreferenceStore().set_defaults(command.user_id, command.tenant_id)

    @handle(EnableAllPreferences)
    def enable_all(self, command: EnableAllPreferences):
        return PreferenceStore().enable_all(command.user_id, command.tenant_id)

    @handle(DisableAllPreferences)
    def disable_all(self, command: DisableAllPreferences):
        return PreferenceStore().disable_all(command.user_id, command.tenant_id)

    @handle(UpdateChannelSettings)
    def update_channel_settings(self, command: UpdateChannelSettings):
        return PreferenceStore().update_channel_settings(
            command.user_id, command.tenant_id, command.channel, json.loads(command.settings)
        )
