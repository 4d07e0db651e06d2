"""Notification dispatcher — fans one send request out to (recipient, channel) pairs.

For each send:

1. Resolve recipients: explicit user ids, then role members from the
   directory, duplicates collapsed in first-seen order.
2. Render the template once, if one is named. An unknown template id
   fails the whole send.
3. For every (recipient, channel) pair, keep it only if the recipient has
   an enabled preference row for that event type and channel.
4. Persist a PENDING notification per surviving pair.
5. Hold pairs that are scheduled for later or fall inside the recipient's
   quiet hours (QUEUED); dispatch the rest.
6. Return counts plus the per-pair results.

A failure on one pair never affects its siblings.
"""

from datetime import UTC, datetime

import structlog
from notifications.channel import ChannelRegistry
from notifications.config import Settings, get_settings
from notifications.directory import get_directory
from notifications.notification.dispatch import dispatch_notifications
from notifications.notification.notification import (
    OUT_OF_BAND_CHANNELS,
    Notification,
    NotificationPriority,
)
from notifications.notification.payload import BatchResult, NotificationPayload, NotificationResult
from notifications.preference.store import PreferenceStore
from notifications.template.store import TemplateStore
from notifications.utils.clock import as_aware
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    def __init__(
        self,
        preferences: PreferenceStore | None = None,
        templates: TemplateStore | None = None,
        directory=None,
        registry: ChannelRegistry | None = None,
        settings: Settings | None = None,
    ):
        self.preferences = preferences or PreferenceStore()
        self.templates = templates or TemplateStore()
        self._directory = directory
        self.registry = registry
        self.settings = settings or get_settings()

    @property
    def directory(self):
        return self._directory or get_directory()

    def resolve_recipients(self, payload: NotificationPayload) -> list[str]:
        recipients = list(dict.fromkeys(str(u) for u in payload.user_ids))
        for role in payload.roles:
            for user_id in self.directory.users_with_role(payload.tenant_id, role):
                if str(user_id) not in recipients:
                    recipients.append(str(user_id))
        return recipients

    def _content(self, payload: NotificationPayload) -> tuple[str, str, str | None]:
        if not payload.template_id:
            return payload.title, payload.message, None

        template = self.templates.get_template(payload.template_id)
        rendered = self.templates.render_template(template, payload.template_data)
        return rendered.subject, rendered.body, str(template.id)

    def _hold_until(self, payload: NotificationPayload, channel, preference, now: datetime):
        """Return ``(until, reason)`` if this pair must wait, else ``(None, None)``."""
        scheduled_for = as_aware(payload.scheduled_for)
        if scheduled_for is not None and scheduled_for > now:
            return scheduled_for, "scheduled"

        if channel in OUT_OF_BAND_CHANNELS and payload.priority != NotificationPriority.CRITICAL:
            quiet_end = preference.quiet_hours_end(now)
            if quiet_end is not None:
                return quiet_end, "quiet_hours"
        return None, None

    def send(self, payload: NotificationPayload | dict) -> BatchResult:
        """Create and dispatch notifications for every eligible (recipient, channel) pair.

        Raises:
            pydantic.ValidationError: if ``payload`` is malformed.
            TemplateNotFoundError: if ``payload.template_id`` does not exist.
        """
        if not isinstance(payload, NotificationPayload):
            payload = NotificationPayload.model_validate(payload)

        title, message, template_id = self._content(payload)
        recipients = self.resolve_recipients(payload)
        notification_type = payload.notification_type.value
        tenant_id = payload.tenant_id
        now = datetime.now(UTC)

        repo = current_domain.repository_for(Notification)
        slots: list[NotificationResult | Notification] = []
        to_dispatch: list[Notification] = []
        skipped = 0

        for user_id in recipients:
            if self.settings.auto_seed_preferences and not self.preferences.has_preferences(user_id, tenant_id):
                self.preferences.set_defaults(user_id, tenant_id)

            for channel in payload.channels:
                preference = self.preferences.get_preference(user_id, tenant_id, notification_type, channel.value)
                if preference is None or not preference.enabled:
                    skipped += 1
                    continue

                notification = Notification.create(
                    tenant_id=tenant_id,
                    user_id=user_id,
                    notification_type=notification_type,
                    channel=channel.value,
                    title=title[:500],
                    message=message,
                    priority=payload.priority.value,
                    data=payload.data,
                    metadata=payload.metadata,
                    actions=[a.model_dump(exclude_none=True) for a in payload.actions] or None,
                    template_id=template_id,
                    group_id=payload.group_id,
                    scheduled_for=as_aware(payload.scheduled_for),
                    expires_at=as_aware(payload.expires_at),
                    max_retries=self.settings.max_retries,
                )
                repo.add(notification)

                hold_until, reason = self._hold_until(payload, channel, preference, now)
                if hold_until is not None:
                    notification.queue(hold_until, reason=reason)
                    repo.add(notification)
                    slots.append(
                        NotificationResult(
                            notification_id=str(notification.id),
                            user_id=user_id,
                            channel=channel.value,
                            success=True,
                            status=notification.status,
                        )
                    )
                else:
                    slots.append(notification)
                    to_dispatch.append(notification)

        dispatched = iter(dispatch_notifications(to_dispatch, registry=self.registry, settings=self.settings))
        results = [next(dispatched) if isinstance(slot, Notification) else slot for slot in slots]

        batch = BatchResult.from_results(results, skipped_count=skipped)
        logger.info(
            "Notification batch sent",
            tenant_id=tenant_id,
            notification_type=notification_type,
            recipients=len(recipients),
            total=batch.total_count,
            succeeded=batch.success_count,
            failed=batch.failure_count,
            skipped=batch.skipped_count,
        )
        return batch


def send_notification(payload: NotificationPayload | dict) -> BatchResult:
    """Send with the process-wide collaborators."""
    return NotificationDispatcher().send(payload)
