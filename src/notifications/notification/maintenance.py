"""Periodic maintenance sweeps: retry, expiry, retention and scheduled delivery.

These run from a background job or cron (see ``src/maintenance.py``) or
from the maintenance routes of the HTTP API. Every sweep is tenant-scoped
except scheduled delivery, which may run across all tenants.

A sweep of one kind for one tenant never runs twice at the same time in
this process. A second caller gets an empty result and a log line.
"""

import threading
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta

import structlog
from notifications.channel import ChannelRegistry
from notifications.config import Settings, get_settings
from notifications.domain import notifications
from notifications.notification.dispatch import dispatch_notifications
from notifications.notification.notification import (
    Notification,
    NotificationChannel,
    NotificationStatus,
)
from notifications.notification.payload import BatchResult
from notifications.utils.clock import as_aware
from protean.fields import DateTime, Identifier, Integer
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

logger = structlog.get_logger(__name__)

# (kind, tenant) sweeps currently running; entries leave as soon as a sweep ends.
_running: set[tuple[str, str | None]] = set()
_running_guard = threading.Lock()


@contextmanager
def _exclusive(kind: str, tenant_id: str | None):
    """Yield True if this caller owns the (kind, tenant) sweep, else False."""
    key = (kind, tenant_id)
    with _running_guard:
        owned = key not in _running
        if owned:
            _running.add(key)

    if not owned:
        logger.info("Sweep already running, skipped", sweep=kind, tenant_id=tenant_id)
        yield False
        return
    try:
        yield True
    finally:
        with _running_guard:
            _running.discard(key)


def _repo():
    return current_domain.repository_for(Notification)


def retry_failed(
    tenant_id,
    registry: ChannelRegistry | None = None,
    settings: Settings | None = None,
) -> BatchResult:
    """Redispatch failed notifications that still have retries left."""
    settings = settings or get_settings()
    tenant_id = str(tenant_id)

    with _exclusive("retry", tenant_id) as acquired:
        if not acquired:
            return BatchResult()

        repo = _repo()
        failed = repo.find_for_tenant(tenant_id, status=NotificationStatus.FAILED.value)
        retryable = [n for n in failed if n.can_retry][: settings.sweep_batch_size]
        for notification in retryable:
            notification.retry()
            repo.add(notification)

        batch = BatchResult.from_results(dispatch_notifications(retryable, registry=registry, settings=settings))

    logger.info(
        "Failed notifications retried",
        tenant_id=tenant_id,
        retried=batch.total_count,
        succeeded=batch.success_count,
        failed=batch.failure_count,
    )
    return batch


def cleanup_expired(tenant_id, as_of: datetime | None = None) -> int:
    """Expire pending and queued notifications whose ``expires_at`` has passed."""
    as_of = as_aware(as_of) or datetime.now(UTC)
    tenant_id = str(tenant_id)

    with _exclusive("expire", tenant_id) as acquired:
        if not acquired:
            return 0

        repo = _repo()
        expired = 0
        for status in (NotificationStatus.PENDING, NotificationStatus.QUEUED):
            for notification in repo.find_for_tenant(tenant_id, status=status.value):
                expires_at = as_aware(notification.expires_at)
                if expires_at is None or expires_at >= as_of:
                    continue
                notification.expire()
                repo.add(notification)
                expired += 1

    logger.info("Expired notifications cleaned up", tenant_id=tenant_id, expired=expired)
    return expired


def clear_old(tenant_id, days_to_keep: int | None = None) -> int:
    """Delete read or acknowledged in-app notifications older than ``days_to_keep``."""
    if days_to_keep is None:
        days_to_keep = get_settings().in_app_retention_days
    cutoff = datetime.now(UTC) - timedelta(days=days_to_keep)
    tenant_id = str(tenant_id)

    with _exclusive("clear_old", tenant_id) as acquired:
        if not acquired:
            return 0

        repo = _repo()
        removed = 0
        for status in (NotificationStatus.READ, NotificationStatus.ACKNOWLEDGED):
            candidates = repo.find_for_tenant(
                tenant_id,
                status=status.value,
                channel=NotificationChannel.IN_APP.value,
            )
            for notification in candidates:
                created_at = as_aware(notification.created_at)
                if created_at is None or created_at >= cutoff:
                    continue
                repo.remove(notification)
                removed += 1

    logger.info("Old notifications cleared", tenant_id=tenant_id, days_to_keep=days_to_keep, removed=removed)
    return removed


def process_scheduled(
    tenant_id=None,
    as_of: datetime | None = None,
    registry: ChannelRegistry | None = None,
    settings: Settings | None = None,
) -> BatchResult:
    """Dispatch queued notifications that are due and have not expired.

    Queued notifications that are already past ``expires_at`` are left for
    ``cleanup_expired``.
    """
    settings = settings or get_settings()
    as_of = as_aware(as_of) or datetime.now(UTC)
    tenant_id = str(tenant_id) if tenant_id is not None else None

    with _exclusive("scheduled", tenant_id) as acquired:
        if not acquired:
            return BatchResult()

        criteria = {"status": NotificationStatus.QUEUED.value}
        if tenant_id is not None:
            criteria["tenant_id"] = tenant_id
        queued = _repo().find_matching(**criteria)

        due = []
        for notification in queued:
            scheduled_for = as_aware(notification.scheduled_for)
            expires_at = as_aware(notification.expires_at)
            if scheduled_for is not None and scheduled_for > as_of:
                continue
            if expires_at is not None and expires_at < as_of:
                continue
            due.append(notification)
        due = due[: settings.sweep_batch_size]

        batch = BatchResult.from_results(dispatch_notifications(due, registry=registry, settings=settings))

    logger.info(
        "Scheduled notifications processed",
        tenant_id=tenant_id,
        dispatched=batch.total_count,
        succeeded=batch.success_count,
        failed=batch.failure_count,
        as_of=as_of.isoformat(),
    )
    return batch


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@notifications.command(part_of="Notification")
class RetryFailedNotifications:
    """Request to redispatch a tenant's failed notifications."""

    tenant_id: Identifier(required=True)


@notifications.command(part_of="Notification")
class ExpireNotifications:
    tenant_id: Identifier(required=True)
    as_of: DateTime()  # Optional: defaults to now


@notifications.command(part_of="Notification")
class ClearOldNotifications:
    tenant_id: Identifier(required=True)
    days_to_keep: Integer(min_value=0)


@notifications.command(part_of="Notification")
class ProcessScheduledNotifications:
    """Request to dispatch all due scheduled notifications."""

    tenant_id: Identifier()  # Optional: all tenants when omitted
    as_of: DateTime()


@notifications.command_handler(part_of=Notification)
class NotificationMaintenanceHandler:
    @handle(RetryFailedNotifications)
    def retry_failed(self, command: RetryFailedNotifications):
        return retry_failed(command.tenant_id)

    @handle(ExpireNotifications)
    def expire(self, command: ExpireNotifications):
        return cleanup_expired(command.tenant_id, as_of=command.as_of)

    @handle(ClearOldNotifications)
    def clear_old(self, command: ClearOldNotifications):
        return clear_old(command.tenant_id, days_to_keep=command.days_to_keep)

    @handle(ProcessScheduledNotifications)
    def process_scheduled(self, command: ProcessScheduledNotifications):
        return process_scheduled(command.tenant_id, as_of=command.as_of)
