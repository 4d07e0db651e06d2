"""NotificationStats — status and category counts for a tenant or one user."""

from collections import Counter

from notifications.notification.notification import Notification, NotificationStatus
from protean.utils.globals import current_domain
from pydantic import BaseModel, Field


class NotificationStats(BaseModel):
    total: int = 0
    pending: int = 0  # pending + queued
    sent: int = 0
    delivered: int = 0
    read: int = 0  # read + acknowledged
    failed: int = 0
    permanently_failed: int = 0
    expired: int = 0
    cancelled: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
    by_channel: dict[str, int] = Field(default_factory=dict)
    by_priority: dict[str, int] = Field(default_factory=dict)


_STATUS_BUCKETS = {
    NotificationStatus.PENDING.value: "pending",
    NotificationStatus.QUEUED.value: "pending",
    NotificationStatus.SENT.value: "sent",
    NotificationStatus.DELIVERED.value: "delivered",
    NotificationStatus.READ.value: "read",
    NotificationStatus.ACKNOWLEDGED.value: "read",
    NotificationStatus.FAILED.value: "failed",
    NotificationStatus.EXPIRED.value: "expired",
    NotificationStatus.CANCELLED.value: "cancelled",
}


def get_stats(tenant_id, user_id=None) -> NotificationStats:
    repo = current_domain.repository_for(Notification)
    if user_id is not None:
        found = repo.find_for_user(str(user_id), str(tenant_id))
    else:
        found = repo.find_for_tenant(str(tenant_id))

    buckets = Counter(_STATUS_BUCKETS[n.status] for n in found)
    return NotificationStats(
        total=len(found),
        permanently_failed=sum(
            1 for n in found if n.status == NotificationStatus.FAILED.value and n.retry_count >= n.max_retries
        ),
        by_type=dict(Counter(n.notification_type for n in found)),
        by_channel=dict(Counter(n.channel for n in found)),
        by_priority=dict(Counter(n.priority for n in found)),
        **buckets,
    )
