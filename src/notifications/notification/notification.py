"""Notification aggregate (CQRS) — one delivery to one recipient on one channel.

A notification is created by the dispatcher for every (recipient, channel)
pair that survives preference gating, then moves through its delivery
lifecycle as the channel sender reports back and the recipient reads or
acknowledges it.

State Machine (9 states):
    PENDING → QUEUED (scheduled or held by quiet hours)
    PENDING/QUEUED → SENT | DELIVERED | FAILED
    SENT → DELIVERED
    SENT/DELIVERED → READ → ACKNOWLEDGED
    SENT/DELIVERED → ACKNOWLEDGED
    FAILED → (retry, bounded by max_retries) → PENDING
    PENDING/QUEUED → EXPIRED | CANCELLED
"""

import json
from datetime import UTC, datetime
from enum import Enum

from notifications.domain import notifications
from notifications.notification.events import (
    NotificationAcknowledged,
    NotificationCancelled,
    NotificationCreated,
    NotificationDelivered,
    NotificationExpired,
    NotificationFailed,
    NotificationQueued,
    NotificationRead,
    NotificationRetried,
    NotificationSent,
)
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class NotificationType(Enum):
    # Orders
    ORDER_CREATED = "order.created"
    ORDER_UPDATED = "order.updated"
    ORDER_COMPLETED = "order.completed"
    ORDER_CANCELLED = "order.cancelled"
    ORDER_DELAYED = "order.delayed"

    # Inventory
    INVENTORY_LOW_STOCK = "inventory.low_stock"
    INVENTORY_OUT_OF_STOCK = "inventory.out_of_stock"
    INVENTORY_RECEIVED = "inventory.received"
    INVENTORY_EXPIRED = "inventory.expired"
    INVENTORY_REORDER = "inventory.reorder"

    # Production
    PRODUCTION_STARTED = "production.started"
    PRODUCTION_COMPLETED = "production.completed"
    PRODUCTION_DELAYED = "production.delayed"
    PRODUCTION_ERROR = "production.error"

    # Tasks
    TASK_ASSIGNED = "task.assigned"
    TASK_UPDATED = "task.updated"
    TASK_COMPLETED = "task.completed"
    TASK_OVERDUE = "task.overdue"

    # Quality
    QUALITY_ALERT = "quality.alert"
    QUALITY_INSPECTION_FAILED = "quality.inspection_failed"
    QUALITY_NCR_CREATED = "quality.ncr_created"
    QUALITY_NCR_RESOLVED = "quality.ncr_resolved"

    # Maintenance
    MAINTENANCE_DUE = "maintenance.due"
    MAINTENANCE_SCHEDULED = "maintenance.scheduled"
    MAINTENANCE_COMPLETED = "maintenance.completed"
    EQUIPMENT_BREAKDOWN = "equipment.breakdown"

    # System
    SYSTEM_ALERT = "system.alert"
    SYSTEM_UPDATE = "system.update"
    SYSTEM_MAINTENANCE = "system.maintenance"
    SYSTEM_ERROR = "system.error"

    # Users
    USER_WELCOME = "user.welcome"
    USER_PASSWORD_RESET = "user.password_reset"
    USER_ACCOUNT_LOCKED = "user.account_locked"
    USER_ROLE_CHANGED = "user.role_changed"

    CUSTOM = "custom"


class NotificationChannel(Enum):
    EMAIL = "email"
    IN_APP = "in_app"
    SMS = "sms"
    PUSH = "push"
    WEBHOOK = "webhook"
    WEBSOCKET = "websocket"


# Channels that leave the application and can be muted by quiet hours or
# unsubscribe links.
OUT_OF_BAND_CHANNELS = frozenset(
    {
        NotificationChannel.EMAIL,
        NotificationChannel.SMS,
        NotificationChannel.PUSH,
        NotificationChannel.WEBHOOK,
    }
)


class NotificationPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class NotificationStatus(Enum):
    PENDING = "pending"
    QUEUED = "queued"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    ACKNOWLEDGED = "acknowledged"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


TERMINAL_STATUSES = frozenset(
    {
        NotificationStatus.ACKNOWLEDGED,
        NotificationStatus.EXPIRED,
        NotificationStatus.CANCELLED,
    }
)


# ---------------------------------------------------------------------------
# State Machine
# ---------------------------------------------------------------------------
_VALID_TRANSITIONS = {
    NotificationStatus.PENDING: {
        NotificationStatus.QUEUED,
        NotificationStatus.SENT,
        NotificationStatus.DELIVERED,
        NotificationStatus.FAILED,
        NotificationStatus.EXPIRED,
        NotificationStatus.CANCELLED,
    },
    NotificationStatus.QUEUED: {
        NotificationStatus.SENT,
        NotificationStatus.DELIVERED,
        NotificationStatus.FAILED,
        NotificationStatus.EXPIRED,
        NotificationStatus.CANCELLED,
    },
    NotificationStatus.SENT: {
        NotificationStatus.DELIVERED,
        NotificationStatus.READ,
        NotificationStatus.ACKNOWLEDGED,
    },
    NotificationStatus.DELIVERED: {
        NotificationStatus.READ,
        NotificationStatus.ACKNOWLEDGED,
    },
    NotificationStatus.READ: {
        NotificationStatus.ACKNOWLEDGED,
    },
    NotificationStatus.FAILED: {
        NotificationStatus.PENDING,  # Via retry
    },
    NotificationStatus.ACKNOWLEDGED: set(),  # Terminal
    NotificationStatus.EXPIRED: set(),  # Terminal
    NotificationStatus.CANCELLED: set(),  # Terminal
}


def _dumps(value):
    return json.dumps(value) if value is not None else None


def _loads(value):
    return json.loads(value) if value else None


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@notifications.aggregate
class Notification:
    """A single notification for one recipient on one channel.

    The channel is always a single value; a multi-channel send produces one
    Notification per channel so each can fail and retry independently.
    """

    # Scope and recipient
    tenant_id: Identifier(required=True)
    user_id: Identifier(required=True)

    # Classification
    notification_type: String(choices=NotificationType, required=True)
    channel: String(choices=NotificationChannel, required=True)
    priority: String(choices=NotificationPriority, default=NotificationPriority.MEDIUM.value)

    # Status
    status: String(choices=NotificationStatus, default=NotificationStatus.PENDING.value)

    # Content
    title: String(required=True, max_length=500)
    message: Text(required=True)
    data: Text()  # JSON
    notification_metadata: Text()  # JSON: entityType, entityId, actionUrl, category, tags
    actions: Text()  # JSON list of {label, action, style, data}

    # Correlation
    template_id: Identifier()
    group_id: Identifier()

    # Lifecycle timestamps
    scheduled_for: DateTime()
    sent_at: DateTime()
    delivered_at: DateTime()
    read_at: DateTime()
    acknowledged_at: DateTime()
    expires_at: DateTime()

    # Retry
    retry_count: Integer(default=0)
    max_retries: Integer(default=3)
    last_error: String(max_length=1000)

    created_at: DateTime()
    updated_at: DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        tenant_id,
        user_id,
        notification_type,
        channel,
        title,
        message,
        priority=NotificationPriority.MEDIUM.value,
        data=None,
        metadata=None,
        actions=None,
        template_id=None,
        group_id=None,
        scheduled_for=None,
        expires_at=None,
        max_retries=3,
    ):
        """Create a new notification in PENDING status."""
        now = datetime.now(UTC)

        notification = cls(
            tenant_id=tenant_id,
            user_id=user_id,
            notification_type=notification_type,
            channel=channel,
            priority=priority,
            status=NotificationStatus.PENDING.value,
            title=title,
            message=message,
            data=_dumps(data),
            notification_metadata=_dumps(metadata),
            actions=_dumps(actions),
            template_id=template_id,
            group_id=group_id,
            scheduled_for=scheduled_for,
            expires_at=expires_at,
            retry_count=0,
            max_retries=max_retries,
            created_at=now,
            updated_at=now,
        )

        notification.raise_(
            NotificationCreated(
                notification_id=str(notification.id),
                tenant_id=str(tenant_id),
                user_id=str(user_id),
                notification_type=notification_type,
                channel=channel,
                priority=priority,
                title=title,
                template_id=template_id,
                scheduled_for=scheduled_for,
                created_at=now,
            )
        )

        return notification

    # -------------------------------------------------------------------
    # JSON accessors
    # -------------------------------------------------------------------
    @property
    def data_dict(self) -> dict:
        return _loads(self.data) or {}

    @property
    def metadata_dict(self) -> dict:
        return _loads(self.notification_metadata) or {}

    @property
    def action_list(self) -> list:
        return _loads(self.actions) or []

    @property
    def is_terminal(self) -> bool:
        return NotificationStatus(self.status) in TERMINAL_STATUSES

    @property
    def can_retry(self) -> bool:
        return NotificationStatus(self.status) == NotificationStatus.FAILED and self.retry_count < self.max_retries

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        """Validate state machine transition."""
        current = NotificationStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def queue(self, scheduled_for, reason="scheduled"):
        """Hold the notification until ``scheduled_for``."""
        self._assert_can_transition(NotificationStatus.QUEUED)

        now = datetime.now(UTC)
        self.status = NotificationStatus.QUEUED.value
        self.scheduled_for = scheduled_for
        self.updated_at = now

        self.raise_(
            NotificationQueued(
                notification_id=str(self.id),
                tenant_id=str(self.tenant_id),
                channel=self.channel,
                scheduled_for=scheduled_for,
                reason=reason,
                queued_at=now,
            )
        )

    def mark_sent(self, sent_at=None):
        """Mark notification as handed off to the channel."""
        self._assert_can_transition(NotificationStatus.SENT)

        now = sent_at or datetime.now(UTC)
        self.status = NotificationStatus.SENT.value
        self.sent_at = now
        self.last_error = None
        self.updated_at = now

        self.raise_(
            NotificationSent(
                notification_id=str(self.id),
                tenant_id=str(self.tenant_id),
                user_id=str(self.user_id),
                channel=self.channel,
                sent_at=now,
            )
        )

    def mark_delivered(self, delivered_at=None):
        """Mark notification as confirmed delivered.

        Channels that confirm delivery synchronously (in-app) go straight
        from PENDING to DELIVERED, so ``sent_at`` is stamped here too.
        """
        self._assert_can_transition(NotificationStatus.DELIVERED)

        now = delivered_at or datetime.now(UTC)
        self.status = NotificationStatus.DELIVERED.value
        if self.sent_at is None:
            self.sent_at = now
        self.delivered_at = now
        self.last_error = None
        self.updated_at = now

        self.raise_(
            NotificationDelivered(
                notification_id=str(self.id),
                tenant_id=str(self.tenant_id),
                user_id=str(self.user_id),
                channel=self.channel,
                delivered_at=now,
            )
        )

    def mark_failed(self, reason):
        """Mark notification as failed. Retry eligibility is decided by the retry sweep."""
        self._assert_can_transition(NotificationStatus.FAILED)

        reason = (reason or "Unknown dispatch error")[:1000]
        now = datetime.now(UTC)
        self.status = NotificationStatus.FAILED.value
        self.last_error = reason
        self.updated_at = now

        self.raise_(
            NotificationFailed(
                notification_id=str(self.id),
                tenant_id=str(self.tenant_id),
                user_id=str(self.user_id),
                notification_type=self.notification_type,
                channel=self.channel,
                reason=reason,
                retry_count=self.retry_count,
                max_retries=self.max_retries,
                failed_at=now,
            )
        )

    def mark_read(self, read_at=None):
        """Mark notification as read by its recipient.

        Returns False without changing anything when the notification is
        already read or acknowledged.
        """
        if NotificationStatus(self.status) in (NotificationStatus.READ, NotificationStatus.ACKNOWLEDGED):
            return False
        self._assert_can_transition(NotificationStatus.READ)

        now = read_at or datetime.now(UTC)
        self.status = NotificationStatus.READ.value
        self.read_at = now
        self.updated_at = now

        self.raise_(
            NotificationRead(
                notification_id=str(self.id),
                user_id=str(self.user_id),
                read_at=now,
            )
        )
        return True

    def acknowledge(self, acknowledged_at=None):
        """Mark notification as acknowledged. Reading first is not required."""
        if NotificationStatus(self.status) == NotificationStatus.ACKNOWLEDGED:
            return False
        self._assert_can_transition(NotificationStatus.ACKNOWLEDGED)

        now = acknowledged_at or datetime.now(UTC)
        self.status = NotificationStatus.ACKNOWLEDGED.value
        self.acknowledged_at = now
        self.updated_at = now

        self.raise_(
            NotificationAcknowledged(
                notification_id=str(self.id),
                user_id=str(self.user_id),
                acknowledged_at=now,
            )
        )
        return True

    def expire(self):
        """Expire a notification that was never dispatched in time."""
        self._assert_can_transition(NotificationStatus.EXPIRED)

        now = datetime.now(UTC)
        self.status = NotificationStatus.EXPIRED.value
        self.updated_at = now

        self.raise_(
            NotificationExpired(
                notification_id=str(self.id),
                tenant_id=str(self.tenant_id),
                expires_at=self.expires_at,
                expired_at=now,
            )
        )

    def cancel(self, reason):
        """Withdraw a notification before it is sent."""
        self._assert_can_transition(NotificationStatus.CANCELLED)

        now = datetime.now(UTC)
        self.status = NotificationStatus.CANCELLED.value
        self.last_error = reason
        self.updated_at = now

        self.raise_(
            NotificationCancelled(
                notification_id=str(self.id),
                tenant_id=str(self.tenant_id),
                user_id=str(self.user_id),
                channel=self.channel,
                reason=reason,
                cancelled_at=now,
            )
        )

    def retry(self):
        """Put a failed notification back to PENDING for another attempt."""
        if NotificationStatus(self.status) != NotificationStatus.FAILED:
            raise ValidationError({"status": ["Only failed notifications can be retried"]})
        if self.retry_count >= self.max_retries:
            raise ValidationError({"retry_count": ["Maximum retry attempts exceeded"]})

        now = datetime.now(UTC)
        self.status = NotificationStatus.PENDING.value
        self.retry_count = self.retry_count + 1
        self.last_error = None
        self.updated_at = now

        self.raise_(
            NotificationRetried(
                notification_id=str(self.id),
                tenant_id=str(self.tenant_id),
                user_id=str(self.user_id),
                channel=self.channel,
                retry_count=self.retry_count,
                retried_at=now,
            )
        )


def _isoformat(value):
    return value.isoformat() if value is not None else None


def notification_to_dict(notification) -> dict:
    """Serialize a notification to its wire shape (camelCase keys)."""
    return {
        "id": str(notification.id),
        "tenantId": str(notification.tenant_id),
        "userId": str(notification.user_id),
        "type": notification.notification_type,
        "channel": notification.channel,
        "priority": notification.priority,
        "status": notification.status,
        "title": notification.title,
        "message": notification.message,
        "data": _loads(notification.data),
        "metadata": _loads(notification.notification_metadata),
        "templateId": str(notification.template_id) if notification.template_id else None,
        "groupId": str(notification.group_id) if notification.group_id else None,
        "scheduledFor": _isoformat(notification.scheduled_for),
        "sentAt": _isoformat(notification.sent_at),
        "readAt": _isoformat(notification.read_at),
        "acknowledgedAt": _isoformat(notification.acknowledged_at),
        "expiresAt": _isoformat(notification.expires_at),
        "retryCount": notification.retry_count,
        "lastError": notification.last_error,
        "actions": _loads(notification.actions),
        "createdAt": _isoformat(notification.created_at),
    }
