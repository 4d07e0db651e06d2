"""Application tests for notification statistics."""

from notifications.notification.notification import Notification, NotificationChannel
from notifications.notification.statistics import get_stats
from protean import current_domain

TENANT = "t1"


def _add(user_id="u1", channel=NotificationChannel.IN_APP.value, priority="medium", transition=None, **overrides):
    n = Notification.create(
        tenant_id=overrides.pop("tenant_id", TENANT),
        user_id=user_id,
        notification_type=overrides.pop("notification_type", "order.created"),
        channel=channel,
        title="Title",
        message="Message",
        priority=priority,
        **overrides,
    )
    if transition:
        transition(n)
    current_domain.repository_for(Notification).add(n)
    return n


def _exhaust(n):
    n.mark_failed("boom")
    for _ in range(n.max_retries):
        n.retry()
        n.mark_failed("boom")


class TestStats:
    def test_status_buckets(self):
        _add()
        _add(transition=lambda n: n.mark_delivered())
        _add(transition=lambda n: (n.mark_delivered(), n.mark_read()))
        _add(transition=lambda n: (n.mark_delivered(), n.acknowledge()))
        _add(channel="email", transition=lambda n: n.mark_sent())
        _add(channel="email", transition=lambda n: n.mark_failed("boom"))
        _add(channel="email", transition=_exhaust)
        _add(transition=lambda n: n.cancel("withdrawn"))

        stats = get_stats(TENANT)

        assert stats.total == 8
        assert stats.pending == 1
        assert stats.delivered == 1
        assert stats.read == 2
        assert stats.sent == 1
        assert stats.failed == 2
        assert stats.permanently_failed == 1
        assert stats.cancelled == 1
        assert stats.expired == 0

    def test_breakdowns(self):
        _add(priority="high")
        _add(channel="email", notification_type="task.assigned")

        stats = get_stats(TENANT)

        assert stats.by_channel == {"in_app": 1, "email": 1}
        assert stats.by_type == {"order.created": 1, "task.assigned": 1}
        assert stats.by_priority == {"high": 1, "medium": 1}

    def test_user_and_tenant_scoping(self):
        _add()
        _add(user_id="u2")
        _add(tenant_id="t2")

        assert get_stats(TENANT).total == 2
        assert get_stats(TENANT, user_id="u2").total == 1
        assert get_stats("t3").total == 0
