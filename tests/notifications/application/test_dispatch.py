"""Application tests for channel dispatch: isolation, timeouts and ordering."""

import threading

import pytest
from notifications.channel import ChannelRegistry
from notifications.channel.port import ChannelSender, DeliveryResult
from notifications.config import Settings
from notifications.notification.dispatch import dispatch_notifications
from notifications.notification.notification import Notification, NotificationStatus
from protean import current_domain


class SlowSender(ChannelSender):
    channel = "email"

    def __init__(self):
        self.release = threading.Event()
        self.finished = threading.Event()

    def send(self, notification):
        self.release.wait(5)
        self.finished.set()
        return DeliveryResult(success=True, status="sent")


class ExplodingSender(ChannelSender):
    channel = "sms"

    def send(self, notification):
        raise RuntimeError("provider exploded")


class RecordingSender(ChannelSender):
    channel = "in_app"

    def __init__(self):
        self.seen = []

    def send(self, notification):
        self.seen.append(str(notification.id))
        return DeliveryResult(success=True, status="delivered")


def _persisted(channel, user_id="u1"):
    n = Notification.create(
        tenant_id="t1",
        user_id=user_id,
        notification_type="system.alert",
        channel=channel,
        title="Line 3 paused",
        message="Line 3 has been paused",
    )
    current_domain.repository_for(Notification).add(n)
    return n


def _registry(**senders):
    return ChannelRegistry(factories={channel: (lambda s=sender: s) for channel, sender in senders.items()})


class TestDispatchIsolation:
    def test_raising_sender_fails_only_its_record(self):
        recording = RecordingSender()
        registry = _registry(in_app=recording, sms=ExplodingSender())
        in_app, sms = _persisted("in_app"), _persisted("sms")

        results = dispatch_notifications([in_app, sms], registry=registry)

        assert [r.success for r in results] == [True, False]
        assert results[1].error == "provider exploded"
        repo = current_domain.repository_for(Notification)
        assert repo.get(in_app.id).status == NotificationStatus.DELIVERED.value
        assert repo.get(sms.id).status == NotificationStatus.FAILED.value

    def test_unsupported_channel_is_a_failed_result(self):
        registry = _registry(in_app=RecordingSender())
        n = _persisted("webhook")

        [result] = dispatch_notifications([n], registry=registry)

        assert result.success is False
        assert result.error == "Unsupported channel: webhook"

    def test_results_follow_input_order(self):
        recording = RecordingSender()
        registry = _registry(in_app=recording)
        batch = [_persisted("in_app", user_id=f"u{i}") for i in range(6)]

        results = dispatch_notifications(batch, registry=registry)

        assert [r.notification_id for r in results] == [str(n.id) for n in batch]
        assert sorted(recording.seen) == sorted(str(n.id) for n in batch)

    def test_empty_input(self):
        assert dispatch_notifications([]) == []


@pytest.mark.slow
class TestDispatchTimeout:
    def test_slow_channel_is_recorded_as_failed(self):
        slow = SlowSender()
        registry = _registry(email=slow, in_app=RecordingSender())
        email, in_app = _persisted("email"), _persisted("in_app")

        try:
            results = dispatch_notifications(
                [email, in_app],
                registry=registry,
                settings=Settings(channel_timeout_seconds=0.2),
            )
        finally:
            slow.release.set()

        assert results[0].success is False
        assert results[0].error == "Channel timed out after 0.2s"
        assert results[1].success is True
        stored = current_domain.repository_for(Notification).get(email.id)
        assert stored.status == NotificationStatus.FAILED.value
        assert stored.last_error == "Channel timed out after 0.2s"

    def test_pairs_waiting_for_a_worker_get_their_own_budget(self):
        slow = SlowSender()
        recording = RecordingSender()
        registry = _registry(email=slow, in_app=recording)
        batch = [_persisted("email"), _persisted("email"), _persisted("in_app")]

        try:
            results = dispatch_notifications(
                batch,
                registry=registry,
                settings=Settings(channel_timeout_seconds=0.2, dispatch_max_workers=2),
            )
        finally:
            slow.release.set()

        assert [r.success for r in results] == [False, False, True]
        assert results[2].status == NotificationStatus.DELIVERED.value
        assert recording.seen == [str(batch[2].id)]

    def test_late_result_is_not_applied(self):
        slow = SlowSender()
        email = _persisted("email")

        [result] = dispatch_notifications(
            [email],
            registry=_registry(email=slow),
            settings=Settings(channel_timeout_seconds=0.1),
        )
        slow.release.set()
        assert slow.finished.wait(2)

        assert result.success is False
        stored = current_domain.repository_for(Notification).get(email.id)
        assert stored.status == NotificationStatus.FAILED.value
        assert stored.last_error == "Channel timed out after 0.1s"
