"""Tests for the send payload contract and batch result arithmetic."""

import pytest
from notifications.notification.notification import (
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from notifications.notification.payload import BatchResult, NotificationPayload, NotificationResult
from pydantic import ValidationError


def _payload(**overrides):
    defaults = {
        "tenant_id": "t1",
        "user_ids": ["u1"],
        "notification_type": "order.created",
        "title": "New Order",
        "message": "Created",
    }
    defaults.update(overrides)
    return NotificationPayload.model_validate(defaults)


class TestNotificationPayload:
    def test_defaults(self):
        payload = _payload()
        assert payload.notification_type == NotificationType.ORDER_CREATED
        assert payload.channels == [NotificationChannel.IN_APP]
        assert payload.priority == NotificationPriority.MEDIUM
        assert payload.roles == []

    def test_single_values_become_lists(self):
        payload = _payload(user_ids="u9", channels="email", roles="ADMIN")
        assert payload.user_ids == ["u9"]
        assert payload.channels == [NotificationChannel.EMAIL]
        assert payload.roles == ["ADMIN"]

    def test_template_id_replaces_title_and_message(self):
        payload = _payload(title=None, message=None, template_id="tpl-1")
        assert payload.template_id == "tpl-1"

    def test_content_is_required(self):
        with pytest.raises(ValidationError):
            _payload(title=None)

    def test_unknown_type_is_rejected(self):
        with pytest.raises(ValidationError):
            _payload(notification_type="order.teleported")

    def test_unknown_channel_is_rejected(self):
        with pytest.raises(ValidationError):
            _payload(channels=["carrier_pigeon"])


class TestBatchResult:
    def _result(self, success, channel="in_app"):
        return NotificationResult(
            notification_id="n",
            user_id="u1",
            channel=channel,
            success=success,
            status="delivered" if success else "failed",
        )

    def test_counts_add_up(self):
        batch = BatchResult.from_results(
            [self._result(True), self._result(False, "email"), self._result(True)],
            skipped_count=2,
        )
        assert batch.total_count == 3
        assert batch.success_count == 2
        assert batch.failure_count == 1
        assert batch.success_count + batch.failure_count == batch.total_count
        assert batch.skipped_count == 2

    def test_empty_batch(self):
        batch = BatchResult.from_results([])
        assert (batch.total_count, batch.success_count, batch.failure_count) == (0, 0, 0)
