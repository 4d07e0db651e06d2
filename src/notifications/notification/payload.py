"""Send input and result shapes.

``NotificationPayload`` is the integration contract for every caller of
``send()``: domain event listeners, the HTTP API and other services.
"""

from datetime import datetime
from typing import Literal

from notifications.notification.notification import (
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from pydantic import BaseModel, Field, field_validator, model_validator


class NotificationAction(BaseModel):
    label: str
    action: str
    style: Literal["primary", "secondary", "danger"] = "primary"
    data: dict | None = None


class NotificationPayload(BaseModel):
    tenant_id: str = Field(..., min_length=1)
    user_ids: list[str] = Field(default_factory=list)
    roles: list[str] = Field(default_factory=list)

    notification_type: NotificationType
    channels: list[NotificationChannel] = Field(default_factory=lambda: [NotificationChannel.IN_APP])
    priority: NotificationPriority = NotificationPriority.MEDIUM

    title: str | None = None
    message: str | None = None
    template_id: str | None = None
    template_data: dict = Field(default_factory=dict)

    data: dict | None = None
    metadata: dict | None = None
    actions: list[NotificationAction] = Field(default_factory=list)

    scheduled_for: datetime | None = None
    expires_at: datetime | None = None
    group_id: str | None = None

    @field_validator("user_ids", "roles", "channels", mode="before")
    @classmethod
    def _single_value_as_list(cls, value):
        if value is None:
            return []
        if isinstance(value, (str, NotificationChannel)):
            return [value]
        return value

    @model_validator(mode="after")
    def _check_content(self):
        if not self.template_id and not (self.title and self.message):
            raise ValueError("Either template_id or both title and message are required")
        if not self.channels:
            self.channels = [NotificationChannel.IN_APP]
        return self


class NotificationResult(BaseModel):
    notification_id: str | None = None
    user_id: str
    channel: str
    success: bool
    status: str
    error: str | None = None


class BatchResult(BaseModel):
    total_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    skipped_count: int = 0  # pairs dropped by preference gating; not part of total_count
    results: list[NotificationResult] = Field(default_factory=list)

    @classmethod
    def from_results(cls, results: list[NotificationResult], skipped_count: int = 0) -> "BatchResult":
        success = sum(1 for r in results if r.success)
        return cls(
            total_count=len(results),
            success_count=success,
            failure_count=len(results) - success,
            skipped_count=skipped_count,
            results=results,
        )
