"""Pydantic request/response models for the Notifications API.

API schemas are separate from Protean commands (anti-corruption pattern).
The send request is ``NotificationPayload`` itself, the integration
contract shared with the event listeners.
"""

from typing import Any

from notifications.notification.notification import NotificationChannel, NotificationType
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------
class CancelNotificationRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class PreferenceItem(BaseModel):
    notification_type: NotificationType
    channel: NotificationChannel
    enabled: bool = True
    settings: dict[str, Any] | None = None


class BulkPreferencesRequest(BaseModel):
    tenant_id: str
    preferences: list[PreferenceItem] = Field(..., min_length=1)


class ChannelSettingsRequest(BaseModel):
    tenant_id: str
    settings: dict[str, Any] = Field(
        ..., examples=[{"quiet_hours": {"start_time": "22:00", "end_time": "07:00", "timezone": "UTC"}}]
    )


class UnsubscribeTokenRequest(BaseModel):
    channel: NotificationChannel = Field(..., examples=["email"])


class UnsubscribeRequest(BaseModel):
    token: str = Field(..., min_length=1)


class TemplateVariable(BaseModel):
    name: str = Field(..., min_length=1)
    type: str = "string"
    required: bool = False
    default_value: Any = None
    description: str | None = None


class CreateTemplateRequest(BaseModel):
    tenant_id: str
    code: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    notification_type: NotificationType
    channel: NotificationChannel
    subject: str = Field(..., max_length=500)
    body: str
    variables: list[TemplateVariable] = Field(default_factory=list)
    styling: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    active: bool = True
    created_by: str | None = None


class UpdateTemplateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=200)
    description: str | None = None
    notification_type: NotificationType | None = None
    channel: NotificationChannel | None = None
    subject: str | None = Field(default=None, max_length=500)
    body: str | None = None
    variables: list[TemplateVariable] | None = None
    styling: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    active: bool | None = None
    updated_by: str | None = None


class RenderTemplateRequest(BaseModel):
    data: dict[str, Any] = Field(default_factory=dict)


class ValidateTemplateRequest(BaseModel):
    source: str


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class CountResponse(BaseModel):
    count: int


class NotificationListResponse(BaseModel):
    notifications: list[dict[str, Any]]
    count: int


class FailedNotificationResponse(BaseModel):
    notification_id: str
    tenant_id: str
    user_id: str
    notification_type: str
    channel: str
    last_error: str | None = None
    retry_count: int = 0
    max_retries: int = 3
    exhausted: bool = False
    failed_at: str | None = None


class FailedNotificationListResponse(BaseModel):
    notifications: list[FailedNotificationResponse]
    count: int


class PreferencesResponse(BaseModel):
    user_id: str
    tenant_id: str
    preferences: list[dict[str, Any]]


class UnsubscribeTokenResponse(BaseModel):
    token: str


class UnsubscribeResponse(BaseModel):
    unsubscribed: bool


class QuietHoursResponse(BaseModel):
    quiet_hours: dict[str, Any] | None = None
    in_quiet_hours: bool = False


class TemplateListResponse(BaseModel):
    templates: list[dict[str, Any]]
    count: int


class RenderedTemplateResponse(BaseModel):
    subject: str
    body: str


class ValidateTemplateResponse(BaseModel):
    valid: bool
