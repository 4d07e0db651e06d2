"""FastAPI routes for the Notifications domain.

Thin adapters that translate HTTP requests into domain commands, or into
store and query calls where the caller needs the resulting data back.
Tenant and user ids arrive as query parameters.
"""

import json
from datetime import datetime

from fastapi import APIRouter, Query
from fastapi.concurrency import run_in_threadpool
from notifications.api.schemas import (
    BulkPreferencesRequest,
    CancelNotificationRequest,
    ChannelSettingsRequest,
    CountResponse,
    CreateTemplateRequest,
    FailedNotificationListResponse,
    FailedNotificationResponse,
    NotificationListResponse,
    PreferencesResponse,
    QuietHoursResponse,
    RenderedTemplateResponse,
    RenderTemplateRequest,
    StatusResponse,
    TemplateListResponse,
    UnsubscribeRequest,
    UnsubscribeResponse,
    UnsubscribeTokenRequest,
    UnsubscribeTokenResponse,
    UpdateTemplateRequest,
    ValidateTemplateRequest,
    ValidateTemplateResponse,
)
from notifications.notification.dispatcher import send_notification
from notifications.notification.lifecycle import (
    CancelNotification,
    DeleteNotification,
    MarkAllNotificationsRead,
    NotificationFilter,
    get_notifications,
    get_unread_count,
    get_unread_notifications,
    mark_acknowledged,
    mark_read,
)
from notifications.notification.maintenance import (
    ClearOldNotifications,
    ExpireNotifications,
    ProcessScheduledNotifications,
    RetryFailedNotifications,
)
from notifications.notification.notification import NotificationChannel, notification_to_dict
from notifications.notification.payload import BatchResult, NotificationPayload
from notifications.notification.statistics import NotificationStats, get_stats
from notifications.preference.management import (
    DisableAllPreferences,
    EnableAllPreferences,
    SetDefaultPreferences,
    UpdateChannelSettings,
)
from notifications.preference.preference import preference_to_dict
from notifications.preference.store import PreferenceStore
from notifications.projections.failed_notifications import list_failed
from notifications.template.store import TemplateStore
from notifications.template.template import template_to_dict
from protean.utils.globals import current_domain

router = APIRouter(prefix="/notifications", tags=["notifications"])
preference_router = APIRouter(prefix="/notifications/preferences", tags=["notification-preferences"])
template_router = APIRouter(prefix="/notifications/templates", tags=["notification-templates"])


async def _run_blocking(func, *args, **kwargs):
    """Run channel-dispatching work on the threadpool inside the active domain context."""
    domain = current_domain._get_current_object()

    def call():
        with domain.domain_context():
            return func(*args, **kwargs)

    return await run_in_threadpool(call)


# ---------------------------------------------------------------------------
# Sending
# ---------------------------------------------------------------------------
@router.post("/send", response_model=BatchResult)
async def send(body: NotificationPayload) -> BatchResult:
    """Fan a notification out to every eligible (recipient, channel) pair."""
    return await _run_blocking(send_notification, body)


# ---------------------------------------------------------------------------
# Inbox queries
# ---------------------------------------------------------------------------
@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    tenant_id: str,
    user_id: str | None = None,
    notification_type: str | None = None,
    channel: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    group_id: str | None = None,
    unread_only: bool = False,
    created_from: datetime | None = None,
    created_to: datetime | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
) -> NotificationListResponse:
    filters = NotificationFilter(
        tenant_id=tenant_id,
        user_id=user_id,
        notification_type=notification_type,
        channel=channel,
        status=status,
        priority=priority,
        group_id=group_id,
        unread_only=unread_only,
        created_from=created_from,
        created_to=created_to,
        limit=limit,
        offset=offset,
    )
    found = get_notifications(filters)
    return NotificationListResponse(notifications=[notification_to_dict(n) for n in found], count=len(found))


@router.get("/unread", response_model=NotificationListResponse)
async def list_unread(
    user_id: str, tenant_id: str, limit: int = Query(default=50, ge=1, le=500)
) -> NotificationListResponse:
    found = get_unread_notifications(user_id, tenant_id, limit=limit)
    return NotificationListResponse(notifications=[notification_to_dict(n) for n in found], count=len(found))


@router.get("/unread/count", response_model=CountResponse)
async def unread_count(user_id: str, tenant_id: str) -> CountResponse:
    return CountResponse(count=get_unread_count(user_id, tenant_id))


@router.get("/stats", response_model=NotificationStats)
async def stats(tenant_id: str, user_id: str | None = None) -> NotificationStats:
    return get_stats(tenant_id, user_id=user_id)


@router.get("/failed", response_model=FailedNotificationListResponse)
async def failed_notifications(
    tenant_id: str,
    exhausted: bool | None = None,
    limit: int = Query(default=100, ge=1, le=1000),
) -> FailedNotificationListResponse:
    """Dead-letter view: failed notifications, most recent first."""
    entries = [
        FailedNotificationResponse(
            notification_id=str(e.notification_id),
            tenant_id=str(e.tenant_id),
            user_id=str(e.user_id),
            notification_type=e.notification_type,
            channel=e.channel,
            last_error=e.last_error,
            retry_count=e.retry_count,
            max_retries=e.max_retries,
            exhausted=e.exhausted,
            failed_at=e.failed_at.isoformat() if e.failed_at else None,
        )
        for e in list_failed(tenant_id, exhausted=exhausted, limit=limit)
    ]
    return FailedNotificationListResponse(notifications=entries, count=len(entries))


# ---------------------------------------------------------------------------
# Recipient lifecycle
# ---------------------------------------------------------------------------
@router.put("/read-all", response_model=CountResponse)
async def read_all(user_id: str, tenant_id: str) -> CountResponse:
    count = current_domain.process(MarkAllNotificationsRead(user_id=user_id, tenant_id=tenant_id), asynchronous=False)
    return CountResponse(count=count or 0)


@router.put("/{notification_id}/read")
async def read(notification_id: str, user_id: str) -> dict:
    return notification_to_dict(mark_read(notification_id, user_id))


@router.put("/{notification_id}/acknowledge")
async def acknowledge(notification_id: str, user_id: str) -> dict:
    return notification_to_dict(mark_acknowledged(notification_id, user_id))


@router.delete("/{notification_id}", response_model=StatusResponse)
async def delete(notification_id: str, user_id: str) -> StatusResponse:
    current_domain.process(DeleteNotification(notification_id=notification_id, user_id=user_id), asynchronous=False)
    return StatusResponse()


@router.post("/{notification_id}/cancel", response_model=StatusResponse)
async def cancel(notification_id: str, body: CancelNotificationRequest) -> StatusResponse:
    command = CancelNotification(notification_id=notification_id, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------
@router.post("/maintenance/retry", response_model=BatchResult)
async def retry_failed(tenant_id: str) -> BatchResult:
    command = RetryFailedNotifications(tenant_id=tenant_id)
    return await _run_blocking(current_domain.process, command, asynchronous=False)


@router.post("/maintenance/expire", response_model=CountResponse)
async def expire(tenant_id: str, as_of: datetime | None = None) -> CountResponse:
    count = current_domain.process(ExpireNotifications(tenant_id=tenant_id, as_of=as_of), asynchronous=False)
    return CountResponse(count=count)


@router.post("/maintenance/clear-old", response_model=CountResponse)
async def clear_old(tenant_id: str, days_to_keep: int | None = Query(default=None, ge=0)) -> CountResponse:
    command = ClearOldNotifications(tenant_id=tenant_id, days_to_keep=days_to_keep)
    return CountResponse(count=current_domain.process(command, asynchronous=False))


@router.post("/maintenance/scheduled", response_model=BatchResult)
async def process_scheduled(tenant_id: str | None = None, as_of: datetime | None = None) -> BatchResult:
    command = ProcessScheduledNotifications(tenant_id=tenant_id, as_of=as_of)
    return await _run_blocking(current_domain.process, command, asynchronous=False)


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------
def _preferences_response(user_id: str, tenant_id: str) -> PreferencesResponse:
    preferences = PreferenceStore().get_user_preferences(user_id, tenant_id)
    return PreferencesResponse(
        user_id=user_id,
        tenant_id=tenant_id,
        preferences=[preference_to_dict(p) for p in preferences],
    )


@preference_router.post("/unsubscribe", response_model=UnsubscribeResponse)
async def unsubscribe(body: UnsubscribeRequest) -> UnsubscribeResponse:
    """Redeem an unsubscribe link token."""
    return UnsubscribeResponse(unsubscribed=PreferenceStore().unsubscribe_by_token(body.token))


@preference_router.get("/{user_id}", response_model=PreferencesResponse)
async def get_preferences(user_id: str, tenant_id: str) -> PreferencesResponse:
    return _preferences_response(user_id, tenant_id)


@preference_router.put("/{user_id}", response_model=PreferencesResponse)
async def update_preferences(user_id: str, body: BulkPreferencesRequest) -> PreferencesResponse:
    items = [
        {
            "notification_type": item.notification_type.value,
            "channel": item.channel.value,
            "enabled": item.enabled,
            "settings": item.settings,
        }
        for item in body.preferences
    ]
    PreferenceStore().bulk_upsert(user_id, body.tenant_id, items)
    return _preferences_response(user_id, body.tenant_id)


@preference_router.post("/{user_id}/defaults", response_model=CountResponse)
async def set_defaults(user_id: str, tenant_id: str) -> CountResponse:
    command = SetDefaultPreferences(user_id=user_id, tenant_id=tenant_id)
    return CountResponse(count=current_domain.process(command, asynchronous=False))


@preference_router.post("/{user_id}/enable-all", response_model=CountResponse)
async def enable_all(user_id: str, tenant_id: str) -> CountResponse:
    command = EnableAllPreferences(user_id=user_id, tenant_id=tenant_id)
    return CountResponse(count=current_domain.process(command, asynchronous=False))


@preference_router.post("/{user_id}/disable-all", response_model=CountResponse)
async def disable_all(user_id: str, tenant_id: str) -> CountResponse:
    command = DisableAllPreferences(user_id=user_id, tenant_id=tenant_id)
    return CountResponse(count=current_domain.process(command, asynchronous=False))


@preference_router.put("/{user_id}/channels/{channel}", response_model=CountResponse)
async def update_channel_settings(
    user_id: str, channel: NotificationChannel, body: ChannelSettingsRequest
) -> CountResponse:
    command = UpdateChannelSettings(
        user_id=user_id,
        tenant_id=body.tenant_id,
        channel=channel.value,
        settings=json.dumps(body.settings),
    )
    return CountResponse(count=current_domain.process(command, asynchronous=False))


@preference_router.post("/{user_id}/unsubscribe-token", response_model=UnsubscribeTokenResponse)
async def unsubscribe_token(user_id: str, body: UnsubscribeTokenRequest) -> UnsubscribeTokenResponse:
    return UnsubscribeTokenResponse(token=PreferenceStore().generate_unsubscribe_token(user_id, body.channel.value))


@preference_router.get("/{user_id}/quiet-hours", response_model=QuietHoursResponse)
async def quiet_hours(user_id: str, tenant_id: str) -> QuietHoursResponse:
    store = PreferenceStore()
    return QuietHoursResponse(
        quiet_hours=store.get_quiet_hours(user_id, tenant_id),
        in_quiet_hours=store.is_in_quiet_hours(user_id, tenant_id),
    )


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------
@template_router.get("", response_model=TemplateListResponse)
async def list_templates(
    tenant_id: str,
    notification_type: str | None = None,
    channel: str | None = None,
) -> TemplateListResponse:
    templates = TemplateStore().list_templates(tenant_id, notification_type=notification_type, channel=channel)
    return TemplateListResponse(templates=[template_to_dict(t) for t in templates], count=len(templates))


@template_router.post("", status_code=201)
async def create_template(body: CreateTemplateRequest) -> dict:
    template = TemplateStore().create_template(
        body.tenant_id,
        code=body.code,
        name=body.name,
        description=body.description,
        notification_type=body.notification_type.value,
        channel=body.channel.value,
        subject=body.subject,
        body=body.body,
        variables=[v.model_dump(exclude_none=True) for v in body.variables],
        styling=body.styling,
        metadata=body.metadata,
        active=body.active,
        created_by=body.created_by,
    )
    return template_to_dict(template)


@template_router.post("/validate", response_model=ValidateTemplateResponse)
async def validate_template(body: ValidateTemplateRequest) -> ValidateTemplateResponse:
    return ValidateTemplateResponse(valid=TemplateStore().validate_template(body.source))


@template_router.post("/seed", response_model=CountResponse)
async def seed_templates(tenant_id: str) -> CountResponse:
    return CountResponse(count=TemplateStore().seed_default_templates(tenant_id))


@template_router.get("/{template_id}")
async def get_template(template_id: str) -> dict:
    return template_to_dict(TemplateStore().get_template(template_id))


@template_router.put("/{template_id}")
async def update_template(template_id: str, body: UpdateTemplateRequest) -> dict:
    changes = body.model_dump(exclude_unset=True, exclude={"updated_by", "metadata"})
    if "metadata" in body.model_fields_set:
        changes["template_metadata"] = body.metadata
    for key in ("notification_type", "channel"):
        if changes.get(key) is not None:
            changes[key] = changes[key].value
    if changes.get("variables") is not None:
        changes["variables"] = [v.model_dump(exclude_none=True) for v in body.variables]

    template = TemplateStore().update_template(template_id, updated_by=body.updated_by, **changes)
    return template_to_dict(template)


@template_router.delete("/{template_id}", response_model=StatusResponse)
async def delete_template(template_id: str) -> StatusResponse:
    TemplateStore().delete_template(template_id)
    return StatusResponse()


@template_router.post("/{template_id}/render", response_model=RenderedTemplateResponse)
async def render_template(template_id: str, body: RenderTemplateRequest) -> RenderedTemplateResponse:
    store = TemplateStore()
    rendered = store.render_template(store.get_template(template_id), body.data)
    return RenderedTemplateResponse(subject=rendered.subject, body=rendered.body)
