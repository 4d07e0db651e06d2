"""Translate plant-floor domain events into notification sends.

Other services publish named events (``order.created``, ``equipment.breakdown``
...) with a camelCase JSON payload. ``handle_event`` validates the payload,
builds the matching ``NotificationPayload`` and sends it. A listener never
raises: a bad payload or a failed send is logged and the event is dropped.
"""

from collections.abc import Callable

import structlog
from notifications.notification.dispatcher import NotificationDispatcher
from notifications.notification.notification import (
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from notifications.notification.payload import BatchResult, NotificationAction, NotificationPayload
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

logger = structlog.get_logger(__name__)

EMAIL_AND_IN_APP = [NotificationChannel.EMAIL, NotificationChannel.IN_APP]


# ---------------------------------------------------------------------------
# Event payloads
# ---------------------------------------------------------------------------
class EventPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    tenant_id: str


class OrderEvent(EventPayload):
    order_id: str
    order_number: str
    customer_name: str | None = None
    created_by: str | None = None
    new_date: str | None = None


class InventoryEvent(EventPayload):
    inventory_id: str
    product_id: str | None = None
    product_name: str
    sku: str | None = None
    current_quantity: int | float | None = None
    reorder_level: int | float | None = None


class ProductionEvent(EventPayload):
    production_id: str
    product_name: str | None = None
    batch_number: str | None = None
    assigned_to: str | None = None
    error_type: str | None = None
    error_message: str | None = None


class TaskEvent(EventPayload):
    task_id: str
    task_title: str
    task_description: str | None = None
    assigned_to: str
    assignee_name: str | None = None
    priority: str | None = None
    due_date: str | None = None


class QualityEvent(EventPayload):
    quality_check_id: str | None = None
    inspection_id: str | None = None
    product_name: str | None = None
    batch_number: str | None = None
    issue_type: str | None = None
    issue_description: str | None = None
    severity: str | None = None
    failure_count: int | None = None


class MaintenanceEvent(EventPayload):
    maintenance_id: str | None = None
    equipment_id: str | None = None
    equipment_name: str
    due_date: str | None = None
    priority: str | None = None
    production_line: str | None = None


class SystemErrorEvent(EventPayload):
    error_message: str
    service: str | None = None


# ---------------------------------------------------------------------------
# Listener registry
# ---------------------------------------------------------------------------
_LISTENERS: dict[str, tuple[type[EventPayload], Callable]] = {}


def listens_to(event_name: str, payload_model: type[EventPayload]):
    def register(func):
        _LISTENERS[event_name] = (payload_model, func)
        return func

    return register


def registered_events() -> list[str]:
    return sorted(_LISTENERS)


def _metadata(entity_type: str | None, entity_id: str | None, action_url: str | None, category: str) -> dict:
    metadata = {"entityType": entity_type, "entityId": entity_id, "actionUrl": action_url, "category": category}
    return {key: value for key, value in metadata.items() if value is not None}


def _payload(event: EventPayload, **fields) -> NotificationPayload:
    return NotificationPayload(
        tenant_id=event.tenant_id,
        data=event.model_dump(by_alias=True, exclude_none=True),
        **fields,
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
@listens_to("order.created", OrderEvent)
def order_created(event: OrderEvent):
    yield _payload(
        event,
        roles=["ADMIN", "PRODUCTION_MANAGER"],
        notification_type=NotificationType.ORDER_CREATED,
        channels=EMAIL_AND_IN_APP,
        priority=NotificationPriority.MEDIUM,
        title=f"New Order #{event.order_number}",
        message=f"A new order has been created for {event.customer_name or 'a customer'}",
        metadata=_metadata("order", event.order_id, f"/orders/{event.order_id}", "orders"),
    )


@listens_to("order.completed", OrderEvent)
def order_completed(event: OrderEvent):
    if not event.created_by:
        logger.info("Order completed without creator, nothing to notify", order_id=event.order_id)
        return
    yield _payload(
        event,
        user_ids=[event.created_by],
        notification_type=NotificationType.ORDER_COMPLETED,
        channels=[NotificationChannel.IN_APP],
        priority=NotificationPriority.LOW,
        title=f"Order #{event.order_number} Completed",
        message=f"Order for {event.customer_name or 'a customer'} has been completed successfully",
        metadata=_metadata("order", event.order_id, f"/orders/{event.order_id}", "orders"),
    )


@listens_to("order.delayed", OrderEvent)
def order_delayed(event: OrderEvent):
    yield _payload(
        event,
        roles=["ADMIN", "PRODUCTION_MANAGER", "SALES"],
        notification_type=NotificationType.ORDER_DELAYED,
        channels=EMAIL_AND_IN_APP,
        priority=NotificationPriority.HIGH,
        title=f"Order #{event.order_number} Delayed",
        message=f"Order is delayed. New expected completion: {event.new_date or 'unknown'}",
        metadata=_metadata("order", event.order_id, f"/orders/{event.order_id}", "orders"),
    )


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------
@listens_to("inventory.low_stock", InventoryEvent)
def inventory_low_stock(event: InventoryEvent):
    yield _payload(
        event,
        roles=["INVENTORY_MANAGER", "PURCHASING"],
        notification_type=NotificationType.INVENTORY_LOW_STOCK,
        channels=EMAIL_AND_IN_APP,
        priority=NotificationPriority.HIGH,
        title=f"Low Stock Alert: {event.product_name}",
        message=(
            f"Product {event.product_name} (SKU: {event.sku}) is running low. "
            f"Current: {event.current_quantity}, Reorder: {event.reorder_level}"
        ),
        metadata=_metadata("inventory", event.inventory_id, f"/inventory/{event.inventory_id}", "inventory"),
        actions=[
            NotificationAction(
                label="Create Purchase Order",
                action="create_po",
                style="primary",
                data={"productId": event.product_id},
            ),
            NotificationAction(label="View Inventory", action="view_inventory", style="secondary"),
        ],
    )


@listens_to("inventory.out_of_stock", InventoryEvent)
def inventory_out_of_stock(event: InventoryEvent):
    yield _payload(
        event,
        roles=["INVENTORY_MANAGER", "PURCHASING", "PRODUCTION_MANAGER"],
        notification_type=NotificationType.INVENTORY_OUT_OF_STOCK,
        channels=EMAIL_AND_IN_APP,
        priority=NotificationPriority.CRITICAL,
        title=f"Out of Stock: {event.product_name}",
        message=f"Product {event.product_name} (SKU: {event.sku}) is now out of stock",
        metadata=_metadata("inventory", event.inventory_id, f"/inventory/{event.inventory_id}", "inventory"),
        actions=[
            NotificationAction(
                label="Create Urgent PO",
                action="create_urgent_po",
                style="danger",
                data={"productId": event.product_id},
            ),
        ],
    )


# ---------------------------------------------------------------------------
# Production
# ---------------------------------------------------------------------------
@listens_to("production.started", ProductionEvent)
def production_started(event: ProductionEvent):
    if not event.assigned_to:
        logger.info("Production started without assignee, nothing to notify", production_id=event.production_id)
        return
    yield _payload(
        event,
        user_ids=[event.assigned_to],
        notification_type=NotificationType.PRODUCTION_STARTED,
        channels=[NotificationChannel.IN_APP],
        priority=NotificationPriority.MEDIUM,
        title=f"Production Started: {event.product_name}",
        message=f"Production batch {event.batch_number} has started",
        metadata=_metadata("production", event.production_id, f"/production/{event.production_id}", "production"),
    )


@listens_to("production.error", ProductionEvent)
def production_error(event: ProductionEvent):
    yield _payload(
        event,
        roles=["ADMIN", "PRODUCTION_MANAGER", "QUALITY_MANAGER"],
        notification_type=NotificationType.PRODUCTION_ERROR,
        channels=EMAIL_AND_IN_APP,
        priority=NotificationPriority.CRITICAL,
        title=f"Production Error: {event.error_type}",
        message=f"Error in production batch {event.batch_number}: {event.error_message}",
        metadata=_metadata("production", event.production_id, f"/production/{event.production_id}", "production"),
        actions=[
            NotificationAction(label="View Details", action="view_error", style="primary"),
            NotificationAction(
                label="Stop Production",
                action="stop_production",
                style="danger",
                data={"productionId": event.production_id},
            ),
        ],
    )


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------
@listens_to("task.assigned", TaskEvent)
def task_assigned(event: TaskEvent):
    yield _payload(
        event,
        user_ids=[event.assigned_to],
        notification_type=NotificationType.TASK_ASSIGNED,
        channels=EMAIL_AND_IN_APP,
        priority=NotificationPriority.HIGH if event.priority == "high" else NotificationPriority.MEDIUM,
        title=f"New Task: {event.task_title}",
        message=f"You have been assigned a new task: {event.task_description or event.task_title}",
        metadata=_metadata("task", event.task_id, f"/tasks/{event.task_id}", "tasks"),
        actions=[
            NotificationAction(label="View Task", action="view_task", style="primary"),
            NotificationAction(
                label="Start Task",
                action="start_task",
                style="secondary",
                data={"taskId": event.task_id},
            ),
        ],
    )


@listens_to("task.overdue", TaskEvent)
def task_overdue(event: TaskEvent):
    metadata = _metadata("task", event.task_id, f"/tasks/{event.task_id}", "tasks")
    yield _payload(
        event,
        user_ids=[event.assigned_to],
        notification_type=NotificationType.TASK_OVERDUE,
        channels=EMAIL_AND_IN_APP,
        priority=NotificationPriority.HIGH,
        title=f"Task Overdue: {event.task_title}",
        message=f'Task "{event.task_title}" is overdue. Due date was {event.due_date}',
        metadata=metadata,
    )
    yield _payload(
        event,
        roles=["MANAGER", "ADMIN"],
        notification_type=NotificationType.TASK_OVERDUE,
        channels=EMAIL_AND_IN_APP,
        priority=NotificationPriority.HIGH,
        title=f"Task Overdue: {event.task_title}",
        message=f'Task "{event.task_title}" assigned to {event.assignee_name or event.assigned_to} is overdue',
        metadata=metadata,
    )


# ---------------------------------------------------------------------------
# Quality
# ---------------------------------------------------------------------------
@listens_to("quality.alert", QualityEvent)
def quality_alert(event: QualityEvent):
    yield _payload(
        event,
        roles=["QUALITY_MANAGER", "PRODUCTION_MANAGER"],
        notification_type=NotificationType.QUALITY_ALERT,
        channels=EMAIL_AND_IN_APP,
        priority=NotificationPriority.CRITICAL if event.severity == "critical" else NotificationPriority.HIGH,
        title=f"Quality Alert: {event.issue_type}",
        message=(
            f"Quality issue detected in {event.product_name} (Batch: {event.batch_number}): "
            f"{event.issue_description}"
        ),
        metadata=_metadata(
            "quality", event.quality_check_id, f"/quality/{event.quality_check_id}", "quality"
        ),
        actions=[
            NotificationAction(
                label="Create NCR",
                action="create_ncr",
                style="primary",
                data={"qualityCheckId": event.quality_check_id},
            ),
            NotificationAction(
                label="Quarantine Batch",
                action="quarantine",
                style="danger",
                data={"batchNumber": event.batch_number},
            ),
        ],
    )


@listens_to("quality.inspection_failed", QualityEvent)
def quality_inspection_failed(event: QualityEvent):
    yield _payload(
        event,
        roles=["QUALITY_MANAGER", "PRODUCTION_MANAGER", "ADMIN"],
        notification_type=NotificationType.QUALITY_INSPECTION_FAILED,
        channels=EMAIL_AND_IN_APP,
        priority=NotificationPriority.HIGH,
        title=f"Inspection Failed: {event.product_name}",
        message=(
            f"Quality inspection failed for batch {event.batch_number}. "
            f"{event.failure_count or 0} defects found"
        ),
        metadata=_metadata(
            "quality", event.inspection_id, f"/quality/inspections/{event.inspection_id}", "quality"
        ),
    )


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------
@listens_to("maintenance.due", MaintenanceEvent)
def maintenance_due(event: MaintenanceEvent):
    yield _payload(
        event,
        roles=["MAINTENANCE_MANAGER", "PRODUCTION_MANAGER"],
        notification_type=NotificationType.MAINTENANCE_DUE,
        channels=EMAIL_AND_IN_APP,
        priority=NotificationPriority.HIGH if event.priority == "high" else NotificationPriority.MEDIUM,
        title=f"Maintenance Due: {event.equipment_name}",
        message=f"Scheduled maintenance is due for {event.equipment_name} on {event.due_date}",
        metadata=_metadata(
            "maintenance", event.maintenance_id, f"/maintenance/{event.maintenance_id}", "maintenance"
        ),
        actions=[
            NotificationAction(
                label="Schedule Maintenance",
                action="schedule",
                style="primary",
                data={"equipmentId": event.equipment_id},
            ),
        ],
    )


@listens_to("equipment.breakdown", MaintenanceEvent)
def equipment_breakdown(event: MaintenanceEvent):
    yield _payload(
        event,
        roles=["MAINTENANCE_MANAGER", "PRODUCTION_MANAGER", "ADMIN"],
        notification_type=NotificationType.EQUIPMENT_BREAKDOWN,
        channels=[NotificationChannel.EMAIL, NotificationChannel.IN_APP, NotificationChannel.SMS],
        priority=NotificationPriority.CRITICAL,
        title=f"Equipment Breakdown: {event.equipment_name}",
        message=(
            f"Critical: {event.equipment_name} has broken down. "
            f"Production line {event.production_line} affected"
        ),
        metadata=_metadata("equipment", event.equipment_id, f"/equipment/{event.equipment_id}", "maintenance"),
        actions=[
            NotificationAction(
                label="Create Work Order",
                action="create_work_order",
                style="danger",
                data={"equipmentId": event.equipment_id},
            ),
            NotificationAction(label="View Details", action="view_details", style="primary"),
        ],
    )


# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------
@listens_to("system.error", SystemErrorEvent)
def system_error(event: SystemErrorEvent):
    yield _payload(
        event,
        roles=["ADMIN", "IT_ADMIN"],
        notification_type=NotificationType.SYSTEM_ERROR,
        channels=EMAIL_AND_IN_APP,
        priority=NotificationPriority.CRITICAL,
        title="System Error Detected",
        message=f"System error: {event.error_message}. Service: {event.service}",
        metadata={"category": "system"},
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
def handle_event(event_name: str, payload: dict, dispatcher: NotificationDispatcher | None = None) -> list[BatchResult]:
    """Send the notifications for one domain event.

    Returns one BatchResult per send made. Unknown events, invalid payloads
    and failed sends are logged and yield no result.
    """
    listener = _LISTENERS.get(event_name)
    if listener is None:
        logger.info("No notification listener for event", event_name=event_name)
        return []

    payload_model, build = listener
    dispatcher = dispatcher or NotificationDispatcher()
    results = []
    try:
        event = payload_model.model_validate(payload)
        for notification_payload in build(event):
            results.append(dispatcher.send(notification_payload))
    except Exception as e:
        logger.error(
            "Failed to send notification for event",
            event_name=event_name,
            error=str(e),
            error_type=e.__class__.__name__,
        )
    return results
