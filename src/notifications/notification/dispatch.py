"""Per-notification dispatch through channel senders.

``dispatch_notifications`` is the single delivery path: initial sends,
retry sweeps and scheduled delivery all go through it. Channel I/O runs on
worker threads with a cap on sends in flight; repository writes stay on the
calling thread, after the record's create write, in input order.
"""

import time
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from functools import partial

import structlog
from notifications.channel import ChannelRegistry, get_registry
from notifications.channel.port import DeliveryResult
from notifications.config import Settings, get_settings
from notifications.errors import ChannelNotSupportedError
from notifications.notification.notification import Notification
from notifications.notification.payload import NotificationResult
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)


def _deliver(registry: ChannelRegistry, notification: Notification) -> DeliveryResult:
    """Run one channel send. Never raises."""
    try:
        sender = registry.get(notification.channel)
    except ChannelNotSupportedError as e:
        return DeliveryResult.failed(str(e))

    try:
        return sender.send(notification)
    except Exception as e:
        logger.error(
            "Channel sender raised",
            notification_id=str(notification.id),
            channel=notification.channel,
            error=str(e),
        )
        return DeliveryResult.failed(str(e) or e.__class__.__name__)


def apply_delivery_result(repo, notification: Notification, delivery: DeliveryResult) -> NotificationResult:
    """Record the channel outcome on the notification and persist it."""
    try:
        if delivery.success and delivery.status == "delivered":
            notification.mark_delivered(delivery.delivered_at)
        elif delivery.success:
            notification.mark_sent()
        else:
            notification.mark_failed(delivery.error)
        repo.add(notification)
    except Exception as e:
        logger.error(
            "Failed to record delivery result",
            notification_id=str(notification.id),
            channel=notification.channel,
            error=str(e),
        )
        return NotificationResult(
            notification_id=str(notification.id),
            user_id=str(notification.user_id),
            channel=notification.channel,
            success=False,
            status=notification.status,
            error=str(e),
        )

    if not delivery.success:
        logger.warning(
            "Notification delivery failed",
            notification_id=str(notification.id),
            channel=notification.channel,
            error=delivery.error,
        )

    return NotificationResult(
        notification_id=str(notification.id),
        user_id=str(notification.user_id),
        channel=notification.channel,
        success=delivery.success,
        status=notification.status,
        error=None if delivery.success else notification.last_error,
    )


def _log_late_completion(notification: Notification, future) -> None:
    delivery = future.result()
    logger.warning(
        "Channel send finished after timeout",
        notification_id=str(notification.id),
        channel=notification.channel,
        success=delivery.success,
    )


def dispatch_notifications(
    notifications: list[Notification],
    registry: ChannelRegistry | None = None,
    settings: Settings | None = None,
) -> list[NotificationResult]:
    """Send each notification through its channel and record the outcome.

    At most ``dispatch_max_workers`` sends are in flight at once; the rest
    wait their turn and are never cancelled. Each send gets its own
    ``channel_timeout_seconds`` budget, counted from when it starts. A send
    that overruns is recorded as FAILED and its worker is written off, which
    frees the slot for the next pair. A late result from a written-off send
    is logged and never applied to the record. Results are returned in input
    order.
    """
    if not notifications:
        return []

    registry = registry or get_registry()
    settings = settings or get_settings()
    timeout = settings.channel_timeout_seconds
    max_in_flight = settings.dispatch_max_workers

    waiting = deque(enumerate(notifications))
    in_flight: dict[Future, tuple[int, float]] = {}
    deliveries: list[DeliveryResult | None] = [None] * len(notifications)

    # Sized per pair: the in-flight cap is enforced below and written-off sends keep their thread.
    executor = ThreadPoolExecutor(max_workers=len(notifications), thread_name_prefix="notification-dispatch")
    try:
        while waiting or in_flight:
            while waiting and len(in_flight) < max_in_flight:
                index, notification = waiting.popleft()
                future = executor.submit(_deliver, registry, notification)
                in_flight[future] = (index, time.monotonic() + timeout)

            next_deadline = min(deadline for _, deadline in in_flight.values())
            wait(in_flight, timeout=max(0.0, next_deadline - time.monotonic()), return_when=FIRST_COMPLETED)

            now = time.monotonic()
            for future, (index, deadline) in list(in_flight.items()):
                if future.done():
                    deliveries[index] = future.result()
                elif deadline <= now:
                    notification = notifications[index]
                    logger.warning(
                        "Channel send timed out",
                        notification_id=str(notification.id),
                        channel=notification.channel,
                        timeout=timeout,
                    )
                    future.add_done_callback(partial(_log_late_completion, notification))
                    deliveries[index] = DeliveryResult.failed(f"Channel timed out after {timeout:g}s")
                else:
                    continue
                del in_flight[future]
    finally:
        executor.shutdown(wait=False)

    repo = current_domain.repository_for(Notification)
    return [
        apply_delivery_result(repo, notification, delivery)
        for notification, delivery in zip(notifications, deliveries, strict=True)
    ]
