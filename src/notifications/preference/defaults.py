"""Default preference matrix seeded for new users."""

from notifications.notification.notification import NotificationChannel, NotificationType

_EMAIL = NotificationChannel.EMAIL.value
_IN_APP = NotificationChannel.IN_APP.value

# Event types that notify on both email and in-app by default.
_EMAIL_AND_IN_APP = [
    NotificationType.ORDER_CREATED,
    NotificationType.ORDER_COMPLETED,
    NotificationType.ORDER_CANCELLED,
    NotificationType.ORDER_DELAYED,
    NotificationType.INVENTORY_LOW_STOCK,
    NotificationType.INVENTORY_OUT_OF_STOCK,
    NotificationType.INVENTORY_EXPIRED,
    NotificationType.TASK_ASSIGNED,
    NotificationType.TASK_OVERDUE,
    NotificationType.QUALITY_ALERT,
    NotificationType.QUALITY_INSPECTION_FAILED,
    NotificationType.MAINTENANCE_DUE,
    NotificationType.EQUIPMENT_BREAKDOWN,
    NotificationType.SYSTEM_ERROR,
]

# Informational system traffic stays in-app unless the user opts in to email.
_IN_APP_ONLY = [
    NotificationType.SYSTEM_ALERT,
    NotificationType.SYSTEM_UPDATE,
]

DEFAULT_PREFERENCES: list[tuple[str, str, bool]] = [
    (t.value, channel, True) for t in _EMAIL_AND_IN_APP for channel in (_EMAIL, _IN_APP)
] + [(t.value, channel, channel == _IN_APP) for t in _IN_APP_ONLY for channel in (_EMAIL, _IN_APP)]
