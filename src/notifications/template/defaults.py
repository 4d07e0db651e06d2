"""Templates seeded for every new tenant."""

from notifications.notification.notification import NotificationChannel, NotificationType

DEFAULT_TEMPLATES = [
    {
        "code": "order.created",
        "name": "Order Created",
        "notification_type": NotificationType.ORDER_CREATED.value,
        "channel": NotificationChannel.EMAIL.value,
        "subject": "Order {{ orderNumber }} has been created",
        "body": """
<h2>New Order Created</h2>
<p>Order #{{ orderNumber }} has been successfully created.</p>
<ul>
  <li>Customer: {{ customerName }}</li>
  <li>Items: {{ itemCount }} {{ pluralize(itemCount, "item", "items") }}</li>
  <li>Total: {{ totalAmount | format_currency }}</li>
  <li>Due Date: {{ dueDate | format_date }}</li>
</ul>
""",
        "variables": [
            {"name": "orderNumber", "type": "string", "required": True},
            {"name": "customerName", "type": "string", "required": True},
            {"name": "itemCount", "type": "number", "required": True},
            {"name": "totalAmount", "type": "number", "required": True},
            {"name": "dueDate", "type": "date", "required": True},
        ],
    },
    {
        "code": "inventory.low_stock",
        "name": "Low Stock Alert",
        "notification_type": NotificationType.INVENTORY_LOW_STOCK.value,
        "channel": NotificationChannel.IN_APP.value,
        "subject": "Low stock alert for {{ productName }}",
        "body": (
            'Product "{{ productName }}" (SKU: {{ sku }}) is running low on stock. '
            "Current quantity: {{ currentQuantity | format_number }}. "
            "Reorder level: {{ reorderLevel | format_number }}."
        ),
        "variables": [
            {"name": "productName", "type": "string", "required": True},
            {"name": "sku", "type": "string", "required": True},
            {"name": "currentQuantity", "type": "number", "required": True},
            {"name": "reorderLevel", "type": "number", "required": True},
        ],
    },
    {
        "code": "task.assigned",
        "name": "Task Assigned",
        "notification_type": NotificationType.TASK_ASSIGNED.value,
        "channel": NotificationChannel.EMAIL.value,
        "subject": "New task assigned: {{ taskTitle }}",
        "body": """
<h2>Task Assignment</h2>
<p>You have been assigned a new task:</p>
<h3>{{ taskTitle }}</h3>
<p>{{ taskDescription }}</p>
<p><strong>Priority:</strong> {{ priority | uppercase }}</p>
<p><strong>Due Date:</strong> {{ dueDate | format_date }}</p>
""",
        "variables": [
            {"name": "taskTitle", "type": "string", "required": True},
            {"name": "taskDescription", "type": "string", "required": True},
            {"name": "priority", "type": "string", "required": True},
            {"name": "dueDate", "type": "date", "required": True},
        ],
    },
    {
        "code": "quality.alert",
        "name": "Quality Alert",
        "notification_type": NotificationType.QUALITY_ALERT.value,
        "channel": NotificationChannel.IN_APP.value,
        "subject": "Quality issue detected",
        "body": (
            "Quality issue detected in {{ productName }} (Batch: {{ batchNumber }}). "
            "Issue: {{ issueDescription }}. Severity: {{ severity }}."
        ),
        "variables": [
            {"name": "productName", "type": "string", "required": True},
            {"name": "batchNumber", "type": "string", "required": True},
            {"name": "issueDescription", "type": "string", "required": True},
            {"name": "severity", "type": "string", "required": True, "default_value": "Medium"},
        ],
    },
    {
        "code": "maintenance.due",
        "name": "Maintenance Due",
        "notification_type": NotificationType.MAINTENANCE_DUE.value,
        "channel": NotificationChannel.EMAIL.value,
        "subject": "Maintenance due for {{ equipmentName }}",
        "body": """
<h2>Maintenance Reminder</h2>
<p>Scheduled maintenance is due for the following equipment:</p>
<h3>{{ equipmentName }}</h3>
<ul>
  <li>Equipment ID: {{ equipmentId }}</li>
  <li>Maintenance Type: {{ maintenanceType }}</li>
  <li>Due Date: {{ dueDate | format_date }}</li>
  {% if lastMaintenance %}<li>Last Maintenance: {{ lastMaintenance | format_date }}</li>{% endif %}
</ul>
""",
        "variables": [
            {"name": "equipmentName", "type": "string", "required": True},
            {"name": "equipmentId", "type": "string", "required": True},
            {"name": "maintenanceType", "type": "string", "required": True},
            {"name": "dueDate", "type": "date", "required": True},
            {"name": "lastMaintenance", "type": "date", "required": False},
        ],
    },
]
