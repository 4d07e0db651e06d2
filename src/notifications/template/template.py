"""NotificationTemplate aggregate — tenant-scoped subject/body templates.

A template is identified by ``(tenant_id, code)`` and carries Jinja2
source for the subject and the body, plus the variables it expects. A
variable may declare ``default_value``, which is used when the caller's
data does not supply it.
"""

import json
from datetime import UTC, datetime

from notifications.domain import notifications
from notifications.notification.notification import NotificationChannel, NotificationType
from notifications.template.events import TemplateCreated, TemplateUpdated
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, String, Text

_UPDATABLE_FIELDS = (
    "name",
    "description",
    "notification_type",
    "channel",
    "subject",
    "body",
    "variables",
    "styling",
    "template_metadata",
    "active",
)
_JSON_FIELDS = ("variables", "styling", "template_metadata")


def _validate_variables(variables) -> None:
    if not isinstance(variables, list):
        raise ValidationError({"variables": ["Variables must be a list"]})
    for variable in variables:
        if not isinstance(variable, dict) or not variable.get("name"):
            raise ValidationError({"variables": ["Each variable needs a name"]})


@notifications.aggregate
class NotificationTemplate:
    tenant_id: Identifier(required=True)
    code: String(required=True, max_length=100)
    name: String(required=True, max_length=200)
    description: Text()

    notification_type: String(choices=NotificationType, required=True)
    channel: String(choices=NotificationChannel, required=True)

    subject: String(required=True, max_length=500)
    body: Text(required=True)

    variables: Text()  # JSON list of {name, type, required, default_value, description}
    styling: Text()  # JSON
    template_metadata: Text()  # JSON

    active: Boolean(default=True)

    created_by: Identifier()
    updated_by: Identifier()
    created_at: DateTime()
    updated_at: DateTime()

    @classmethod
    def create(
        cls,
        tenant_id,
        code,
        name,
        notification_type,
        channel,
        subject,
        body,
        variables=None,
        description=None,
        styling=None,
        metadata=None,
        active=True,
        created_by=None,
        template_id=None,
    ):
        variables = variables or []
        _validate_variables(variables)

        now = datetime.now(UTC)
        kwargs = {}
        if template_id:
            kwargs["id"] = template_id

        template = cls(
            tenant_id=tenant_id,
            code=code,
            name=name,
            description=description,
            notification_type=notification_type,
            channel=channel,
            subject=subject,
            body=body,
            variables=json.dumps(variables),
            styling=json.dumps(styling) if styling is not None else None,
            template_metadata=json.dumps(metadata) if metadata is not None else None,
            active=active,
            created_by=created_by,
            updated_by=created_by,
            created_at=now,
            updated_at=now,
            **kwargs,
        )

        template.raise_(
            TemplateCreated(
                template_id=str(template.id),
                tenant_id=str(tenant_id),
                code=code,
                notification_type=notification_type,
                channel=channel,
                created_at=now,
            )
        )

        return template

    @property
    def variable_list(self) -> list[dict]:
        return json.loads(self.variables) if self.variables else []

    @property
    def default_values(self) -> dict:
        return {v["name"]: v["default_value"] for v in self.variable_list if v.get("default_value") is not None}

    def update(self, updated_by=None, **changes):
        """Apply admin edits. Unknown keys are rejected."""
        unknown = set(changes) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError({"template": [f"Cannot update fields: {', '.join(sorted(unknown))}"]})
        if "variables" in changes:
            _validate_variables(changes["variables"] or [])

        for field, value in changes.items():
            if field in _JSON_FIELDS and value is not None:
                value = json.dumps(value)
            setattr(self, field, value)

        now = datetime.now(UTC)
        self.updated_by = updated_by
        self.updated_at = now

        self.raise_(
            TemplateUpdated(
                template_id=str(self.id),
                tenant_id=str(self.tenant_id),
                code=self.code,
                updated_by=updated_by,
                updated_at=now,
            )
        )


def template_to_dict(template) -> dict:
    return {
        "id": str(template.id),
        "tenantId": str(template.tenant_id),
        "code": template.code,
        "name": template.name,
        "description": template.description,
        "type": template.notification_type,
        "channel": template.channel,
        "subject": template.subject,
        "body": template.body,
        "variables": template.variable_list,
        "styling": json.loads(template.styling) if template.styling else None,
        "metadata": json.loads(template.template_metadata) if template.template_metadata else None,
        "active": template.active,
    }
