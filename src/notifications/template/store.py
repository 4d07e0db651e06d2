"""Template store — CRUD, rendering and default seeding for notification templates."""

from typing import NamedTuple

import structlog
from notifications.errors import TemplateNotFoundError
from notifications.template.defaults import DEFAULT_TEMPLATES
from notifications.template.renderer import (
    TemplateCache,
    is_valid_template,
    render_compiled,
    template_cache,
)
from notifications.template.template import NotificationTemplate
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)


class RenderedTemplate(NamedTuple):
    subject: str
    body: str


class TemplateStore:
    def __init__(self, cache: TemplateCache | None = None):
        self.cache = cache if cache is not None else template_cache

    @property
    def repo(self):
        return current_domain.repository_for(NotificationTemplate)

    def create_template(self, tenant_id, **fields) -> NotificationTemplate:
        """Create a template. ``(tenant_id, code)`` must be unused; sources must parse."""
        repo = self.repo
        if repo.find_by_code(str(tenant_id), fields["code"]) is not None:
            raise ValidationError({"code": [f"Template code already exists: {fields['code']}"]})
        self._assert_sources_valid(fields.get("subject"), fields.get("body"))

        template = NotificationTemplate.create(tenant_id=str(tenant_id), **fields)
        repo.add(template)
        logger.info("Template created", template_id=str(template.id), tenant_id=str(tenant_id), code=template.code)
        return template

    def update_template(self, template_id, updated_by=None, **changes) -> NotificationTemplate:
        repo = self.repo
        template = self.get_template(template_id)
        self._assert_sources_valid(changes.get("subject"), changes.get("body"))

        template.update(updated_by=updated_by, **changes)
        repo.add(template)
        self.cache.invalidate(str(template.id))
        return template

    def get_template(self, template_id) -> NotificationTemplate:
        try:
            return self.repo.get(str(template_id))
        except ObjectNotFoundError:
            raise TemplateNotFoundError({"template_id": [f"Template not found: {template_id}"]}) from None

    def get_template_by_code(self, tenant_id, code) -> NotificationTemplate | None:
        return self.repo.find_by_code(str(tenant_id), code)

    def list_templates(self, tenant_id, notification_type=None, channel=None) -> list[NotificationTemplate]:
        """Active templates of a tenant, optionally narrowed by type and channel."""
        criteria = {"active": True}
        if notification_type:
            criteria["notification_type"] = notification_type
        if channel:
            criteria["channel"] = channel
        return sorted(self.repo.find_for_tenant(str(tenant_id), **criteria), key=lambda t: t.code)

    def render_template(self, template: NotificationTemplate, data: dict | None = None) -> RenderedTemplate:
        """Render subject and body. Declared defaults fill keys missing from ``data``."""
        context = {**template.default_values, **(data or {})}
        compiled = self.cache.get_or_compile(str(template.id), template.subject, template.body)
        subject, body = render_compiled(compiled, context)
        return RenderedTemplate(subject=subject, body=body)

    def validate_template(self, source: str) -> bool:
        return is_valid_template(source, self.cache.env)

    def delete_template(self, template_id) -> None:
        template = self.get_template(template_id)
        self.repo.remove(template)
        self.cache.invalidate(str(template.id))
        logger.info("Template deleted", template_id=str(template_id))

    def seed_default_templates(self, tenant_id) -> int:
        """Create the default templates whose codes the tenant does not have yet."""
        created = 0
        for definition in DEFAULT_TEMPLATES:
            if self.get_template_by_code(tenant_id, definition["code"]) is not None:
                continue
            self.create_template(tenant_id, **definition)
            created += 1
        logger.info("Default templates seeded", tenant_id=str(tenant_id), created=created)
        return created

    def _assert_sources_valid(self, subject, body):
        errors = {}
        if subject is not None and not self.validate_template(subject):
            errors["subject"] = ["Template syntax error"]
        if body is not None and not self.validate_template(body):
            errors["body"] = ["Template syntax error"]
        if errors:
            raise ValidationError(errors)
