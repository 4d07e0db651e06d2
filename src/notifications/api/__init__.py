"""Notifications domain API package."""

from notifications.api.routes import preference_router, router, template_router

__all__ = ["router", "preference_router", "template_router"]
