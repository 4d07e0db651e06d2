"""Exceptions raised by the notifications context."""

from protean.exceptions import ObjectNotFoundError


class TemplateNotFoundError(ObjectNotFoundError):
    """Raised when a send or render names a template that does not exist."""


class NotificationNotFoundError(ObjectNotFoundError):
    """Raised when a notification does not exist or is not owned by the caller."""


class ChannelNotSupportedError(ValueError):
    """Raised by the channel registry when no sender is registered for a channel."""
