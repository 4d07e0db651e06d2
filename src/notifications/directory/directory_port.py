"""Directory port — tenant/user/role lookups owned by the identity service."""

from abc import ABC, abstractmethod


class DirectoryPort(ABC):
    """Abstract interface for resolving roles and contact addresses."""

    @abstractmethod
    def users_with_role(self, tenant_id: str, role: str) -> list[str]:
        """Return the ids of users holding ``role`` in ``tenant_id``."""
        ...

    @abstractmethod
    def email_address_of(self, user_id: str) -> str | None:
        """Return the user's email address, or None if unknown."""
        ...
