"""In-memory directory — user and role registrations held in process."""

import threading

from notifications.directory.directory_port import DirectoryPort


class InMemoryDirectory(DirectoryPort):
    """Directory backed by dictionaries; used in tests and single-node setups."""

    def __init__(self):
        self._lock = threading.Lock()
        self._roles: dict[tuple[str, str], list[str]] = {}
        self._emails: dict[str, str] = {}

    def add_user(self, user_id: str, tenant_id: str, roles=(), email: str | None = None) -> None:
        with self._lock:
            for role in roles:
                members = self._roles.setdefault((tenant_id, role), [])
                if user_id not in members:
                    members.append(user_id)
            if email:
                self._emails[user_id] = email

    def users_with_role(self, tenant_id: str, role: str) -> list[str]:
        with self._lock:
            return list(self._roles.get((tenant_id, role), []))

    def email_address_of(self, user_id: str) -> str | None:
        with self._lock:
            return self._emails.get(user_id)

    def reset(self) -> None:
        with self._lock:
            self._roles.clear()
            self._emails.clear()
