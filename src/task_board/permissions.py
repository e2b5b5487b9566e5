"""Authorization check for task mutations."""

from collections.abc import Iterable
from typing import Protocol

TASKS_READ = "tasks:read"
TASKS_UPDATE = "tasks:update"


class Authorizer(Protocol):
    """Answers whether the current actor holds a permission."""

    def can(self, permission: str) -> bool:
        """Return True if the permission is granted."""
        ...


class StaticAuthorizer:
    """Authorizer backed by a fixed set of granted permissions.

    A `<resource>:*` grant covers every action on that resource.
    """

    def __init__(self, granted: Iterable[str]) -> None:
        self._granted = frozenset(granted)

    def can(self, permission: str) -> bool:
        if permission in self._granted:
            return True
        resource = permission.split(":", 1)[0]
        return f"{resource}:*" in self._granted
