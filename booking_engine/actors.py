"""Explicit authorization context passed into every engine operation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from booking_engine.errors import AuthorizationError


class Role(str, Enum):
    ADMIN = "ADMIN"
    AGENT = "AGENT"
    CLIENT = "CLIENT"
    SYSTEM = "SYSTEM"


@dataclass(frozen=True)
class Actor:
    """
    Who is performing an operation.

    actor_id is None for anonymous guests and for system triggers
    (webhook, reaper); audit entries record it as-is.
    """

    actor_id: Optional[str]
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def require(self, *roles: Role) -> None:
        """
        Raise AuthorizationError unless the actor holds one of the given roles.

        Args:
            roles: Accepted roles
        """
        if self.role not in roles:
            allowed = ", ".join(r.value for r in roles)
            raise AuthorizationError(f"Role {self.role.value} is not allowed (requires {allowed})")


SYSTEM_ACTOR = Actor(actor_id=None, role=Role.SYSTEM)
ANONYMOUS_ACTOR = Actor(actor_id=None, role=Role.CLIENT)
