from __future__ import annotations

from dataclasses import dataclass

ROLES = {"student", "instructor", "admin"}


@dataclass(frozen=True)
class Principal:
    """The authenticated caller.

    Resolved once per request by ``app.api.deps`` and passed explicitly into
    every service call; services never look at request state.
    """

    id: int
    role: str = "student"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_instructor(self) -> bool:
        return self.role in {"instructor", "admin"}
