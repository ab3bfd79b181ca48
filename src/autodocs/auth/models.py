from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated dashboard user.
    """

    subject: str
    roles: frozenset[str]

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles

    def owns(self, owner: str | None) -> bool:
        # Admins see every repository, including ones first seen through a webhook.
        return self.is_admin or (owner is not None and owner == self.subject)
