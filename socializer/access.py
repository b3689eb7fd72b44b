"""
The authenticated caller and the permission checks built on it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from socializer.errors import PermissionDeniedError
from socializer.models import SocietyRecord, UserRecord


@dataclass
class Actor:
    uid: str
    user: UserRecord
    claims: dict = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        """Platform admin: flag on the user document or the auth custom claim."""
        return bool(self.user.is_admin or self.claims.get("isAdmin"))

    @property
    def has_admin_claim(self) -> bool:
        return bool(self.claims.get("isAdmin"))

    def is_society_admin(self, society: SocietyRecord) -> bool:
        return society.id in self.user.society_admins or self.uid in society.society_admins

    def can_manage(self, society: SocietyRecord) -> bool:
        return self.is_admin or self.is_society_admin(society)


def require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise PermissionDeniedError("You do not have permission to perform this action.")


def require_manager(actor: Actor, society: SocietyRecord) -> None:
    if not actor.can_manage(society):
        raise PermissionDeniedError(
            f"You do not have permission to manage {society.name or 'this society'}."
        )
