from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from app.branchflow.core.scope import is_admin_tier, is_delivery, is_store_staff

SCOPE_ALL = "all"
SCOPE_ASSIGNED = "assigned"
SCOPE_BRANCH = "branch"
SCOPE_NONE = "none"


@dataclass(frozen=True)
class TransferScope:
    kind: str
    user_id: UUID | None = None
    location_id: UUID | None = None

    @property
    def unrestricted(self) -> bool:
        return self.kind == SCOPE_ALL


def build_transfer_scope(user, acting_location) -> TransferScope:
    """Translate role and acting branch into the set of visible transfers.

    Scoped roles whose branch cannot be resolved see nothing.
    """
    role = user.role
    if is_admin_tier(role):
        return TransferScope(kind=SCOPE_ALL)
    if is_delivery(role):
        return TransferScope(kind=SCOPE_ASSIGNED, user_id=user.id)
    if is_store_staff(role) and acting_location is not None:
        return TransferScope(kind=SCOPE_BRANCH, location_id=acting_location.id)
    return TransferScope(kind=SCOPE_NONE)
