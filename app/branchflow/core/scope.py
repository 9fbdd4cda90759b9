from __future__ import annotations

import logging

from app.branchflow.repos.locations import LocationRepository

logger = logging.getLogger(__name__)

MASTER_ADMIN_ROLE = "MASTER_ADMIN"
ADMIN_TIER_ROLES = {"MASTER_ADMIN", "ADMIN", "SUPERVISOR"}
DELIVERY_ROLES = {"DELIVERY"}
STORE_ROLES = {"SELLER", "CASHIER"}
TRANSFER_VIEW_ROLES = ADMIN_TIER_ROLES | DELIVERY_ROLES | STORE_ROLES


def normalize_role(role: str | None) -> str:
    return (role or "").strip().upper()


def is_master_admin(role: str | None) -> bool:
    return normalize_role(role) == MASTER_ADMIN_ROLE


def is_admin_tier(role: str | None) -> bool:
    return normalize_role(role) in ADMIN_TIER_ROLES


def is_delivery(role: str | None) -> bool:
    return normalize_role(role) in DELIVERY_ROLES


def is_store_staff(role: str | None) -> bool:
    return normalize_role(role) in STORE_ROLES


def resolve_acting_location(
    db,
    user,
    *,
    branch_header: str | None = None,
    device_header: str | None = None,
):
    """Resolve the branch a caller is acting from.

    The user's assigned location always wins; headers are only hints. A
    shared terminal (user without an assignment) is identified by its
    device GUID, looked up in the location directory.
    """
    repo = LocationRepository(db)
    branch_hint = (branch_header or "").strip()
    if user.location_id:
        if branch_hint and branch_hint != str(user.location_id):
            logger.warning(
                "Ignoring branch header that does not match the assigned location",
                extra={"user_id": str(user.id), "branch_header": branch_hint},
            )
        return repo.get_active_by_id(user.location_id)

    device_guid = (device_header or "").strip()
    if device_guid:
        return repo.get_active_by_guid(device_guid)

    if branch_hint:
        logger.warning(
            "Ignoring unverified branch header for user without assigned location",
            extra={"user_id": str(user.id), "branch_header": branch_hint},
        )
    return None
