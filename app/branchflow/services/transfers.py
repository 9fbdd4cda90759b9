from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm.exc import StaleDataError

from app.branchflow.core.branches import display_branch, same_branch
from app.branchflow.core.config import settings
from app.branchflow.core.error_catalog import AppError, ErrorCatalog
from app.branchflow.core.logging import log_json
from app.branchflow.core.metrics import metrics
from app.branchflow.core.scope import is_delivery, is_master_admin
from app.branchflow.db.models import Transfer, TransferItem
from app.branchflow.repos.inventory import InventoryRepository
from app.branchflow.repos.locations import LocationRepository
from app.branchflow.repos.transfers import TransferQueryFilters, TransferRepository
from app.branchflow.repos.users import UserRepository
from app.branchflow.schemas.transfers import ScanRequest, TransferCreateRequest
from app.branchflow.services.access_scope import SCOPE_ALL, TransferScope
from app.branchflow.services.relocation import RelocationService
from app.branchflow.services.transfer_workflow import (
    DELIVERED_STATUSES,
    ScanInfo,
    ScanStatus,
    TransferStatus,
    recompute_transfer,
)

logger = logging.getLogger("branchflow.transfers")

SIDE_COURIER = "courier"
SIDE_STORE = "store"


@dataclass
class ScanOutcome:
    applied: int = 0
    skipped: int = 0
    accepted_item_ids: set = field(default_factory=set)


def _new_transfer_code() -> str:
    return f"TR-{int(time.time() * 1000)}"


def scan_message(payload: ScanRequest) -> str:
    if payload.all_not_received:
        return "All items marked as not received"
    if payload.all_received:
        return "All items marked as received"
    if payload.received_item_id:
        return "Item marked as received"
    if payload.not_received_item_id:
        return "Item marked as not received"
    return "Items updated"


def apply_scan(items, side: str, payload: ScanRequest, *, user_id, now: datetime) -> ScanOutcome:
    """Stamp courier or store scan info on the items targeted by ``payload``.

    Batch actions run first, then the bulk flags, then the single-item
    shortcuts, so later forms overwrite earlier ones. Entries naming an
    unknown IMEI or carrying an unknown status are counted as skipped.
    """
    outcome = ScanOutcome()

    def stamp(item, status: ScanStatus, observation: str | None) -> None:
        setattr(item, side, ScanInfo(status=status.value, observation=observation or "", at=now, by=user_id))
        outcome.applied += 1
        if status is ScanStatus.RECEIVED:
            outcome.accepted_item_ids.add(item.id)
        else:
            outcome.accepted_item_ids.discard(item.id)

    by_imei = {}
    for item in items:
        by_imei.setdefault(item.imei, item)
    by_id = {str(item.id): item for item in items}

    for action in payload.actions:
        item = by_imei.get((action.imei or "").strip())
        status = ScanStatus.parse(action.status)
        if item is None or status is None:
            outcome.skipped += 1
            continue
        stamp(item, status, action.observation)

    if payload.all_received:
        for item in items:
            stamp(item, ScanStatus.RECEIVED, payload.observation)

    if payload.all_not_received:
        for item in items:
            stamp(item, ScanStatus.NOT_RECEIVED, payload.observation)

    for item_id, status in (
        (payload.received_item_id, ScanStatus.RECEIVED),
        (payload.not_received_item_id, ScanStatus.NOT_RECEIVED),
    ):
        if not item_id:
            continue
        try:
            item = by_id.get(str(UUID(item_id.strip())))
        except ValueError:
            item = None
        if item is None:
            outcome.skipped += 1
            continue
        stamp(item, status, payload.observation)

    return outcome


class TransferService:
    def __init__(self, db):
        self.db = db
        self.repo = TransferRepository(db)
        self.inventory = InventoryRepository(db)
        self.locations = LocationRepository(db)
        self.users = UserRepository(db)
        self.relocations = RelocationService(db)

    def list_transfers(self, scope: TransferScope, filters: TransferQueryFilters) -> list[Transfer]:
        if not scope.unrestricted:
            filters = TransferQueryFilters()
        limit = settings.TRANSFERS_UNFILTERED_LIMIT if filters.is_empty() else None
        return self.repo.list_transfers(scope, filters, limit=limit)

    def get_transfer(self, transfer_id, scope: TransferScope) -> Transfer:
        transfer = self.repo.get_transfer(transfer_id, scope)
        if transfer is None:
            raise AppError(ErrorCatalog.TRANSFER_NOT_FOUND, details={"transfer_id": str(transfer_id)})
        return transfer

    def create_transfer(self, payload: TransferCreateRequest, requested_by) -> Transfer:
        equipment_ids = list(payload.equipment_ids)
        if not equipment_ids:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "equipmentIds must contain at least one id"},
            )
        if len(set(equipment_ids)) != len(equipment_ids):
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "equipmentIds must not contain duplicates"},
            )

        courier = None
        if payload.assigned_delivery_user:
            courier = self.users.get_by_id(payload.assigned_delivery_user)
            if courier is None or not courier.is_active or not is_delivery(courier.role):
                raise AppError(
                    ErrorCatalog.VALIDATION_ERROR,
                    details={
                        "message": "assigned user is not a valid courier",
                        "assigned_delivery_user": str(payload.assigned_delivery_user),
                    },
                )

        equipments = {equipment.id: equipment for equipment in self.inventory.get_many(equipment_ids)}
        if len(equipments) != len(equipment_ids):
            missing = [str(equipment_id) for equipment_id in equipment_ids if equipment_id not in equipments]
            raise AppError(ErrorCatalog.EQUIPMENT_NOT_FOUND, details={"missing": missing})
        ordered = [equipments[equipment_id] for equipment_id in equipment_ids]

        origin_name = self._branch_name(ordered[0])
        if not origin_name or not all(same_branch(origin_name, self._branch_name(e)) for e in ordered[1:]):
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={
                    "message": "all equipment must belong to the same origin branch",
                    "branches": [
                        {
                            "equipment_id": str(equipment.id),
                            "imei": equipment.imei,
                            "branch": self._branch_name(equipment) or None,
                        }
                        for equipment in ordered
                    ],
                },
            )
        origin = ordered[0].location

        destination = self.locations.get_active_by_display_name(payload.to_branch)
        if destination is None:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "toBranch is not a known location", "to_branch": payload.to_branch},
            )
        if destination.id == origin.id:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "origin and destination branch must differ"},
            )

        now = datetime.utcnow()
        transfer = Transfer(
            code=_new_transfer_code(),
            from_location_id=origin.id,
            to_location_id=destination.id,
            from_branch=display_branch(origin.name),
            to_branch=display_branch(destination.name),
            status=TransferStatus.PENDING.value,
            courier_received=0,
            store_received=0,
            requested_by_user_id=requested_by.id,
            assigned_delivery_user_id=courier.id if courier else None,
            reason=(payload.reason or "").strip(),
            created_at=now,
            updated_at=now,
            items=[
                TransferItem(
                    position=position,
                    equipment_id=equipment.id,
                    imei=equipment.imei,
                    courier=ScanInfo(),
                    store=ScanInfo(),
                )
                for position, equipment in enumerate(ordered)
            ],
        )
        recompute_transfer(transfer)
        self.repo.add(transfer)
        self.db.commit()
        log_json(
            logger,
            {
                "event": "transfer.created",
                "transfer_id": str(transfer.id),
                "code": transfer.code,
                "from_branch": transfer.from_branch,
                "to_branch": transfer.to_branch,
                "items": len(ordered),
                "requested_by": str(requested_by.id),
            },
        )
        return transfer

    def courier_scan(self, transfer_id, payload: ScanRequest, user, scope: TransferScope) -> Transfer:
        transfer = self.repo.get_for_update(transfer_id, scope)
        if transfer is None:
            raise AppError(ErrorCatalog.TRANSFER_NOT_FOUND, details={"transfer_id": str(transfer_id)})

        now = datetime.utcnow()
        outcome = apply_scan(transfer.items, SIDE_COURIER, payload, user_id=user.id, now=now)
        status = recompute_transfer(transfer)
        transfer.updated_at = now
        self._commit_scan(transfer)
        log_json(
            logger,
            {
                "event": "transfer.courier_scan",
                "transfer_id": str(transfer.id),
                "user_id": str(user.id),
                "applied": outcome.applied,
                "skipped": outcome.skipped,
                "status": status.value,
                "revision": transfer.revision,
            },
        )
        return transfer

    def store_scan(self, transfer_id, payload: ScanRequest, user, scope: TransferScope, acting_location) -> Transfer:
        transfer = self.repo.get_for_update(transfer_id, scope)
        if transfer is None or acting_location is None or transfer.to_location_id != acting_location.id:
            raise AppError(ErrorCatalog.TRANSFER_NOT_FOUND, details={"transfer_id": str(transfer_id)})

        now = datetime.utcnow()
        outcome = apply_scan(transfer.items, SIDE_STORE, payload, user_id=user.id, now=now)
        status = recompute_transfer(transfer)
        accepted = [item for item in transfer.items if item.id in outcome.accepted_item_ids]
        if accepted and transfer.received_by_user_id is None:
            transfer.received_by_user_id = user.id
        transfer.updated_at = now
        self.relocations.enqueue(transfer, accepted)
        self._commit_scan(transfer)
        log_json(
            logger,
            {
                "event": "transfer.store_scan",
                "transfer_id": str(transfer.id),
                "user_id": str(user.id),
                "applied": outcome.applied,
                "skipped": outcome.skipped,
                "accepted": len(accepted),
                "status": status.value,
                "revision": transfer.revision,
            },
        )
        if accepted:
            self.relocations.apply_pending(transfer_id=transfer.id)
        return transfer

    def delete_transfer(self, transfer_id, user) -> None:
        transfer = self.repo.get_for_update(transfer_id, TransferScope(kind=SCOPE_ALL))
        if transfer is None:
            raise AppError(ErrorCatalog.TRANSFER_NOT_FOUND, details={"transfer_id": str(transfer_id)})
        if transfer.status in DELIVERED_STATUSES and not is_master_admin(user.role):
            raise AppError(
                ErrorCatalog.TRANSFER_DELETE_FORBIDDEN,
                details={"status": transfer.status},
            )
        status = transfer.status
        code = transfer.code
        try:
            self.repo.delete(transfer)
            self.db.commit()
        except StaleDataError as exc:
            self._raise_conflict(transfer_id, exc)
        log_json(
            logger,
            {
                "event": "transfer.deleted",
                "transfer_id": str(transfer_id),
                "code": code,
                "status": status,
                "user_id": str(user.id),
            },
        )

    def _commit_scan(self, transfer: Transfer) -> None:
        transfer_id = transfer.id
        try:
            self.db.commit()
        except StaleDataError as exc:
            self._raise_conflict(transfer_id, exc)

    def _raise_conflict(self, transfer_id, exc: StaleDataError) -> None:
        self.db.rollback()
        metrics.increment_transfer_conflict()
        raise AppError(
            ErrorCatalog.TRANSFER_CONCURRENT_MODIFICATION,
            details={"transfer_id": str(transfer_id)},
        ) from exc

    @staticmethod
    def _branch_name(equipment) -> str:
        location = equipment.location
        return location.name if location is not None else ""
