from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.branchflow.core.branches import display_branch
from app.branchflow.core.deps import get_acting_location, get_transfer_scope, require_roles
from app.branchflow.core.error_catalog import AppError, ErrorCatalog
from app.branchflow.core.scope import (
    ADMIN_TIER_ROLES,
    DELIVERY_ROLES,
    STORE_ROLES,
    TRANSFER_VIEW_ROLES,
)
from app.branchflow.db.models import Transfer, TransferItem
from app.branchflow.db.session import get_db
from app.branchflow.repos.transfers import TransferQueryFilters
from app.branchflow.schemas.transfers import (
    EquipmentSummary,
    LocationSummary,
    ScanInfoResponse,
    ScanRequest,
    TransferCreateRequest,
    TransferDeleteResponse,
    TransferDetailResponse,
    TransferItemResponse,
    TransferListResponse,
    TransferMutationResponse,
    TransferSummaryResponse,
    UserSummary,
)
from app.branchflow.services.transfers import TransferService, scan_message

router = APIRouter()


def _parse_transfer_id(transfer_id: str) -> UUID:
    try:
        return UUID(transfer_id)
    except ValueError as exc:
        raise AppError(ErrorCatalog.TRANSFER_NOT_FOUND, details={"transfer_id": transfer_id}) from exc


def _user_summary(user) -> UserSummary | None:
    if user is None:
        return None
    return UserSummary(
        id=str(user.id),
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
    )


def _location_summary(location) -> LocationSummary | None:
    if location is None:
        return None
    return LocationSummary(id=str(location.id), name=display_branch(location.name), code=location.code)


def _equipment_summary(equipment) -> EquipmentSummary | None:
    if equipment is None:
        return None
    return EquipmentSummary(
        id=str(equipment.id),
        imei=equipment.imei,
        brand=equipment.brand,
        model=equipment.model,
        state=equipment.state,
        location=_location_summary(equipment.location),
    )


def _scan_response(info, actor) -> ScanInfoResponse:
    return ScanInfoResponse(status=info.status, observation=info.observation, at=info.at, by=_user_summary(actor))


def _item_response(item: TransferItem) -> TransferItemResponse:
    return TransferItemResponse(
        id=str(item.id),
        imei=item.imei,
        equipment=_equipment_summary(item.equipment),
        courier=_scan_response(item.courier, item.courier_by),
        store=_scan_response(item.store, item.store_by),
    )


def _transfer_detail(transfer: Transfer) -> TransferDetailResponse:
    return TransferDetailResponse(
        id=str(transfer.id),
        code=transfer.code,
        from_branch=display_branch(transfer.from_branch),
        to_branch=display_branch(transfer.to_branch),
        from_location_id=str(transfer.from_location_id),
        to_location_id=str(transfer.to_location_id),
        status=transfer.status,
        total_items=len(transfer.items),
        courier_received=transfer.courier_received,
        store_received=transfer.store_received,
        items=[_item_response(item) for item in transfer.items],
        requested_by=_user_summary(transfer.requested_by),
        assigned_delivery_user=_user_summary(transfer.assigned_delivery_user),
        received_by=_user_summary(transfer.received_by),
        reason=transfer.reason or "",
        revision=transfer.revision,
        created_at=transfer.created_at,
        updated_at=transfer.updated_at,
    )


def _transfer_summary(transfer: Transfer) -> TransferSummaryResponse:
    return TransferSummaryResponse(
        id=str(transfer.id),
        code=transfer.code,
        from_branch=display_branch(transfer.from_branch),
        to_branch=display_branch(transfer.to_branch),
        status=transfer.status,
        total_items=len(transfer.items),
        courier_received=transfer.courier_received,
        store_received=transfer.store_received,
        created_at=transfer.created_at,
        assigned_delivery_user=str(transfer.assigned_delivery_user_id) if transfer.assigned_delivery_user_id else None,
    )


@router.post("/transfers", response_model=TransferMutationResponse, status_code=201)
def create_transfer(
    payload: TransferCreateRequest,
    current_user=Depends(require_roles(*ADMIN_TIER_ROLES)),
    db=Depends(get_db),
):
    transfer = TransferService(db).create_transfer(payload, current_user)
    return TransferMutationResponse(message="Transfer created", transfer=_transfer_detail(transfer))


@router.get("/transfers", response_model=TransferListResponse)
def list_transfers(
    imei: str | None = Query(None),
    from_branch: str | None = Query(None, alias="fromBranch"),
    to_branch: str | None = Query(None, alias="toBranch"),
    on_date: date | None = Query(None, alias="date"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    _user=Depends(require_roles(*TRANSFER_VIEW_ROLES)),
    scope=Depends(get_transfer_scope),
    db=Depends(get_db),
):
    filters = TransferQueryFilters(
        imei=imei,
        from_branch=from_branch,
        to_branch=to_branch,
        on_date=on_date,
        start_date=start_date,
        end_date=end_date,
    )
    rows = TransferService(db).list_transfers(scope, filters)
    return TransferListResponse(rows=[_transfer_summary(transfer) for transfer in rows])


@router.get("/transfers/{transfer_id}", response_model=TransferDetailResponse)
def get_transfer_detail(
    transfer_id: str,
    _user=Depends(require_roles(*TRANSFER_VIEW_ROLES)),
    scope=Depends(get_transfer_scope),
    db=Depends(get_db),
):
    transfer = TransferService(db).get_transfer(_parse_transfer_id(transfer_id), scope)
    return _transfer_detail(transfer)


@router.put("/transfers/{transfer_id}/courier/items", response_model=TransferMutationResponse)
def courier_scan(
    transfer_id: str,
    payload: ScanRequest,
    current_user=Depends(require_roles(*DELIVERY_ROLES)),
    scope=Depends(get_transfer_scope),
    db=Depends(get_db),
):
    transfer = TransferService(db).courier_scan(_parse_transfer_id(transfer_id), payload, current_user, scope)
    return TransferMutationResponse(message=scan_message(payload), transfer=_transfer_detail(transfer))


@router.put("/transfers/{transfer_id}/store/items", response_model=TransferMutationResponse)
def store_scan(
    transfer_id: str,
    payload: ScanRequest,
    current_user=Depends(require_roles(*STORE_ROLES)),
    acting_location=Depends(get_acting_location),
    scope=Depends(get_transfer_scope),
    db=Depends(get_db),
):
    transfer = TransferService(db).store_scan(
        _parse_transfer_id(transfer_id),
        payload,
        current_user,
        scope,
        acting_location,
    )
    return TransferMutationResponse(message=scan_message(payload), transfer=_transfer_detail(transfer))


@router.delete("/transfers/{transfer_id}", response_model=TransferDeleteResponse)
def delete_transfer(
    transfer_id: str,
    current_user=Depends(require_roles(*ADMIN_TIER_ROLES)),
    db=Depends(get_db),
):
    parsed_id = _parse_transfer_id(transfer_id)
    TransferService(db).delete_transfer(parsed_id, current_user)
    return TransferDeleteResponse(message="Transfer deleted", id=str(parsed_id))
