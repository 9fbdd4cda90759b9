from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from sqlalchemy import and_, false, func, or_, select

from app.branchflow.core.branches import display_branch, normalize_branch_key
from app.branchflow.db.models import Transfer, TransferItem
from app.branchflow.services.access_scope import (
    SCOPE_ALL,
    SCOPE_ASSIGNED,
    SCOPE_BRANCH,
    TransferScope,
)
from app.branchflow.services.transfer_workflow import TransferStatus


@dataclass(frozen=True)
class TransferQueryFilters:
    imei: str | None = None
    from_branch: str | None = None
    to_branch: str | None = None
    on_date: date | None = None
    start_date: date | None = None
    end_date: date | None = None

    def is_empty(self) -> bool:
        return not any(
            (self.imei, self.from_branch, self.to_branch, self.on_date, self.start_date, self.end_date)
        )


def _day_start(value: date) -> datetime:
    return datetime.combine(value, time.min)


class TransferRepository:
    def __init__(self, db):
        self.db = db

    def list_transfers(
        self,
        scope: TransferScope,
        filters: TransferQueryFilters | None = None,
        *,
        limit: int | None = None,
    ) -> list[Transfer]:
        query = self._apply_scope(select(Transfer), scope)
        if filters is not None:
            query = self._apply_filters(query, filters)
        query = query.order_by(Transfer.created_at.desc(), Transfer.code.desc())
        if limit:
            query = query.limit(limit)
        return list(self.db.execute(query).scalars().all())

    def get_transfer(self, transfer_id, scope: TransferScope) -> Transfer | None:
        query = self._apply_scope(select(Transfer).where(Transfer.id == transfer_id), scope)
        return self.db.execute(query).scalars().first()

    def get_for_update(self, transfer_id, scope: TransferScope) -> Transfer | None:
        query = self._apply_scope(select(Transfer).where(Transfer.id == transfer_id), scope)
        return self.db.execute(query.with_for_update()).scalars().first()

    def add(self, transfer: Transfer) -> Transfer:
        self.db.add(transfer)
        self.db.flush()
        return transfer

    def delete(self, transfer: Transfer) -> None:
        self.db.delete(transfer)
        self.db.flush()

    @staticmethod
    def _apply_scope(query, scope: TransferScope):
        if scope.kind == SCOPE_ALL:
            return query
        if scope.kind == SCOPE_ASSIGNED and scope.user_id is not None:
            return query.where(Transfer.assigned_delivery_user_id == scope.user_id)
        if scope.kind == SCOPE_BRANCH and scope.location_id is not None:
            return query.where(
                or_(
                    Transfer.from_location_id == scope.location_id,
                    and_(
                        Transfer.to_location_id == scope.location_id,
                        Transfer.status != TransferStatus.PENDING.value,
                    ),
                )
            )
        return query.where(false())

    @staticmethod
    def _apply_filters(query, filters: TransferQueryFilters):
        if filters.imei:
            query = query.where(Transfer.items.any(TransferItem.imei == filters.imei.strip()))
        if filters.from_branch:
            key = normalize_branch_key(display_branch(filters.from_branch))
            query = query.where(func.lower(func.trim(Transfer.from_branch)) == key)
        if filters.to_branch:
            key = normalize_branch_key(display_branch(filters.to_branch))
            query = query.where(func.lower(func.trim(Transfer.to_branch)) == key)
        if filters.on_date:
            query = query.where(
                Transfer.created_at >= _day_start(filters.on_date),
                Transfer.created_at < _day_start(filters.on_date + timedelta(days=1)),
            )
        if filters.start_date:
            query = query.where(Transfer.created_at >= _day_start(filters.start_date))
        if filters.end_date:
            query = query.where(Transfer.created_at < _day_start(filters.end_date + timedelta(days=1)))
        return query
