"""Transfer status aggregation.

The transfer-level status is never stored independently: it is recomputed
from the per-item courier and store statuses after every mutation. Nothing
in this module touches the database so the aggregation can be exercised on
plain tuples.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class ScanStatus(str, Enum):
    PENDING = "pending"
    RECEIVED = "received"
    NOT_RECEIVED = "not_received"

    @classmethod
    def parse(cls, value: object) -> "ScanStatus | None":
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return None


class TransferStatus(str, Enum):
    PENDING = "pending"
    IN_TRANSIT_PARTIAL = "in_transit_partial"
    IN_TRANSIT_COMPLETE = "in_transit_complete"
    INCOMPLETE = "incomplete"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ScanInfo:
    status: str = ScanStatus.PENDING.value
    observation: str | None = None
    at: datetime | None = None
    by: UUID | None = None


@dataclass(frozen=True)
class SideCounts:
    pending: int = 0
    received: int = 0
    rejected: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.received + self.rejected


def count_side(statuses: Iterable[str]) -> SideCounts:
    pending = received = rejected = 0
    for value in statuses:
        parsed = ScanStatus.parse(value)
        if parsed is ScanStatus.RECEIVED:
            received += 1
        elif parsed is ScanStatus.NOT_RECEIVED:
            rejected += 1
        else:
            pending += 1
    return SideCounts(pending=pending, received=received, rejected=rejected)


def compute_transfer_status(pairs: Iterable[tuple[str, str]]) -> TransferStatus:
    """Derive the aggregate status from (courier_status, store_status) pairs.

    The courier block runs first and the store block second, so once every
    item has a store outcome that outcome wins over the courier one.
    """
    pairs = list(pairs)
    total = len(pairs)
    status = TransferStatus.PENDING
    if total == 0:
        return status

    courier = count_side(courier_status for courier_status, _ in pairs)
    store = count_side(store_status for _, store_status in pairs)

    if courier.pending == 0:
        if courier.received == total:
            status = TransferStatus.IN_TRANSIT_COMPLETE
        elif courier.received > 0:
            status = TransferStatus.IN_TRANSIT_PARTIAL
        elif courier.rejected == total:
            status = TransferStatus.FAILED

    if store.pending == 0:
        if store.received == total:
            status = TransferStatus.COMPLETED
        elif store.received > 0:
            status = TransferStatus.INCOMPLETE
        elif store.rejected == total:
            status = TransferStatus.FAILED

    return status


def item_status_pairs(items) -> list[tuple[str, str]]:
    return [(item.courier.status, item.store.status) for item in items]


def recompute_transfer(transfer) -> TransferStatus:
    """Refresh the derived counters and status of a loaded transfer."""
    pairs = item_status_pairs(transfer.items)
    transfer.courier_received = count_side(courier for courier, _ in pairs).received
    transfer.store_received = count_side(store for _, store in pairs).received
    status = compute_transfer_status(pairs)
    transfer.status = status.value
    return status


DELIVERED_STATUSES = frozenset({TransferStatus.IN_TRANSIT_COMPLETE.value, TransferStatus.COMPLETED.value})
