"""Inventory relocation triggered by store-side acceptance.

Relocation intents are written to the ``relocation_tasks`` outbox in the same
transaction that saves the store scan, then applied right after the commit.
Applying a task is best-effort with respect to the HTTP response: a failure
is logged and recorded on the task, which stays PENDING until
``RELOCATION_MAX_ATTEMPTS`` is reached. ``app.ops.relocations`` drains the
remaining tasks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from app.branchflow.core.config import settings
from app.branchflow.core.logging import log_json
from app.branchflow.core.metrics import metrics
from app.branchflow.db.models import RelocationTask
from app.branchflow.repos.inventory import InventoryRepository
from app.branchflow.repos.relocations import (
    STATUS_DONE,
    STATUS_FAILED,
    STATUS_PENDING,
    RelocationTaskRepository,
)

logger = logging.getLogger("branchflow.relocation")

_MAX_ERROR_LENGTH = 500


@dataclass
class RelocationSummary:
    applied: int = 0
    retrying: int = 0
    failed: int = 0
    errors: list[dict] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.applied + self.retrying + self.failed


class RelocationService:
    def __init__(self, db, *, max_attempts: int | None = None):
        self.db = db
        self.tasks = RelocationTaskRepository(db)
        self.inventory = InventoryRepository(db)
        self.max_attempts = max_attempts or settings.RELOCATION_MAX_ATTEMPTS

    def enqueue(self, transfer, items) -> list[RelocationTask]:
        """Stage one task per accepted item; the caller commits."""
        staged = []
        for item in items:
            staged.append(
                self.tasks.add(
                    RelocationTask(
                        transfer_id=transfer.id,
                        transfer_item_id=item.id,
                        equipment_id=item.equipment_id,
                        target_location_id=transfer.to_location_id,
                        status=STATUS_PENDING,
                        attempts=0,
                    )
                )
            )
        return staged

    def apply_pending(self, *, transfer_id=None, limit: int | None = None) -> RelocationSummary:
        pending_ids = [task.id for task in self.tasks.list_pending(transfer_id=transfer_id, limit=limit)]
        summary = RelocationSummary()
        for task_id in pending_ids:
            self._apply_one(task_id, summary)
        return summary

    def _apply_one(self, task_id, summary: RelocationSummary) -> None:
        task = self.tasks.get_by_id(task_id)
        if task is None or task.status != STATUS_PENDING:
            return
        try:
            self.inventory.relocate(task.equipment_id, task.target_location_id)
            task.status = STATUS_DONE
            task.attempts += 1
            task.last_error = None
            task.processed_at = datetime.utcnow()
            self.db.commit()
        except (SQLAlchemyError, LookupError) as exc:
            self.db.rollback()
            self._record_failure(task_id, exc, summary)
            return

        summary.applied += 1
        metrics.record_relocation("applied")
        log_json(
            logger,
            {
                "event": "relocation.applied",
                "task_id": str(task.id),
                "transfer_id": str(task.transfer_id),
                "equipment_id": str(task.equipment_id),
                "target_location_id": str(task.target_location_id),
            },
        )

    def _record_failure(self, task_id, exc: Exception, summary: RelocationSummary) -> None:
        metrics.record_relocation("failed")
        error = f"{exc.__class__.__name__}: {exc}"[:_MAX_ERROR_LENGTH]
        summary.errors.append({"task_id": str(task_id), "error": error})
        try:
            task = self.tasks.get_by_id(task_id)
            task.attempts += 1
            task.last_error = error
            if task.attempts >= self.max_attempts:
                task.status = STATUS_FAILED
                task.processed_at = datetime.utcnow()
                summary.failed += 1
            else:
                summary.retrying += 1
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            summary.retrying += 1
            logger.exception("Failed to record relocation failure", extra={"task_id": str(task_id)})
            return
        log_json(
            logger,
            {
                "event": "relocation.failed",
                "task_id": str(task.id),
                "transfer_id": str(task.transfer_id),
                "equipment_id": str(task.equipment_id),
                "attempts": task.attempts,
                "status": task.status,
                "error": error,
            },
            level=logging.WARNING,
        )
