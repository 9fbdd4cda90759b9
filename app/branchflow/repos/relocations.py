from __future__ import annotations

from sqlalchemy import select

from app.branchflow.db.models import RelocationTask

STATUS_PENDING = "PENDING"
STATUS_DONE = "DONE"
STATUS_FAILED = "FAILED"


class RelocationTaskRepository:
    def __init__(self, db):
        self.db = db

    def add(self, task: RelocationTask) -> RelocationTask:
        self.db.add(task)
        return task

    def get_by_id(self, task_id):
        return self.db.get(RelocationTask, task_id)

    def list_pending(self, *, transfer_id=None, limit: int | None = None) -> list[RelocationTask]:
        query = select(RelocationTask).where(RelocationTask.status == STATUS_PENDING)
        if transfer_id is not None:
            query = query.where(RelocationTask.transfer_id == transfer_id)
        query = query.order_by(RelocationTask.created_at.asc())
        if limit:
            query = query.limit(limit)
        return list(self.db.execute(query).scalars().all())

