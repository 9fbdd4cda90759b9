from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.branchflow.db.models import InventoryItem


class InventoryRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, equipment_id):
        return self.db.get(InventoryItem, equipment_id)

    def get_many(self, equipment_ids) -> list[InventoryItem]:
        if not equipment_ids:
            return []
        stmt = (
            select(InventoryItem)
            .where(InventoryItem.id.in_(list(equipment_ids)))
            .options(selectinload(InventoryItem.location))
        )
        return list(self.db.execute(stmt).scalars().all())

    def relocate(self, equipment_id, location_id) -> InventoryItem:
        """Move a stock unit to another location; its lifecycle state is kept."""
        equipment = self.get_by_id(equipment_id)
        if equipment is None:
            raise LookupError(f"equipment {equipment_id} not found")
        equipment.location_id = location_id
        equipment.updated_at = datetime.utcnow()
        self.db.flush()
        return equipment
