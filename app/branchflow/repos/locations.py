from sqlalchemy import func, select

from app.branchflow.core.branches import display_branch, normalize_branch_key
from app.branchflow.db.models import Location


class LocationRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, location_id):
        return self.db.get(Location, location_id)

    def get_active_by_id(self, location_id):
        location = self.get_by_id(location_id)
        if location is None or not location.is_active:
            return None
        return location

    def get_active_by_guid(self, guid: str):
        stmt = select(Location).where(Location.guid == guid, Location.is_active.is_(True))
        return self.db.execute(stmt).scalars().first()

    def get_active_by_display_name(self, name: str):
        key = normalize_branch_key(display_branch(name))
        if not key:
            return None
        stmt = (
            select(Location)
            .where(func.lower(func.trim(Location.name)) == key, Location.is_active.is_(True))
            .order_by(Location.created_at.asc())
        )
        return self.db.execute(stmt).scalars().first()
