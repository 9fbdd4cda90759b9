import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, composite, mapped_column, relationship
from sqlalchemy.types import TypeDecorator, CHAR

from app.branchflow.services.transfer_workflow import ScanInfo, ScanStatus, TransferStatus


class GUID(TypeDecorator):
    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, uuid.UUID):
            return str(value)
        return str(uuid.UUID(str(value)))

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


class Base(DeclarativeBase):
    pass


class Location(Base):
    """Physical store or office from the location directory."""

    __tablename__ = "locations"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="Sucursal")
    guid: Mapped[str | None] = mapped_column(String(100), nullable=True, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(150), nullable=False, unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    location_id: Mapped[uuid.UUID | None] = mapped_column(
        GUID(), ForeignKey("locations.id"), index=True, nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    location = relationship("Location")


class InventoryItem(Base):
    """Serialized stock unit owned by the inventory subsystem."""

    __tablename__ = "inventory_items"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    imei: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    imei2: Mapped[str | None] = mapped_column(String(50), nullable=True)
    state: Mapped[str] = mapped_column(String(20), nullable=False, default="New", index=True)
    location_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("locations.id"), index=True, nullable=False)
    brand: Mapped[str | None] = mapped_column(String(100), nullable=True)
    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    color: Mapped[str | None] = mapped_column(String(50), nullable=True)
    storage: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    location = relationship("Location")


class Transfer(Base):
    __tablename__ = "transfers"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    from_location_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("locations.id"), index=True, nullable=False)
    to_location_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("locations.id"), index=True, nullable=False)
    from_branch: Mapped[str] = mapped_column(String(100), nullable=False)
    to_branch: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=TransferStatus.PENDING.value, index=True
    )
    courier_received: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    store_received: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    requested_by_user_id: Mapped[uuid.UUID | None] = mapped_column(GUID(), ForeignKey("users.id"), nullable=True)
    assigned_delivery_user_id: Mapped[uuid.UUID | None] = mapped_column(
        GUID(), ForeignKey("users.id"), index=True, nullable=True
    )
    received_by_user_id: Mapped[uuid.UUID | None] = mapped_column(GUID(), ForeignKey("users.id"), nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    revision: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    items = relationship(
        "TransferItem",
        back_populates="transfer",
        order_by="TransferItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    from_location = relationship("Location", foreign_keys=[from_location_id])
    to_location = relationship("Location", foreign_keys=[to_location_id])
    requested_by = relationship("User", foreign_keys=[requested_by_user_id])
    assigned_delivery_user = relationship("User", foreign_keys=[assigned_delivery_user_id])
    received_by = relationship("User", foreign_keys=[received_by_user_id])

    # Every UPDATE/DELETE is issued with "WHERE revision = <loaded>" and bumps it.
    __mapper_args__ = {"version_id_col": revision}


class TransferItem(Base):
    __tablename__ = "transfer_items"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    transfer_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("transfers.id", ondelete="CASCADE"), index=True, nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    equipment_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("inventory_items.id"), nullable=False)
    imei: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    courier_status: Mapped[str] = mapped_column(String(20), nullable=False, default=ScanStatus.PENDING.value)
    courier_observation: Mapped[str | None] = mapped_column(Text, nullable=True)
    courier_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    courier_by_user_id: Mapped[uuid.UUID | None] = mapped_column(GUID(), ForeignKey("users.id"), nullable=True)
    store_status: Mapped[str] = mapped_column(String(20), nullable=False, default=ScanStatus.PENDING.value)
    store_observation: Mapped[str | None] = mapped_column(Text, nullable=True)
    store_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    store_by_user_id: Mapped[uuid.UUID | None] = mapped_column(GUID(), ForeignKey("users.id"), nullable=True)

    courier: Mapped[ScanInfo] = composite(
        ScanInfo, "courier_status", "courier_observation", "courier_at", "courier_by_user_id"
    )
    store: Mapped[ScanInfo] = composite(
        ScanInfo, "store_status", "store_observation", "store_at", "store_by_user_id"
    )

    transfer = relationship("Transfer", back_populates="items")
    equipment = relationship("InventoryItem")
    courier_by = relationship("User", foreign_keys=[courier_by_user_id])
    store_by = relationship("User", foreign_keys=[store_by_user_id])


class RelocationTask(Base):
    """Outbox row: an accepted item whose equipment must move to the destination."""

    __tablename__ = "relocation_tasks"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    transfer_id: Mapped[uuid.UUID] = mapped_column(GUID(), index=True, nullable=False)
    transfer_item_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    equipment_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    target_location_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


Index("ix_relocation_tasks_status_created", RelocationTask.status, RelocationTask.created_at)
