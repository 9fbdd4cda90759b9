"""transfers and transfer items

Revision ID: 0002_transfers
Revises: 0001_directory
Create Date: 2026-09-23 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_transfers"
down_revision = "0001_directory"
branch_labels = None
depends_on = None


def upgrade() -> None:
    class GUID(sa.TypeDecorator):
        impl = sa.CHAR
        cache_ok = True

        def load_dialect_impl(self, dialect):
            if dialect.name == "postgresql":
                from sqlalchemy.dialects.postgresql import UUID

                return dialect.type_descriptor(UUID(as_uuid=True))
            return dialect.type_descriptor(sa.CHAR(36))

    op.create_table(
        "transfers",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("code", sa.String(length=40), nullable=False, index=True),
        sa.Column("from_location_id", GUID(), sa.ForeignKey("locations.id"), nullable=False, index=True),
        sa.Column("to_location_id", GUID(), sa.ForeignKey("locations.id"), nullable=False, index=True),
        sa.Column("from_branch", sa.String(length=100), nullable=False),
        sa.Column("to_branch", sa.String(length=100), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="pending", index=True),
        sa.Column("courier_received", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("store_received", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("requested_by_user_id", GUID(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("assigned_delivery_user_id", GUID(), sa.ForeignKey("users.id"), nullable=True, index=True),
        sa.Column("received_by_user_id", GUID(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("reason", sa.Text(), nullable=False, server_default=""),
        sa.Column("revision", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, index=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "transfer_items",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column(
            "transfer_id",
            GUID(),
            sa.ForeignKey("transfers.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("equipment_id", GUID(), sa.ForeignKey("inventory_items.id"), nullable=False),
        sa.Column("imei", sa.String(length=50), nullable=False, index=True),
        sa.Column("courier_status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("courier_observation", sa.Text(), nullable=True),
        sa.Column("courier_at", sa.DateTime(), nullable=True),
        sa.Column("courier_by_user_id", GUID(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("store_status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("store_observation", sa.Text(), nullable=True),
        sa.Column("store_at", sa.DateTime(), nullable=True),
        sa.Column("store_by_user_id", GUID(), sa.ForeignKey("users.id"), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("transfer_items")
    op.drop_table("transfers")
