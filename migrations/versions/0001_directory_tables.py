"""location, user and inventory directory tables

Revision ID: 0001_directory
Revises:
Create Date: 2026-09-21 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_directory"
down_revision = None
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
        "locations",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False, index=True),
        sa.Column("code", sa.String(length=10), nullable=False, unique=True),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="Sucursal"),
        sa.Column("guid", sa.String(length=100), nullable=True, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "users",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("username", sa.String(length=150), nullable=False, unique=True, index=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("first_name", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=50), nullable=False),
        sa.Column("location_id", GUID(), sa.ForeignKey("locations.id"), nullable=True, index=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "inventory_items",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("imei", sa.String(length=50), nullable=False, unique=True),
        sa.Column("imei2", sa.String(length=50), nullable=True),
        sa.Column("state", sa.String(length=20), nullable=False, server_default="New", index=True),
        sa.Column("location_id", GUID(), sa.ForeignKey("locations.id"), nullable=False, index=True),
        sa.Column("brand", sa.String(length=100), nullable=True),
        sa.Column("model", sa.String(length=100), nullable=True),
        sa.Column("color", sa.String(length=50), nullable=True),
        sa.Column("storage", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("inventory_items")
    op.drop_table("users")
    op.drop_table("locations")
