"""relocation outbox

Revision ID: 0003_relocation_tasks
Revises: 0002_transfers
Create Date: 2026-09-30 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0003_relocation_tasks"
down_revision = "0002_transfers"
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

    # No foreign key to transfers: tasks outlive a deleted transfer.
    op.create_table(
        "relocation_tasks",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("transfer_id", GUID(), nullable=False, index=True),
        sa.Column("transfer_item_id", GUID(), nullable=False),
        sa.Column("equipment_id", GUID(), nullable=False),
        sa.Column("target_location_id", GUID(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
    )
    op.create_index(
        "ix_relocation_tasks_status_created",
        "relocation_tasks",
        ["status", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_relocation_tasks_status_created", table_name="relocation_tasks")
    op.drop_table("relocation_tasks")
