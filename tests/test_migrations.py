import os
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect


def _run_migrations(database_url: str, target: str = "head"):
    os.environ["DATABASE_URL"] = database_url
    config = Config("alembic.ini")
    config.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(config, target)
    return config


def test_migrations_apply(tmp_path: Path):
    database_url = f"sqlite+pysqlite:///{tmp_path / 'migrations.db'}"
    _run_migrations(database_url)

    engine = create_engine(database_url, future=True)
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())

    assert {"locations", "users", "inventory_items", "transfers", "transfer_items", "relocation_tasks"} <= tables
    transfer_columns = {column["name"] for column in inspector.get_columns("transfers")}
    assert {"revision", "from_location_id", "to_location_id", "received_by_user_id"} <= transfer_columns
    indexes = [index["name"] for index in inspector.get_indexes("relocation_tasks")]
    assert indexes.count("ix_relocation_tasks_status_created") == 1
    engine.dispose()


def test_migrations_downgrade_to_base(tmp_path: Path):
    database_url = f"sqlite+pysqlite:///{tmp_path / 'downgrade.db'}"
    config = _run_migrations(database_url)

    command.downgrade(config, "base")

    engine = create_engine(database_url, future=True)
    tables = set(inspect(engine).get_table_names())
    assert "transfers" not in tables
    assert "locations" not in tables
    engine.dispose()
