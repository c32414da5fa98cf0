from __future__ import annotations

import importlib.util

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

from tasksync.config import PROJECT_ROOT
from tasksync.infra.models import TaskModel

MIGRATION = PROJECT_ROOT / "migrations" / "versions" / "0001_create_tasks.py"


def _load_migration():
    spec = importlib.util.spec_from_file_location("migration_0001", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_create_tasks_matches_model() -> None:
    migration = _load_migration()
    engine = create_engine("sqlite://")

    with engine.begin() as connection:
        context = MigrationContext.configure(connection)
        with Operations.context(context):
            migration.upgrade()

        inspector = inspect(connection)
        columns = {column["name"] for column in inspector.get_columns("tasks")}
        indexes = {index["name"] for index in inspector.get_indexes("tasks")}

    assert columns == set(TaskModel.__table__.columns.keys())
    assert "ix_tasks_updated_at" in indexes


def test_downgrade_drops_table() -> None:
    migration = _load_migration()
    engine = create_engine("sqlite://")

    with engine.begin() as connection:
        with Operations.context(MigrationContext.configure(connection)):
            migration.upgrade()
            migration.downgrade()
        assert not inspect(connection).has_table("tasks")
