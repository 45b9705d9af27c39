"""
The Alembic revision creates the same tables the ORM models describe.
"""

import importlib.util
from pathlib import Path

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations

MIGRATION = Path(__file__).resolve().parent.parent / "scripts" / "migrations" / "001_create_evidence_tables.py"


def _load_migration():
    spec = importlib.util.spec_from_file_location("migration_001", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_upgrade_creates_evidence_tables():
    migration = _load_migration()
    engine = sa.create_engine("sqlite://")

    with engine.begin() as conn:
        ctx = MigrationContext.configure(conn)
        with Operations.context(ctx):
            migration.upgrade()

        inspector = sa.inspect(conn)
        tables = set(inspector.get_table_names())
        assert {"evidence", "evidence_challenges", "evidence_ip_bans"} <= tables

        evidence_columns = {col["name"] for col in inspector.get_columns("evidence")}
        assert {"id", "title", "description", "name", "email", "ip_address", "status",
                "created_at", "updated_at"} <= evidence_columns

        ban_pk = inspector.get_pk_constraint("evidence_ip_bans")["constrained_columns"]
        assert ban_pk == ["ip_address"]


def test_revision_metadata():
    migration = _load_migration()
    assert migration.revision == "001"
    assert migration.down_revision is None
