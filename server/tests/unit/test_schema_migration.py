"""Tests for the Alembic schema migration."""

import importlib.util
from pathlib import Path

import pytest
import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations

from railbook.core.database import Base, SessionProvider, create_engine
from railbook.models import *  # noqa: F403 - Import all models
from railbook.schemas.catalog import CreateStationRequest
from railbook.services.catalog_service import CatalogService

VERSIONS_DIR = Path(__file__).resolve().parents[2] / "db" / "alembic" / "versions"


def load_migration(revision: str):
    path = next(VERSIONS_DIR.glob(f"{revision}_*.py"))
    spec = importlib.util.spec_from_file_location(f"migration_{revision}", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def run_migration(engine: sa.Engine, step: str) -> None:
    migration = load_migration("0001")
    with engine.begin() as conn:
        context = MigrationContext.configure(conn)
        with Operations.context(context):
            getattr(migration, step)()


def test_upgrade_matches_models(tmp_path):
    engine = sa.create_engine(f"sqlite:///{tmp_path / 'migrated.db'}")
    run_migration(engine, "upgrade")

    inspector = sa.inspect(engine)
    assert set(inspector.get_table_names()) == set(Base.metadata.tables)
    for name, table in Base.metadata.tables.items():
        migrated = {column["name"] for column in inspector.get_columns(name)}
        assert migrated == set(table.columns.keys()), name

    run_migration(engine, "downgrade")
    assert sa.inspect(engine).get_table_names() == []
    engine.dispose()


@pytest.mark.asyncio
async def test_catalog_runs_on_migrated_schema(tmp_path):
    db_path = tmp_path / "railbook.db"
    sync_engine = sa.create_engine(f"sqlite:///{db_path}")
    run_migration(sync_engine, "upgrade")
    sync_engine.dispose()

    engine = create_engine(f"sqlite+aiosqlite:///{db_path}")
    try:
        catalog = CatalogService(SessionProvider(engine))
        station = await catalog.create_station(CreateStationRequest(name="Ella", code="ELL"))
        assert [s.id for s in await catalog.list_stations()] == [station.id]
    finally:
        await engine.dispose()
