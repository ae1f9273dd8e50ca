"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from kardex.application.services import reset_services
from kardex.config import reset_settings
from kardex.core.entities.inventory import InventoryMovement, MovementType, Product
from kardex.core.interfaces import IInventoryStore
from kardex.infrastructure.storage.sqlite import (
    ConnectionPool,
    SQLiteInventoryStore,
    reset_inventory_store,
)
from kardex.infrastructure.storage.sqlite.migrations import initialize_database


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point the default database at a temp dir and reset singletons."""
    monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path / "data"))
    reset_settings()
    reset_services()
    reset_inventory_store()
    yield
    reset_settings()
    reset_services()
    reset_inventory_store()


@pytest.fixture
async def migrated_db(tmp_path: Path) -> Path:
    """Create a temporary database with the full schema."""
    db_path = tmp_path / "kardex_test.db"
    results = await initialize_database(db_path)
    assert all(r.success for r in results)
    return db_path


@pytest.fixture
async def pool(migrated_db: Path) -> AsyncGenerator[ConnectionPool, None]:
    pool = ConnectionPool(db_path=migrated_db, pool_size=2, busy_timeout=5000)
    await pool.initialize()
    yield pool
    await pool.close()


@pytest.fixture
def store(pool: ConnectionPool) -> SQLiteInventoryStore:
    return SQLiteInventoryStore(pool)


@pytest.fixture
def mock_store() -> AsyncMock:
    """AsyncMock store whose transaction() yields the mock itself."""
    store = AsyncMock(spec=IInventoryStore)
    store.latest_snapshot_before.return_value = None

    @asynccontextmanager
    async def transaction():
        yield store

    store.transaction = MagicMock(side_effect=transaction)
    return store


@pytest.fixture
def make_movement() -> Callable[..., InventoryMovement]:
    """Factory for movements dated at noon of a given day."""

    def _make(
        product_id: int,
        type: MovementType,
        quantity: float,
        unit_cost: float | None = None,
        day: str = "2024-01-10",
        **kwargs,
    ) -> InventoryMovement:
        return InventoryMovement(
            product_id=product_id,
            type=type,
            quantity=quantity,
            unit_cost=unit_cost,
            transaction_date=datetime.fromisoformat(f"{day}T12:00:00"),
            **kwargs,
        )

    return _make


@pytest.fixture
async def product(store: SQLiteInventoryStore) -> Product:
    """A persisted product with no movements."""
    return await store.create_product(Product(name="Harina PAN 1kg", sku="HAR-001"))
