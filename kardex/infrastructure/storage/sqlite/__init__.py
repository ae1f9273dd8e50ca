"""SQLite storage implementations."""

from pathlib import Path

from kardex.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    close_pool,
    get_pool,
)
from kardex.infrastructure.storage.sqlite.inventory_store import SQLiteInventoryStore

# Type aliases for convenience
InventoryStore = SQLiteInventoryStore

# Singleton instance on the default pool
_inventory_store: SQLiteInventoryStore | None = None


async def get_inventory_store() -> SQLiteInventoryStore:
    """Get the inventory store of the default database."""
    global _inventory_store
    if _inventory_store is None:
        _inventory_store = SQLiteInventoryStore(await get_pool())
    return _inventory_store


async def open_inventory_store(
    db_path: Path,
    pool_size: int = 5,
    busy_timeout: int = 30000,
) -> SQLiteInventoryStore:
    """Open a store on a specific database file, e.g. one per shop."""
    pool = ConnectionPool(db_path=db_path, pool_size=pool_size, busy_timeout=busy_timeout)
    await pool.initialize()
    return SQLiteInventoryStore(pool)


def reset_inventory_store() -> None:
    """Forget the default store (for testing)."""
    global _inventory_store
    _inventory_store = None


__all__ = [
    # Connection
    "ConnectionPool",
    "get_pool",
    "close_pool",
    # Store classes
    "SQLiteInventoryStore",
    "InventoryStore",
    # Factory functions
    "get_inventory_store",
    "open_inventory_store",
    "reset_inventory_store",
]
