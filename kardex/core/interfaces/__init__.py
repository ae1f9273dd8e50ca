"""Core interfaces (ports) for dependency injection."""

from kardex.core.interfaces.inventory_store import IInventoryStore

__all__ = [
    "IInventoryStore",
]
