"""
Service factory functions for dependency injection.

This module wires the SQLite store and settings to the core valuation
services. Use cases should import from here.

Clean Architecture: Application layer orchestrates DI, not core layer.
"""

from typing import TYPE_CHECKING

from kardex.config import get_settings
from kardex.core.services import (
    HistoricalQueryService,
    InventoryReconciler,
    SnapshotManager,
)

if TYPE_CHECKING:
    from kardex.core.interfaces import IInventoryStore


# Singleton service instances bound to the default store
_reconciler: InventoryReconciler | None = None
_snapshot_manager: SnapshotManager | None = None
_historical_query_service: HistoricalQueryService | None = None


async def _default_store() -> "IInventoryStore":
    # Lazy import infrastructure to avoid circular imports
    from kardex.infrastructure.storage.sqlite import get_inventory_store

    return await get_inventory_store()


async def get_inventory_reconciler(
    store: "IInventoryStore | None" = None,
) -> InventoryReconciler:
    """
    Get or create the InventoryReconciler.

    A service built for an explicit store is not cached, so each store
    database gets its own instance.

    Args:
        store: Optional store override

    Returns:
        Configured InventoryReconciler
    """
    global _reconciler

    if _reconciler is not None and store is None:
        return _reconciler

    settings = get_settings()
    service = InventoryReconciler(
        store=store or await _default_store(),
        require_inbound_cost=settings.valuation.require_inbound_cost,
        epsilon=settings.valuation.epsilon,
        quantity_tolerance=settings.valuation.quantity_tolerance,
    )

    if store is None:
        _reconciler = service

    return service


async def get_snapshot_manager(
    store: "IInventoryStore | None" = None,
) -> SnapshotManager:
    """Get or create the SnapshotManager."""
    global _snapshot_manager

    if _snapshot_manager is not None and store is None:
        return _snapshot_manager

    service = SnapshotManager(
        store=store or await _default_store(),
        epsilon=get_settings().valuation.epsilon,
    )

    if store is None:
        _snapshot_manager = service

    return service


async def get_historical_query_service(
    store: "IInventoryStore | None" = None,
) -> HistoricalQueryService:
    """
    Get or create the HistoricalQueryService.

    Snapshot usage defaults to VALUATION_USE_SNAPSHOTS.
    """
    global _historical_query_service

    if _historical_query_service is not None and store is None:
        return _historical_query_service

    settings = get_settings()
    service = HistoricalQueryService(
        store=store or await _default_store(),
        use_snapshots=settings.valuation.use_snapshots,
        epsilon=settings.valuation.epsilon,
    )

    if store is None:
        _historical_query_service = service

    return service


def reset_services() -> None:
    """Reset all service singletons (for testing)."""
    global _reconciler, _snapshot_manager, _historical_query_service
    _reconciler = None
    _snapshot_manager = None
    _historical_query_service = None
