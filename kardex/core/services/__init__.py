"""
Core valuation services.

Layer-pure services that depend only on:
- kardex/core/entities/*
- kardex/core/interfaces/*
- kardex/core/exceptions.py

NO infrastructure imports. The store is injected via constructor.
"""

from kardex.core.services.historical_query import HistoricalQueryService
from kardex.core.services.reconciler import InventoryReconciler
from kardex.core.services.snapshot_manager import SnapshotManager
from kardex.core.services.valuation import (
    EMPTY_STATE,
    apply_movement,
    inventory_value,
    movement_sort_key,
    replay,
    round_currency,
    within_tolerance,
)

__all__ = [
    # Replay engine
    "EMPTY_STATE",
    "apply_movement",
    "replay",
    "movement_sort_key",
    "inventory_value",
    "round_currency",
    "within_tolerance",
    # Services
    "SnapshotManager",
    "InventoryReconciler",
    "HistoricalQueryService",
]
