"""Core domain entities."""

from kardex.core.entities.inventory import (
    InventoryMovement,
    InventorySnapshot,
    MovementStatus,
    MovementType,
    Product,
    ProductStatus,
    utc_now,
)
from kardex.core.entities.valuation import (
    BatchResult,
    ConsistencyReport,
    EquivalenceCheck,
    GrowthPeriod,
    InventoryValuation,
    ProductDrift,
    ProductState,
    RescaleResult,
    SnapshotVerification,
    ValuationLine,
    ValuationState,
)

__all__ = [
    # Inventory
    "Product",
    "ProductStatus",
    "InventoryMovement",
    "MovementType",
    "MovementStatus",
    "InventorySnapshot",
    "utc_now",
    # Valuation
    "ValuationState",
    "ValuationLine",
    "InventoryValuation",
    "ProductState",
    "ProductDrift",
    "GrowthPeriod",
    "EquivalenceCheck",
    "SnapshotVerification",
    "ConsistencyReport",
    "RescaleResult",
    "BatchResult",
]
