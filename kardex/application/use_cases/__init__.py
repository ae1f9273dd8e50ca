"""Application use cases."""

from kardex.application.use_cases.analyze_inventory_value import (
    AnalyzeInventoryValueUseCase,
    DriftAnalysis,
)
from kardex.application.use_cases.annul_movement import AnnulMovementUseCase
from kardex.application.use_cases.manage_snapshots import (
    ManageSnapshotsUseCase,
    SnapshotResult,
)
from kardex.application.use_cases.register_movement import RegisterMovementUseCase
from kardex.application.use_cases.rescale_snapshot_prices import RescaleSnapshotPricesUseCase
from kardex.application.use_cases.resync_inventory import ResyncInventoryUseCase

__all__ = [
    "RegisterMovementUseCase",
    "AnnulMovementUseCase",
    "ResyncInventoryUseCase",
    "ManageSnapshotsUseCase",
    "SnapshotResult",
    "RescaleSnapshotPricesUseCase",
    "AnalyzeInventoryValueUseCase",
    "DriftAnalysis",
]
