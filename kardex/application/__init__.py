"""
Application layer - Use cases, DTOs, and service factories.

This layer orchestrates the valuation engine by:
1. Defining request/response DTOs for callers
2. Implementing use cases that coordinate core services
3. Providing factory functions for dependency injection
"""

from kardex.application.dto import (
    AnnulMovementRequest,
    GrowthRequest,
    MovementLine,
    RegisterMovementRequest,
    RescaleSnapshotRequest,
    ResyncRequest,
    SnapshotRequest,
    SupersedeMovementRequest,
    ValuationRequest,
)
from kardex.application.services import (
    get_historical_query_service,
    get_inventory_reconciler,
    get_snapshot_manager,
    reset_services,
)
from kardex.application.use_cases import (
    AnalyzeInventoryValueUseCase,
    AnnulMovementUseCase,
    ManageSnapshotsUseCase,
    RegisterMovementUseCase,
    RescaleSnapshotPricesUseCase,
    ResyncInventoryUseCase,
)

__all__ = [
    # Request DTOs
    "MovementLine",
    "RegisterMovementRequest",
    "AnnulMovementRequest",
    "SupersedeMovementRequest",
    "ResyncRequest",
    "SnapshotRequest",
    "RescaleSnapshotRequest",
    "ValuationRequest",
    "GrowthRequest",
    # Use Cases
    "RegisterMovementUseCase",
    "AnnulMovementUseCase",
    "ResyncInventoryUseCase",
    "ManageSnapshotsUseCase",
    "RescaleSnapshotPricesUseCase",
    "AnalyzeInventoryValueUseCase",
    # Service factories
    "get_inventory_reconciler",
    "get_snapshot_manager",
    "get_historical_query_service",
    "reset_services",
]
