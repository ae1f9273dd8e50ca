"""Data transfer objects for the application layer."""

from kardex.application.dto.requests import (
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
from kardex.application.dto.responses import (
    GrowthPeriodResponse,
    GrowthResponse,
    ProductDriftResponse,
    ProductStateResponse,
    RegisterMovementResponse,
    RescaleResponse,
    ResyncResponse,
    SnapshotResponse,
    SnapshotVerificationResponse,
    ValuationLineResponse,
    ValuationResponse,
)

__all__ = [
    # Requests
    "MovementLine",
    "RegisterMovementRequest",
    "AnnulMovementRequest",
    "SupersedeMovementRequest",
    "ResyncRequest",
    "SnapshotRequest",
    "RescaleSnapshotRequest",
    "ValuationRequest",
    "GrowthRequest",
    # Responses
    "ProductStateResponse",
    "RegisterMovementResponse",
    "ResyncResponse",
    "ValuationLineResponse",
    "ValuationResponse",
    "GrowthPeriodResponse",
    "GrowthResponse",
    "SnapshotResponse",
    "ProductDriftResponse",
    "SnapshotVerificationResponse",
    "RescaleResponse",
]
