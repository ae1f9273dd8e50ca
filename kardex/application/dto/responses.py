"""Response DTOs for inventory operations.

Pydantic v2 models serializing use case results for callers.
"""

from datetime import date

from pydantic import BaseModel, Field


class ProductStateResponse(BaseModel):
    """Live valuation of one product."""

    product_id: int
    current_stock: float
    average_cost: float
    total_value: float
    stale_snapshot_date: date | None = None


class RegisterMovementResponse(BaseModel):
    """Result of registering movements."""

    products: list[ProductStateResponse] = Field(default_factory=list)


class ResyncResponse(BaseModel):
    """Result of a resync run."""

    products: list[ProductStateResponse] = Field(default_factory=list)
    failures: dict[int, str] = Field(default_factory=dict)


class ValuationLineResponse(BaseModel):
    """One product line of a valuation."""

    product_id: int
    stock: float
    average_cost: float
    value: float
    snapshot_date: date | None = None


class ValuationResponse(BaseModel):
    """Inventory valuation at a date."""

    as_of: date
    use_snapshot: bool
    total: float
    lines: list[ValuationLineResponse] = Field(default_factory=list)


class GrowthPeriodResponse(BaseModel):
    """Inventory growth between two dates."""

    start: date
    end: date
    start_value: float
    end_value: float
    growth: float


class GrowthResponse(BaseModel):
    """Growth over consecutive periods."""

    periods: list[GrowthPeriodResponse] = Field(default_factory=list)
    total_growth: float = 0.0


class SnapshotResponse(BaseModel):
    """A stored snapshot."""

    snapshot_date: date
    products: int
    total: float


class ProductDriftResponse(BaseModel):
    """Stored versus replayed state of one product."""

    product_id: int
    stored_stock: float
    stored_cost: float
    replayed_stock: float
    replayed_cost: float
    value_difference: float


class SnapshotVerificationResponse(BaseModel):
    """Result of verifying a snapshot against a replay."""

    snapshot_date: date
    products_checked: int
    snapshot_total: float
    replay_total: float
    consistent: bool
    drifts: list[ProductDriftResponse] = Field(default_factory=list)


class RescaleResponse(BaseModel):
    """Result of a snapshot price correction."""

    snapshot_date: date
    factor: float
    products: int
    original_total: float
    new_total: float
    expected_total: float | None = None
    applied: bool
