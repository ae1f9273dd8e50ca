"""Request DTOs for inventory operations.

Pydantic v2 models validating caller input before it reaches the use cases.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field, model_validator

from kardex.core.entities.inventory import InventoryMovement, MovementStatus, MovementType


class MovementLine(BaseModel):
    """A single product line of a purchase, sale or withdrawal."""

    product_id: int = Field(..., description="Product ID")
    type: MovementType = Field(..., description="Movement type")
    quantity: float = Field(..., gt=0, description="Quantity moved, always positive")
    unit_cost: float | None = Field(
        default=None, ge=0, description="Cost per unit (inbound movements)"
    )
    price: float | None = Field(default=None, ge=0, description="Sale price per unit")
    transaction_date: datetime | None = Field(
        default=None,
        description="Business date of the movement (defaults to the request date)",
    )
    description: str | None = Field(default=None, description="Free-text note")

    def to_movement(self, **defaults) -> InventoryMovement:
        """Build the domain movement, filling unset fields from defaults."""
        data = {k: v for k, v in defaults.items() if v is not None}
        data.update(self.model_dump(exclude_none=True))
        return InventoryMovement(**data)


class RegisterMovementRequest(BaseModel):
    """Request to register the movements of one purchase or sale."""

    lines: list[MovementLine] = Field(..., min_length=1, description="Movement lines")
    transaction_date: datetime | None = Field(
        default=None, description="Date applied to lines without their own"
    )
    entity_name: str | None = Field(default=None, description="Customer or supplier name")
    entity_document: str | None = Field(default=None, description="DNI / RIF")
    document_number: str | None = Field(default=None, description="Invoice number")


class AnnulMovementRequest(BaseModel):
    """Request to annul a movement."""

    movement_id: int = Field(..., description="Movement ID")
    status: MovementStatus = Field(
        default=MovementStatus.ANNULLED, description="Target status"
    )

    @model_validator(mode="after")
    def check_status(self) -> "AnnulMovementRequest":
        if self.status is MovementStatus.ACTIVE:
            raise ValueError("status must not be Active")
        return self


class SupersedeMovementRequest(BaseModel):
    """Request to replace a movement with a corrected line."""

    movement_id: int = Field(..., description="Movement being corrected")
    replacement: MovementLine


class ResyncRequest(BaseModel):
    """Request to rebuild live valuations from the movement log."""

    product_id: int | None = Field(
        default=None, description="Single product to resync; all when omitted"
    )
    atomic: bool = Field(
        default=True, description="Roll back every product if one fails"
    )


class SnapshotRequest(BaseModel):
    """Request addressing the snapshot of one date."""

    snapshot_date: date = Field(..., description="Snapshot date")
    strict: bool = Field(
        default=False, description="Raise on verification mismatches"
    )


class RescaleSnapshotRequest(BaseModel):
    """Request for an administrative price correction of a snapshot."""

    snapshot_date: date = Field(..., description="Snapshot to correct")
    factor: float = Field(..., gt=0, description="Multiplier for closing average costs")
    expected_total: float | None = Field(
        default=None, description="Target aggregate value after correction"
    )
    dry_run: bool = Field(default=True, description="Compute only, write nothing")

    @model_validator(mode="after")
    def check_target(self) -> "RescaleSnapshotRequest":
        if not self.dry_run and self.expected_total is None:
            raise ValueError("expected_total is required when dry_run is false")
        return self


class ValuationRequest(BaseModel):
    """Request for the inventory value at a date."""

    as_of: date = Field(..., description="Valuation date (inclusive)")
    use_snapshot: bool | None = Field(
        default=None, description="Replay from snapshots; configured default when omitted"
    )


class GrowthRequest(BaseModel):
    """Request for inventory growth over consecutive periods."""

    dates: list[date] = Field(..., min_length=2, description="Period boundaries")
    use_snapshot: bool | None = Field(default=None)
