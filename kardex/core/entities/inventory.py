"""Inventory domain entities."""

from datetime import UTC, date, datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime:
    """Naive UTC timestamp, the format stored in the database."""
    return datetime.now(UTC).replace(tzinfo=None)


class MovementType(str, Enum):
    """Types of stock movements."""

    ENTRADA = "ENTRADA"  # purchase / inbound
    SALIDA = "SALIDA"  # sale
    RETIRO = "RETIRO"  # withdrawal
    AUTO_CONSUMO = "AUTO-CONSUMO"  # self-consumption

    @property
    def is_inbound(self) -> bool:
        return self is MovementType.ENTRADA


class MovementStatus(str, Enum):
    """Lifecycle status of a movement. Only ACTIVE rows count toward stock."""

    ACTIVE = "Active"
    ANNULLED = "Annulled"
    SUPERSEDED = "Superseded"


class ProductStatus(str, Enum):
    """Lifecycle status of a product."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"


class Product(BaseModel):
    """A stocked product with its denormalized live valuation."""

    id: int | None = None
    name: str
    sku: str | None = None
    current_stock: float = 0.0
    average_cost: float = 0.0
    status: ProductStatus = ProductStatus.ACTIVE
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def total_value(self) -> float:
        """Live inventory value; non-positive stock is worth nothing."""
        if self.current_stock <= 0:
            return 0.0
        return self.current_stock * self.average_cost


class InventoryMovement(BaseModel):
    """A single stock-affecting event in a product's movement log."""

    id: int | None = None
    product_id: int
    type: MovementType
    quantity: float = Field(gt=0)  # always positive
    unit_cost: float | None = None  # meaningful for ENTRADA only
    price: float | None = None  # sale price, informational
    transaction_date: datetime = Field(default_factory=utc_now)
    created_at: datetime = Field(default_factory=utc_now)
    status: MovementStatus = MovementStatus.ACTIVE
    transaction_id: str | None = None
    entity_name: str | None = None
    entity_document: str | None = None
    document_number: str | None = None
    description: str | None = None

    @field_validator("transaction_date", "created_at")
    @classmethod
    def to_naive_utc(cls, v: datetime) -> datetime:
        # Stored timestamps are naive UTC and compared as ISO strings
        if v.tzinfo is not None:
            return v.astimezone(UTC).replace(tzinfo=None)
        return v

    @property
    def is_active(self) -> bool:
        return self.status is MovementStatus.ACTIVE


class InventorySnapshot(BaseModel):
    """Cached closing valuation of a product at a date."""

    product_id: int
    snapshot_date: date
    closing_stock: float
    closing_average_cost: float
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def closing_value(self) -> float:
        if self.closing_stock <= 0:
            return 0.0
        return self.closing_stock * self.closing_average_cost
