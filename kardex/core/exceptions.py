"""
Domain exceptions for the kardex valuation engine.

Provides specific exception types for different error scenarios.
"""

from datetime import date
from typing import Any


class KardexError(Exception):
    """Base exception for all kardex errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Storage Exceptions
class StorageError(KardexError):
    """Base exception for storage operations."""

    pass


class ProductNotFoundError(StorageError):
    """Referenced product does not exist."""

    def __init__(self, product_id: int):
        super().__init__(
            f"Product not found: {product_id}",
            code="PRODUCT_NOT_FOUND",
            details={"product_id": product_id},
        )


class MovementNotFoundError(StorageError):
    """Referenced inventory movement does not exist."""

    def __init__(self, movement_id: int):
        super().__init__(
            f"Inventory movement not found: {movement_id}",
            code="MOVEMENT_NOT_FOUND",
            details={"movement_id": movement_id},
        )


class DatabaseError(StorageError):
    """Database operation failed."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            code="DATABASE_ERROR",
            details={"operation": operation, "error": error},
        )


# Validation Exceptions
class ValidationError(KardexError):
    """Input validation failed."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value is not None else None,
            },
        )


class InsufficientStockError(ValidationError):
    """Outbound quantity exceeds the stock on hand."""

    def __init__(self, product_id: int, requested: float, available: float):
        super().__init__(
            field="quantity",
            message=(
                f"Insufficient stock for product {product_id}: "
                f"requested {requested}, available {available}"
            ),
            value=requested,
        )
        self.code = "INSUFFICIENT_STOCK"
        self.details.update(
            {
                "product_id": product_id,
                "requested": requested,
                "available": available,
            }
        )


# Snapshot Exceptions
class SnapshotError(KardexError):
    """Base exception for snapshot operations."""

    pass


class SnapshotNotFoundError(SnapshotError):
    """No snapshot rows exist for the requested date."""

    def __init__(self, snapshot_date: date):
        super().__init__(
            f"No snapshot found for date {snapshot_date.isoformat()}",
            code="SNAPSHOT_NOT_FOUND",
            details={"snapshot_date": snapshot_date.isoformat()},
        )


class SnapshotInconsistencyError(SnapshotError):
    """Replay from a snapshot disagrees with replay from scratch."""

    def __init__(
        self,
        as_of: date,
        expected: float,
        actual: float,
        product_ids: list[int] | None = None,
    ):
        super().__init__(
            f"Snapshot data for {as_of.isoformat()} is inconsistent: "
            f"full replay gives {expected:.2f}, snapshot gives {actual:.2f}",
            code="SNAPSHOT_INCONSISTENT",
            details={
                "as_of": as_of.isoformat(),
                "expected": expected,
                "actual": actual,
                "difference": actual - expected,
                "product_ids": product_ids or [],
            },
        )


class SnapshotTotalMismatchError(SnapshotError):
    """Rescaled snapshot total does not match the expected target."""

    def __init__(self, snapshot_date: date, expected_total: float, actual_total: float):
        super().__init__(
            f"Snapshot {snapshot_date.isoformat()} total {actual_total:.5f} "
            f"does not match target {expected_total:.5f}",
            code="SNAPSHOT_TOTAL_MISMATCH",
            details={
                "snapshot_date": snapshot_date.isoformat(),
                "expected_total": expected_total,
                "actual_total": actual_total,
                "difference": actual_total - expected_total,
            },
        )


# Batch Exceptions
class BatchOperationError(KardexError):
    """A product failed inside an all-or-nothing bulk operation."""

    def __init__(self, operation: str, product_id: int, reason: str):
        super().__init__(
            f"{operation} aborted at product {product_id}: {reason}",
            code="BATCH_OPERATION_FAILED",
            details={"operation": operation, "product_id": product_id, "reason": reason},
        )
