"""Manage Snapshots Use Case: create, delete, verify and list snapshots."""

from dataclasses import dataclass
from datetime import date

from kardex.application.dto.requests import SnapshotRequest
from kardex.application.dto.responses import (
    ProductDriftResponse,
    SnapshotResponse,
    SnapshotVerificationResponse,
)
from kardex.application.services import get_snapshot_manager
from kardex.config import get_logger
from kardex.core.entities.valuation import SnapshotVerification
from kardex.core.interfaces.inventory_store import IInventoryStore
from kardex.core.services import SnapshotManager

logger = get_logger(__name__)


@dataclass
class SnapshotResult:
    """A snapshot as stored."""

    snapshot_date: date
    products: int
    total: float


class ManageSnapshotsUseCase:
    """Snapshot administration. Snapshots are caches: creating, deleting or
    regenerating one never changes a computed historical value."""

    def __init__(
        self,
        snapshot_manager: SnapshotManager | None = None,
        inventory_store: IInventoryStore | None = None,
    ):
        self._manager = snapshot_manager
        self._inventory_store = inventory_store

    async def _get_manager(self) -> SnapshotManager:
        if self._manager is None:
            self._manager = await get_snapshot_manager(self._inventory_store)
        return self._manager

    async def create(self, request: SnapshotRequest) -> SnapshotResult:
        """Create (or regenerate) the snapshot of a date."""
        manager = await self._get_manager()
        products = await manager.create_snapshot(request.snapshot_date)
        total = await manager.snapshot_total(request.snapshot_date) if products else 0.0
        return SnapshotResult(
            snapshot_date=request.snapshot_date,
            products=products,
            total=total,
        )

    async def delete(self, request: SnapshotRequest) -> int:
        """Delete the snapshot of a date. Returns the number of rows removed."""
        manager = await self._get_manager()
        return await manager.delete_snapshot(request.snapshot_date)

    async def verify(self, request: SnapshotRequest) -> SnapshotVerification:
        """Verify a snapshot against a full replay."""
        manager = await self._get_manager()
        verification = await manager.verify_snapshot(
            request.snapshot_date, raise_on_mismatch=request.strict
        )
        logger.info(
            "verify_snapshot_complete",
            snapshot_date=request.snapshot_date.isoformat(),
            consistent=verification.consistent,
            drifts=len(verification.drifts),
        )
        return verification

    async def list_dates(self) -> list[date]:
        manager = await self._get_manager()
        return await manager.list_snapshot_dates()

    def to_response(self, result: SnapshotResult) -> SnapshotResponse:
        """Convert result to response DTO."""
        return SnapshotResponse(
            snapshot_date=result.snapshot_date,
            products=result.products,
            total=result.total,
        )

    def to_verification_response(
        self, verification: SnapshotVerification
    ) -> SnapshotVerificationResponse:
        return SnapshotVerificationResponse(
            snapshot_date=verification.snapshot_date,
            products_checked=verification.products_checked,
            snapshot_total=verification.snapshot_total,
            replay_total=verification.replay_total,
            consistent=verification.consistent,
            drifts=[
                ProductDriftResponse(
                    product_id=d.product_id,
                    stored_stock=d.stored_stock,
                    stored_cost=d.stored_cost,
                    replayed_stock=d.replayed_stock,
                    replayed_cost=d.replayed_cost,
                    value_difference=d.value_difference,
                )
                for d in verification.drifts
            ],
        )
