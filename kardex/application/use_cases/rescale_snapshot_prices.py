"""Rescale Snapshot Prices Use Case: administrative price correction."""

from kardex.application.dto.requests import RescaleSnapshotRequest
from kardex.application.dto.responses import RescaleResponse
from kardex.application.services import get_snapshot_manager
from kardex.config import get_logger
from kardex.core.entities.valuation import RescaleResult
from kardex.core.interfaces.inventory_store import IInventoryStore
from kardex.core.services import SnapshotManager

logger = get_logger(__name__)


class RescaleSnapshotPricesUseCase:
    """
    Multiply the closing average costs of a snapshot by a factor.

    Used to correct snapshots recorded in the wrong price unit. Run with
    dry_run first to preview the resulting total.
    """

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

    async def execute(self, request: RescaleSnapshotRequest) -> RescaleResult:
        """
        Execute rescale use case.

        Raises:
            SnapshotNotFoundError: No snapshot for the date
            SnapshotTotalMismatchError: Result misses expected_total;
                nothing is written
        """
        logger.info(
            "rescale_snapshot_started",
            snapshot_date=request.snapshot_date.isoformat(),
            factor=request.factor,
            dry_run=request.dry_run,
        )
        manager = await self._get_manager()
        return await manager.rescale_costs(
            request.snapshot_date,
            request.factor,
            expected_total=request.expected_total,
            dry_run=request.dry_run,
        )

    def to_response(self, result: RescaleResult) -> RescaleResponse:
        """Convert result to response DTO."""
        return RescaleResponse(
            snapshot_date=result.snapshot_date,
            factor=result.factor,
            products=result.products,
            original_total=result.original_total,
            new_total=result.new_total,
            expected_total=result.expected_total,
            applied=result.applied,
        )
