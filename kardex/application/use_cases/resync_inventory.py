"""Resync Inventory Use Case: rebuild live valuations from the log."""

from kardex.application.dto.requests import ResyncRequest
from kardex.application.dto.responses import ProductStateResponse, ResyncResponse
from kardex.application.services import get_inventory_reconciler
from kardex.config import get_logger
from kardex.core.entities.valuation import BatchResult, ConsistencyReport
from kardex.core.interfaces.inventory_store import IInventoryStore
from kardex.core.services import InventoryReconciler

logger = get_logger(__name__)


class ResyncInventoryUseCase:
    """Repair drift between live product totals and the movement log."""

    def __init__(
        self,
        reconciler: InventoryReconciler | None = None,
        inventory_store: IInventoryStore | None = None,
    ):
        self._reconciler = reconciler
        self._inventory_store = inventory_store

    async def _get_reconciler(self) -> InventoryReconciler:
        if self._reconciler is None:
            self._reconciler = await get_inventory_reconciler(self._inventory_store)
        return self._reconciler

    async def execute(self, request: ResyncRequest) -> BatchResult:
        """Resync one product, or every product when none is given."""
        reconciler = await self._get_reconciler()

        if request.product_id is not None:
            return BatchResult(states=[await reconciler.resync(request.product_id)])
        return await reconciler.resync_all(atomic=request.atomic)

    async def check_consistency(self) -> ConsistencyReport:
        """Report live-vs-replay drift without repairing it."""
        reconciler = await self._get_reconciler()
        report = await reconciler.check_consistency()
        logger.info(
            "consistency_checked",
            products=report.products_checked,
            drifts=len(report.drifts),
            difference=round(report.difference, 2),
        )
        return report

    def to_response(self, result: BatchResult) -> ResyncResponse:
        """Convert result to response DTO."""
        return ResyncResponse(
            products=[
                ProductStateResponse(
                    product_id=s.product_id,
                    current_stock=s.current_stock,
                    average_cost=s.average_cost,
                    total_value=s.value,
                    stale_snapshot_date=s.stale_snapshot_date,
                )
                for s in result.states
            ],
            failures=dict(result.failures),
        )
