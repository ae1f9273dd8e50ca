"""Annul Movement Use Case: reversals and corrections."""

from kardex.application.dto.requests import AnnulMovementRequest, SupersedeMovementRequest
from kardex.application.dto.responses import ProductStateResponse
from kardex.application.services import get_inventory_reconciler
from kardex.config import get_logger
from kardex.core.entities.valuation import ProductState
from kardex.core.exceptions import MovementNotFoundError
from kardex.core.interfaces.inventory_store import IInventoryStore
from kardex.core.services import InventoryReconciler

logger = get_logger(__name__)


class AnnulMovementUseCase:
    """Annul or supersede a recorded movement, then replay its product."""

    def __init__(
        self,
        reconciler: InventoryReconciler | None = None,
        inventory_store: IInventoryStore | None = None,
    ):
        self._reconciler = reconciler
        self._inventory_store = inventory_store

    async def _get_inventory_store(self) -> IInventoryStore:
        if self._inventory_store is None:
            from kardex.infrastructure.storage.sqlite import get_inventory_store

            self._inventory_store = await get_inventory_store()
        return self._inventory_store

    async def _get_reconciler(self) -> InventoryReconciler:
        if self._reconciler is None:
            self._reconciler = await get_inventory_reconciler(
                await self._get_inventory_store()
            )
        return self._reconciler

    async def execute(self, request: AnnulMovementRequest) -> ProductState:
        """Annul a movement; its row is kept with the new status."""
        logger.info(
            "annul_movement_started",
            movement_id=request.movement_id,
            status=request.status.value,
        )
        reconciler = await self._get_reconciler()
        return await reconciler.annul_movement(request.movement_id, request.status)

    async def supersede(self, request: SupersedeMovementRequest) -> ProductState:
        """
        Replace a movement with a corrected line.

        Unset fields of the replacement (date, counterparty) are taken from
        the original so the correction keeps its place in the replay order.
        """
        store = await self._get_inventory_store()
        original = await store.get_movement(request.movement_id)
        if original is None:
            raise MovementNotFoundError(request.movement_id)

        replacement = request.replacement.to_movement(
            transaction_date=original.transaction_date,
            entity_name=original.entity_name,
            entity_document=original.entity_document,
            document_number=original.document_number,
        )
        logger.info(
            "supersede_movement_started",
            movement_id=request.movement_id,
            product_id=original.product_id,
        )
        reconciler = await self._get_reconciler()
        return await reconciler.supersede_movement(request.movement_id, replacement)

    def to_response(self, state: ProductState) -> ProductStateResponse:
        """Convert result to response DTO."""
        return ProductStateResponse(
            product_id=state.product_id,
            current_stock=state.current_stock,
            average_cost=state.average_cost,
            total_value=state.value,
            stale_snapshot_date=state.stale_snapshot_date,
        )
