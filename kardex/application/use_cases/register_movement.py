"""Register Movement Use Case: purchases, sales and withdrawals."""

from kardex.application.dto.requests import RegisterMovementRequest
from kardex.application.dto.responses import ProductStateResponse, RegisterMovementResponse
from kardex.application.services import get_inventory_reconciler
from kardex.config import get_logger
from kardex.core.entities.inventory import InventoryMovement, utc_now
from kardex.core.entities.valuation import ProductState
from kardex.core.interfaces.inventory_store import IInventoryStore
from kardex.core.services import InventoryReconciler

logger = get_logger(__name__)


class RegisterMovementUseCase:
    """
    Register the movements of one business operation atomically.

    Every line is applied in a single transaction; if any line fails
    (unknown product, insufficient stock) nothing is recorded.
    """

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

    def build_movements(self, request: RegisterMovementRequest) -> list[InventoryMovement]:
        """Turn request lines into movements sharing the operation's fields."""
        transaction_date = request.transaction_date or utc_now()
        return [
            line.to_movement(
                transaction_date=transaction_date,
                entity_name=request.entity_name,
                entity_document=request.entity_document,
                document_number=request.document_number,
            )
            for line in request.lines
        ]

    async def execute(self, request: RegisterMovementRequest) -> list[ProductState]:
        """
        Execute register movement use case.

        Raises:
            ProductNotFoundError: A line references an unknown product
            InsufficientStockError: An outbound line exceeds live stock
            ValidationError: A line is malformed
        """
        logger.info(
            "register_movement_started",
            lines=len(request.lines),
            document_number=request.document_number,
        )

        reconciler = await self._get_reconciler()
        states = await reconciler.register_transaction(self.build_movements(request))

        logger.info(
            "register_movement_complete",
            products=[s.product_id for s in states],
        )
        return states

    def to_response(self, states: list[ProductState]) -> RegisterMovementResponse:
        """Convert result to response DTO."""
        return RegisterMovementResponse(
            products=[
                ProductStateResponse(
                    product_id=s.product_id,
                    current_stock=s.current_stock,
                    average_cost=s.average_cost,
                    total_value=s.value,
                    stale_snapshot_date=s.stale_snapshot_date,
                )
                for s in states
            ]
        )
