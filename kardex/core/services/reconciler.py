"""
Current-state reconciler.

Products carry a denormalized (current_stock, average_cost) pair derived from
their movement log. The log is authoritative; the live pair is a cache kept
up to date one movement at a time and repaired with a full replay (resync)
whenever the two may have diverged.
"""

import uuid
from dataclasses import replace
from datetime import date

from kardex.config import get_logger
from kardex.core.entities.inventory import (
    InventoryMovement,
    MovementStatus,
    Product,
)
from kardex.core.entities.valuation import (
    BatchResult,
    ConsistencyReport,
    ProductDrift,
    ProductState,
    ValuationState,
)
from kardex.core.exceptions import (
    BatchOperationError,
    InsufficientStockError,
    KardexError,
    MovementNotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from kardex.core.interfaces.inventory_store import IInventoryStore
from kardex.core.services.valuation import apply_movement, replay, within_tolerance

logger = get_logger(__name__)


class InventoryReconciler:
    """
    Keep live product valuations consistent with the movement log.

    Every mutation runs in one store transaction so that reading the live
    stock, validating, appending the movement and updating the product
    happen with no interleaved writer.
    """

    DEFAULT_EPSILON = 0.01
    DEFAULT_QUANTITY_TOLERANCE = 1e-9

    def __init__(
        self,
        store: IInventoryStore,
        require_inbound_cost: bool = True,
        epsilon: float = DEFAULT_EPSILON,
        quantity_tolerance: float = DEFAULT_QUANTITY_TOLERANCE,
    ):
        self._store = store
        self._require_inbound_cost = require_inbound_cost
        self._epsilon = epsilon
        self._quantity_tolerance = quantity_tolerance

    # Mutations

    async def apply_movement(self, movement: InventoryMovement) -> ProductState:
        """
        Register a new movement and update the product's live valuation.

        Raises:
            ProductNotFoundError: Unknown product
            ValidationError: Malformed movement
            InsufficientStockError: Outbound quantity exceeds live stock.
                Nothing is persisted.
        """
        async with self._store.transaction() as tx:
            _, state = await self._apply(tx, movement)
        return state

    async def register_transaction(
        self, movements: list[InventoryMovement]
    ) -> list[ProductState]:
        """
        Apply the movements of one user operation, all or nothing.

        Movements without a transaction_id share a newly generated one.
        """
        if not movements:
            raise ValidationError("movements", "at least one movement is required")

        transaction_id = uuid.uuid4().hex
        states: list[ProductState] = []
        async with self._store.transaction() as tx:
            for movement in movements:
                if movement.transaction_id is None:
                    movement = movement.model_copy(update={"transaction_id": transaction_id})
                _, state = await self._apply(tx, movement)
                states.append(state)

        logger.info(
            "transaction_registered",
            transaction_id=transaction_id,
            movements=len(movements),
        )
        return states

    async def annul_movement(
        self,
        movement_id: int,
        status: MovementStatus = MovementStatus.ANNULLED,
    ) -> ProductState:
        """
        Reverse a movement by changing its status, then replay the product.

        The movement row is kept for audit. Annulling is rejected if the
        product's stock would end up negative (e.g. annulling a purchase
        whose goods were already sold).
        """
        if status is MovementStatus.ACTIVE:
            raise ValidationError("status", "cannot annul to Active", status.value)

        async with self._store.transaction() as tx:
            movement = await self._get_active_movement(tx, movement_id)
            product = await self._get_product(tx, movement.product_id)

            await tx.set_movement_status(movement_id, status)
            state = await self._replay_product(tx, movement.product_id)
            if state.current_stock < -self._quantity_tolerance:
                raise InsufficientStockError(
                    product_id=movement.product_id,
                    requested=movement.quantity,
                    available=product.current_stock,
                )
            state = await self._flag_stale_snapshot(
                tx, state, movement.transaction_date.date()
            )

        logger.info(
            "movement_annulled",
            movement_id=movement_id,
            product_id=movement.product_id,
            status=status.value,
            new_stock=state.current_stock,
        )
        return state

    async def supersede_movement(
        self, movement_id: int, replacement: InventoryMovement
    ) -> ProductState:
        """
        Replace a movement with a corrected one.

        The original is marked Superseded and the replacement is appended
        under the same transaction_id, then the product is replayed.
        """
        async with self._store.transaction() as tx:
            original = await self._get_active_movement(tx, movement_id)
            if replacement.product_id != original.product_id:
                raise ValidationError(
                    "product_id",
                    "replacement must belong to the same product",
                    replacement.product_id,
                )
            self._validate(replacement)
            product = await self._get_product(tx, original.product_id)

            await tx.set_movement_status(movement_id, MovementStatus.SUPERSEDED)
            replacement = await tx.add_movement(
                replacement.model_copy(
                    update={
                        "id": None,
                        "status": MovementStatus.ACTIVE,
                        "transaction_id": original.transaction_id,
                    }
                )
            )
            state = await self._replay_product(tx, original.product_id)
            if state.current_stock < -self._quantity_tolerance:
                raise InsufficientStockError(
                    product_id=original.product_id,
                    requested=replacement.quantity,
                    available=product.current_stock,
                )
            affected = min(original.transaction_date, replacement.transaction_date).date()
            state = await self._flag_stale_snapshot(tx, state, affected)

        logger.info(
            "movement_superseded",
            movement_id=movement_id,
            replacement_id=replacement.id,
            product_id=original.product_id,
        )
        return state

    # Repair

    async def resync(self, product_id: int) -> ProductState:
        """
        Rebuild a product's live valuation from its whole movement log.

        Idempotent; the authoritative repair for any drift.
        """
        async with self._store.transaction() as tx:
            await self._get_product(tx, product_id)
            state = await self._replay_product(tx, product_id)

        logger.info(
            "resync_complete",
            product_id=product_id,
            stock=state.current_stock,
            average_cost=round(state.average_cost, 4),
        )
        return state

    async def resync_all(self, atomic: bool = True) -> BatchResult:
        """
        Resync every product.

        Args:
            atomic: One umbrella transaction; any failure rolls back every
                product and raises BatchOperationError. Otherwise each
                product runs in its own transaction and failures are
                collected in the result.
        """
        result = BatchResult()

        if atomic:
            async with self._store.transaction() as tx:
                for product_id in await tx.list_product_ids():
                    try:
                        result.states.append(await self._replay_product(tx, product_id))
                    except Exception as e:
                        reason = e.message if isinstance(e, KardexError) else str(e)
                        logger.error("resync_failed", product_id=product_id, error=reason)
                        raise BatchOperationError("resync_all", product_id, reason) from e
        else:
            for product_id in await self._store.list_product_ids():
                try:
                    result.states.append(await self.resync(product_id))
                except Exception as e:
                    reason = e.message if isinstance(e, KardexError) else str(e)
                    logger.error("resync_failed", product_id=product_id, error=reason)
                    result.failures[product_id] = reason

        logger.info(
            "resync_all_complete",
            atomic=atomic,
            products=result.succeeded,
            failures=len(result.failures),
        )
        return result

    async def check_consistency(self) -> ConsistencyReport:
        """Compare every live valuation with a replay, without repairing."""
        products = await self._store.list_products()
        report = ConsistencyReport(
            products_checked=len(products),
            live_total=0.0,
            replay_total=0.0,
        )
        for product in products:
            replayed = replay(await self._store.list_movements(product.id))  # type: ignore[arg-type]
            report.live_total += product.total_value
            report.replay_total += replayed.value

            if not (
                within_tolerance(product.current_stock, replayed.stock, self._epsilon)
                and within_tolerance(product.average_cost, replayed.average_cost, self._epsilon)
            ):
                report.drifts.append(
                    ProductDrift(
                        product_id=product.id,  # type: ignore[arg-type]
                        stored_stock=product.current_stock,
                        stored_cost=product.average_cost,
                        replayed_stock=replayed.stock,
                        replayed_cost=replayed.average_cost,
                    )
                )

        if report.drifts:
            logger.warning(
                "live_state_drift_detected",
                products=[d.product_id for d in report.drifts],
                live_total=round(report.live_total, 2),
                replay_total=round(report.replay_total, 2),
            )
        return report

    # Internals

    def _validate(self, movement: InventoryMovement) -> None:
        if movement.unit_cost is not None and movement.unit_cost < 0:
            raise ValidationError("unit_cost", "must not be negative", movement.unit_cost)
        if movement.type.is_inbound and movement.unit_cost is None and self._require_inbound_cost:
            raise ValidationError("unit_cost", "required for inbound movements")

    async def _apply(
        self, tx: IInventoryStore, movement: InventoryMovement
    ) -> tuple[InventoryMovement, ProductState]:
        if not movement.is_active:
            raise ValidationError("status", "new movements must be Active", movement.status.value)
        self._validate(movement)

        product = await self._get_product(tx, movement.product_id)
        live = ValuationState(stock=product.current_stock, average_cost=product.average_cost)
        if (
            not movement.type.is_inbound
            and movement.quantity - live.stock > self._quantity_tolerance
        ):
            raise InsufficientStockError(
                product_id=movement.product_id,
                requested=movement.quantity,
                available=live.stock,
            )

        latest = await tx.latest_movement_date(movement.product_id)
        saved = await tx.add_movement(movement)

        if latest is not None and movement.transaction_date < latest:
            # Weighted average depends on order; rebuild instead of appending
            logger.info(
                "backdated_movement_replay",
                movement_id=saved.id,
                product_id=movement.product_id,
            )
            state = await self._replay_product(tx, movement.product_id)
        else:
            new = apply_movement(live, saved)
            await tx.update_product_state(movement.product_id, new.stock, new.average_cost)
            state = ProductState(
                product_id=movement.product_id,
                current_stock=new.stock,
                average_cost=new.average_cost,
            )
        state = await self._flag_stale_snapshot(tx, state, movement.transaction_date.date())

        logger.info(
            "movement_applied",
            movement_id=saved.id,
            product_id=movement.product_id,
            type=movement.type.value,
            quantity=movement.quantity,
            new_stock=state.current_stock,
            new_avg=round(state.average_cost, 4),
        )
        return saved, state

    async def _replay_product(self, tx: IInventoryStore, product_id: int) -> ProductState:
        state = replay(await tx.list_movements(product_id))
        await tx.update_product_state(product_id, state.stock, state.average_cost)
        return ProductState(
            product_id=product_id,
            current_stock=state.stock,
            average_cost=state.average_cost,
        )

    async def _flag_stale_snapshot(
        self, tx: IInventoryStore, state: ProductState, affected: date
    ) -> ProductState:
        # Snapshots are checkpoints; a rewritten period is reported, never repaired
        snapshot = await tx.latest_snapshot_before(state.product_id, date.max)
        if snapshot is None or affected > snapshot.snapshot_date:
            return state

        logger.warning(
            "snapshot_stale",
            product_id=state.product_id,
            affected_date=affected.isoformat(),
            snapshot_date=snapshot.snapshot_date.isoformat(),
        )
        return replace(state, stale_snapshot_date=snapshot.snapshot_date)

    async def _get_product(self, tx: IInventoryStore, product_id: int) -> Product:
        product = await tx.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    async def _get_active_movement(
        self, tx: IInventoryStore, movement_id: int
    ) -> InventoryMovement:
        movement = await tx.get_movement(movement_id)
        if movement is None:
            raise MovementNotFoundError(movement_id)
        if not movement.is_active:
            raise ValidationError(
                "status", f"movement is already {movement.status.value}", movement_id
            )
        return movement
