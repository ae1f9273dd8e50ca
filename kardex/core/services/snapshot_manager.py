"""
Snapshot manager.

Snapshots are checkpoints of each product's (stock, average cost) at a date.
They only bound the cost of historical replays: when one is missing the
query service falls back to a full replay, so a snapshot is a cache and
never a source of truth.
"""

from datetime import date

from kardex.config import get_logger
from kardex.core.entities.inventory import InventorySnapshot
from kardex.core.entities.valuation import (
    ProductDrift,
    RescaleResult,
    SnapshotVerification,
)
from kardex.core.exceptions import (
    BatchOperationError,
    KardexError,
    SnapshotInconsistencyError,
    SnapshotNotFoundError,
    SnapshotTotalMismatchError,
    ValidationError,
)
from kardex.core.interfaces.inventory_store import IInventoryStore
from kardex.core.services.valuation import replay, within_tolerance

logger = get_logger(__name__)


class SnapshotManager:
    """
    Create, delete, verify and correct inventory snapshots.

    All writes run inside a single store transaction: a snapshot covering
    only some products would silently undercount later lookups, so a
    failure on any product rolls the whole date back.
    """

    DEFAULT_EPSILON = 0.01

    def __init__(self, store: IInventoryStore, epsilon: float = DEFAULT_EPSILON):
        self._store = store
        self._epsilon = epsilon

    async def create_snapshot(self, snapshot_date: date) -> int:
        """
        Snapshot every product as of a date, replacing any existing rows.

        Returns:
            Number of products snapshotted.

        Raises:
            BatchOperationError: If any product fails; nothing is written.
        """
        logger.info("snapshot_create_started", snapshot_date=snapshot_date.isoformat())

        async with self._store.transaction() as tx:
            product_ids = await tx.list_product_ids()
            for product_id in product_ids:
                try:
                    movements = await tx.list_movements(product_id, through=snapshot_date)
                    state = replay(movements)
                    await tx.write_snapshot(
                        InventorySnapshot(
                            product_id=product_id,
                            snapshot_date=snapshot_date,
                            closing_stock=state.stock,
                            closing_average_cost=state.average_cost,
                        )
                    )
                except Exception as e:
                    reason = e.message if isinstance(e, KardexError) else str(e)
                    logger.error(
                        "snapshot_create_failed",
                        snapshot_date=snapshot_date.isoformat(),
                        product_id=product_id,
                        error=reason,
                    )
                    raise BatchOperationError("create_snapshot", product_id, reason) from e

        logger.info(
            "snapshot_created",
            snapshot_date=snapshot_date.isoformat(),
            products=len(product_ids),
        )
        return len(product_ids)

    async def delete_snapshot(self, snapshot_date: date) -> int:
        """Delete every row of a snapshot. Returns the number of rows removed."""
        async with self._store.transaction() as tx:
            removed = await tx.delete_snapshots(snapshot_date)

        if removed:
            logger.info(
                "snapshot_deleted",
                snapshot_date=snapshot_date.isoformat(),
                rows=removed,
            )
        else:
            logger.info("snapshot_not_found", snapshot_date=snapshot_date.isoformat())
        return removed

    async def list_snapshot_dates(self) -> list[date]:
        return await self._store.list_snapshot_dates()

    async def snapshot_total(self, snapshot_date: date) -> float:
        """Aggregate inventory value recorded in a snapshot."""
        snapshots = await self._store.list_snapshots(snapshot_date)
        if not snapshots:
            raise SnapshotNotFoundError(snapshot_date)
        return sum(s.closing_value for s in snapshots)

    async def verify_snapshot(
        self, snapshot_date: date, raise_on_mismatch: bool = False
    ) -> SnapshotVerification:
        """
        Check every row of a snapshot against a replay from scratch.

        Discrepancies are logged and reported, never corrected: a stale
        snapshot has to be regenerated explicitly.
        """
        snapshots = await self._store.list_snapshots(snapshot_date)
        if not snapshots:
            raise SnapshotNotFoundError(snapshot_date)

        verification = SnapshotVerification(
            snapshot_date=snapshot_date,
            products_checked=len(snapshots),
            snapshot_total=0.0,
            replay_total=0.0,
        )
        for snapshot in snapshots:
            movements = await self._store.list_movements(
                snapshot.product_id, through=snapshot_date
            )
            state = replay(movements)
            verification.snapshot_total += snapshot.closing_value
            verification.replay_total += state.value

            if not (
                within_tolerance(snapshot.closing_stock, state.stock, self._epsilon)
                and within_tolerance(
                    snapshot.closing_average_cost, state.average_cost, self._epsilon
                )
            ):
                verification.drifts.append(
                    ProductDrift(
                        product_id=snapshot.product_id,
                        stored_stock=snapshot.closing_stock,
                        stored_cost=snapshot.closing_average_cost,
                        replayed_stock=state.stock,
                        replayed_cost=state.average_cost,
                    )
                )

        if verification.consistent:
            logger.info(
                "snapshot_verified",
                snapshot_date=snapshot_date.isoformat(),
                products=verification.products_checked,
                total=round(verification.snapshot_total, 2),
            )
            return verification

        for drift in verification.drifts:
            logger.error(
                "snapshot_inconsistency",
                snapshot_date=snapshot_date.isoformat(),
                product_id=drift.product_id,
                stored_stock=drift.stored_stock,
                replayed_stock=drift.replayed_stock,
                stored_cost=round(drift.stored_cost, 6),
                replayed_cost=round(drift.replayed_cost, 6),
            )
        if raise_on_mismatch:
            raise SnapshotInconsistencyError(
                snapshot_date,
                expected=verification.replay_total,
                actual=verification.snapshot_total,
                product_ids=[d.product_id for d in verification.drifts],
            )
        return verification

    async def rescale_costs(
        self,
        snapshot_date: date,
        factor: float,
        expected_total: float | None = None,
        dry_run: bool = True,
    ) -> RescaleResult:
        """
        Multiply every closing average cost of a snapshot by a factor.

        This is a price-correction tool: the simulated total is checked
        against ``expected_total`` before anything is written, and the
        stored total is read back and checked again before commit. Any
        mismatch or storage error rolls the whole correction back.

        Args:
            snapshot_date: Snapshot to correct
            factor: Multiplier applied to each closing average cost
            expected_total: Target aggregate value after the correction
            dry_run: Only compute the result, write nothing

        Raises:
            SnapshotNotFoundError: No snapshot for the date
            SnapshotTotalMismatchError: Total does not match the target
        """
        if factor <= 0:
            raise ValidationError("factor", "must be positive", factor)
        if not dry_run and expected_total is None:
            raise ValidationError(
                "expected_total", "required when applying a correction"
            )

        async with self._store.transaction() as tx:
            snapshots = await tx.list_snapshots(snapshot_date)
            if not snapshots:
                raise SnapshotNotFoundError(snapshot_date)

            rescaled = [
                s.model_copy(update={"closing_average_cost": s.closing_average_cost * factor})
                for s in snapshots
            ]
            result = RescaleResult(
                snapshot_date=snapshot_date,
                factor=factor,
                products=len(snapshots),
                original_total=sum(s.closing_value for s in snapshots),
                new_total=sum(s.closing_value for s in rescaled),
                expected_total=expected_total,
                applied=False,
            )
            logger.info(
                "snapshot_rescale_simulated",
                snapshot_date=snapshot_date.isoformat(),
                factor=factor,
                original_total=round(result.original_total, 5),
                new_total=round(result.new_total, 5),
                expected_total=expected_total,
            )

            if expected_total is not None and not within_tolerance(
                result.new_total, expected_total, self._epsilon
            ):
                raise SnapshotTotalMismatchError(
                    snapshot_date, expected_total, result.new_total
                )
            if dry_run:
                return result

            for snapshot in rescaled:
                await tx.write_snapshot(snapshot)

            stored_total = sum(s.closing_value for s in await tx.list_snapshots(snapshot_date))
            if not within_tolerance(stored_total, expected_total, self._epsilon):
                raise SnapshotTotalMismatchError(snapshot_date, expected_total, stored_total)

            result.new_total = stored_total
            result.applied = True

        logger.info(
            "snapshot_rescaled",
            snapshot_date=snapshot_date.isoformat(),
            products=result.products,
            new_total=round(result.new_total, 5),
        )
        return result
