"""
Historical inventory valuation.

Answers "what was the inventory worth on date D" by replaying each product's
movement log, optionally starting from the latest snapshot at or before D.
Both paths must agree; verify_equivalence checks that they do.
"""

from collections.abc import Sequence
from datetime import date

from kardex.config import get_logger
from kardex.core.entities.valuation import (
    EquivalenceCheck,
    GrowthPeriod,
    InventoryValuation,
    ValuationLine,
    ValuationState,
)
from kardex.core.exceptions import ProductNotFoundError, SnapshotInconsistencyError
from kardex.core.interfaces.inventory_store import IInventoryStore
from kardex.core.services.valuation import replay

logger = get_logger(__name__)


class HistoricalQueryService:
    """Point-in-time inventory valuation over a store's movement log."""

    DEFAULT_EPSILON = 0.01

    def __init__(
        self,
        store: IInventoryStore,
        use_snapshots: bool = True,
        epsilon: float = DEFAULT_EPSILON,
    ):
        self._store = store
        self._use_snapshots = use_snapshots
        self._epsilon = epsilon

    async def product_state_at(
        self,
        product_id: int,
        as_of: date,
        use_snapshot: bool | None = None,
    ) -> ValuationState:
        """Stock and average cost of one product at the end of a date."""
        if await self._store.get_product(product_id) is None:
            raise ProductNotFoundError(product_id)
        state, _ = await self._replay_product(product_id, as_of, self._resolve(use_snapshot))
        return state

    async def valuation_at_date(
        self, as_of: date, use_snapshot: bool | None = None
    ) -> InventoryValuation:
        """Inventory valuation at the end of a date, with per-product lines."""
        use_snapshot = self._resolve(use_snapshot)
        valuation = InventoryValuation(as_of=as_of, use_snapshot=use_snapshot)

        for product_id in await self._store.list_product_ids():
            state, snapshot_date = await self._replay_product(product_id, as_of, use_snapshot)
            valuation.lines.append(
                ValuationLine(
                    product_id=product_id,
                    stock=state.stock,
                    average_cost=state.average_cost,
                    value=state.value,
                    snapshot_date=snapshot_date,
                )
            )

        logger.debug(
            "inventory_valued",
            as_of=as_of.isoformat(),
            use_snapshot=use_snapshot,
            products=len(valuation.lines),
            total=round(valuation.total, 2),
        )
        return valuation

    async def value_at_date(self, as_of: date, use_snapshot: bool | None = None) -> float:
        """Total inventory value at the end of a date."""
        valuation = await self.valuation_at_date(as_of, use_snapshot)
        return valuation.total

    async def growth_between(
        self, start: date, end: date, use_snapshot: bool | None = None
    ) -> float:
        """value_at_date(end) - value_at_date(start)."""
        return await self.value_at_date(end, use_snapshot) - await self.value_at_date(
            start, use_snapshot
        )

    async def growth_series(
        self, dates: Sequence[date], use_snapshot: bool | None = None
    ) -> list[GrowthPeriod]:
        """
        Growth over consecutive periods, e.g. a list of year-end dates.

        Dates are sorted first; each date is valued once.
        """
        ordered = sorted(set(dates))
        values = [await self.value_at_date(d, use_snapshot) for d in ordered]
        return [
            GrowthPeriod(
                start=ordered[i],
                end=ordered[i + 1],
                start_value=values[i],
                end_value=values[i + 1],
            )
            for i in range(len(ordered) - 1)
        ]

    async def verify_equivalence(self, as_of: date, strict: bool = False) -> EquivalenceCheck:
        """
        Value a date with and without snapshots and compare.

        A mismatch means a stale snapshot. It is logged and, in strict mode,
        raised; it is never corrected here.
        """
        check = EquivalenceCheck(
            as_of=as_of,
            with_snapshot=await self.value_at_date(as_of, use_snapshot=True),
            without_snapshot=await self.value_at_date(as_of, use_snapshot=False),
            epsilon=self._epsilon,
        )
        if check.consistent:
            logger.info(
                "snapshot_equivalence_ok",
                as_of=as_of.isoformat(),
                total=round(check.without_snapshot, 2),
            )
            return check

        logger.error(
            "snapshot_equivalence_failed",
            as_of=as_of.isoformat(),
            with_snapshot=round(check.with_snapshot, 2),
            without_snapshot=round(check.without_snapshot, 2),
            difference=round(check.difference, 2),
        )
        if strict:
            raise SnapshotInconsistencyError(
                as_of,
                expected=check.without_snapshot,
                actual=check.with_snapshot,
            )
        return check

    async def live_value(self) -> float:
        """Sum of the live denormalized valuations of active products."""
        products = await self._store.list_products(active_only=True)
        return sum(p.total_value for p in products)

    def _resolve(self, use_snapshot: bool | None) -> bool:
        return self._use_snapshots if use_snapshot is None else use_snapshot

    async def _replay_product(
        self, product_id: int, as_of: date, use_snapshot: bool
    ) -> tuple[ValuationState, date | None]:
        start: ValuationState | None = None
        after: date | None = None

        if use_snapshot:
            snapshot = await self._store.latest_snapshot_before(product_id, as_of)
            if snapshot is not None:
                start = ValuationState(
                    stock=snapshot.closing_stock,
                    average_cost=snapshot.closing_average_cost,
                )
                after = snapshot.snapshot_date

        movements = await self._store.list_movements(product_id, after=after, through=as_of)
        return replay(movements, start), after
