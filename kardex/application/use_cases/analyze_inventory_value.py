"""Analyze Inventory Value Use Case: historical valuation and growth."""

from dataclasses import dataclass
from datetime import date

from kardex.application.dto.requests import GrowthRequest, ValuationRequest
from kardex.application.dto.responses import (
    GrowthPeriodResponse,
    GrowthResponse,
    ValuationLineResponse,
    ValuationResponse,
)
from kardex.application.services import get_historical_query_service
from kardex.config import get_logger, get_settings
from kardex.core.entities.valuation import (
    EquivalenceCheck,
    GrowthPeriod,
    InventoryValuation,
)
from kardex.core.interfaces.inventory_store import IInventoryStore
from kardex.core.services import HistoricalQueryService, replay, round_currency

logger = get_logger(__name__)


@dataclass
class DriftAnalysis:
    """Live denormalized total compared with the current replayed total."""

    live_value: float
    replay_value: float

    @property
    def difference(self) -> float:
        return self.replay_value - self.live_value


class AnalyzeInventoryValueUseCase:
    """Read-only inventory value analysis. Never mutates the store."""

    def __init__(
        self,
        query_service: HistoricalQueryService | None = None,
        inventory_store: IInventoryStore | None = None,
    ):
        self._query = query_service
        self._inventory_store = inventory_store

    async def _get_inventory_store(self) -> IInventoryStore:
        if self._inventory_store is None:
            from kardex.infrastructure.storage.sqlite import get_inventory_store

            self._inventory_store = await get_inventory_store()
        return self._inventory_store

    async def _get_query(self) -> HistoricalQueryService:
        if self._query is None:
            self._query = await get_historical_query_service(
                await self._get_inventory_store()
            )
        return self._query

    async def value_at(self, request: ValuationRequest) -> InventoryValuation:
        """Inventory valuation at the end of a date."""
        query = await self._get_query()
        return await query.valuation_at_date(request.as_of, request.use_snapshot)

    async def growth(self, request: GrowthRequest) -> list[GrowthPeriod]:
        """Growth over the consecutive periods between the given dates."""
        query = await self._get_query()
        periods = await query.growth_series(request.dates, request.use_snapshot)
        logger.info(
            "growth_analyzed",
            periods=len(periods),
            total_growth=round(sum(p.growth for p in periods), 2),
        )
        return periods

    async def verify_equivalence(self, as_of: date, strict: bool = False) -> EquivalenceCheck:
        """Check that snapshot-assisted and full replay agree at a date."""
        query = await self._get_query()
        return await query.verify_equivalence(as_of, strict=strict)

    async def drift(self) -> DriftAnalysis:
        """
        Compare the live total with a full replay of every product.

        Only Active products count toward the live total, matching what
        callers display as the current inventory value.
        """
        store = await self._get_inventory_store()
        query = await self._get_query()

        replay_value = 0.0
        for product in await store.list_products(active_only=True):
            state = replay(await store.list_movements(product.id))  # type: ignore[arg-type]
            replay_value += state.value

        analysis = DriftAnalysis(
            live_value=await query.live_value(),
            replay_value=replay_value,
        )
        logger.info(
            "drift_analyzed",
            live_value=round(analysis.live_value, 2),
            replay_value=round(analysis.replay_value, 2),
        )
        return analysis

    def to_response(self, valuation: InventoryValuation) -> ValuationResponse:
        """Convert valuation to response DTO, rounded to currency precision."""
        decimals = get_settings().valuation.currency_decimals
        return ValuationResponse(
            as_of=valuation.as_of,
            use_snapshot=valuation.use_snapshot,
            total=round_currency(valuation.total, decimals),
            lines=[
                ValuationLineResponse(
                    product_id=line.product_id,
                    stock=line.stock,
                    average_cost=line.average_cost,
                    value=round_currency(line.value, decimals),
                    snapshot_date=line.snapshot_date,
                )
                for line in valuation.lines
            ],
        )

    def to_growth_response(self, periods: list[GrowthPeriod]) -> GrowthResponse:
        decimals = get_settings().valuation.currency_decimals
        return GrowthResponse(
            periods=[
                GrowthPeriodResponse(
                    start=p.start,
                    end=p.end,
                    start_value=round_currency(p.start_value, decimals),
                    end_value=round_currency(p.end_value, decimals),
                    growth=round_currency(p.growth, decimals),
                )
                for p in periods
            ],
            total_growth=round_currency(sum(p.growth for p in periods), decimals),
        )
