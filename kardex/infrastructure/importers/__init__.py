"""One-time data import adapters."""

from kardex.infrastructure.importers.description_backfill import (
    BackfillResult,
    CounterpartyFields,
    backfill_descriptions,
    parse_description,
)
from kardex.infrastructure.importers.sale_price_backfill import backfill_sale_prices

__all__ = [
    "BackfillResult",
    "CounterpartyFields",
    "backfill_descriptions",
    "backfill_sale_prices",
    "parse_description",
]
