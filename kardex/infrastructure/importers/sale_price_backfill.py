"""
One-time import adapter for legacy sale prices.

Older databases stored the selling price of a sale in ``unit_cost``. Sales
carry no cost of their own (they leave at the running average), so the value
belongs in ``price``. Rows that already have a price are left alone.
"""

from kardex.config import get_logger
from kardex.core.entities.inventory import MovementType
from kardex.infrastructure.storage.sqlite.connection import ConnectionPool

logger = get_logger(__name__)


async def backfill_sale_prices(pool: ConnectionPool) -> int:
    """Copy unit_cost into price for sales missing a price. Returns rows updated."""
    async with pool.transaction() as conn:
        cursor = await conn.execute(
            """
            UPDATE inventory_movements SET price = unit_cost
            WHERE type = ? AND price IS NULL AND unit_cost IS NOT NULL
            """,
            (MovementType.SALIDA.value,),
        )
        updated = cursor.rowcount

    logger.info("sale_price_backfill_complete", rows_updated=updated)
    return updated
