"""
One-time import adapter for legacy movement descriptions.

Older databases kept the counterparty of a purchase or sale only inside the
free-text ``description`` ("Venta a Ana (DNI: 123). Factura: F-9"). This
adapter parses those strings into entity_name / entity_document /
document_number and groups each distinct description under one
transaction_id. Existing structured values are never overwritten.

Not used by the valuation engine; run it once after importing legacy data.
"""

import re
import uuid
from dataclasses import dataclass

from kardex.config import get_logger
from kardex.core.entities.inventory import MovementType
from kardex.infrastructure.storage.sqlite.connection import ConnectionPool

logger = get_logger(__name__)

SALE_PATTERN = re.compile(r"Venta a (.*?)\s?\(DNI: (.*?)\)\.\s?Factura:\s?(.*)", re.IGNORECASE)
PURCHASE_PATTERN = re.compile(r"Compra a (.*?)\s?\(RIF: (.*?)\)\.\s?Factura:\s?(.*)", re.IGNORECASE)
SIMPLE_PURCHASE_PATTERN = re.compile(r"Compra a (.*?)\.\s?Factura:\s?(.*)", re.IGNORECASE)

NOT_AVAILABLE = "N/A"


@dataclass
class CounterpartyFields:
    """Structured fields recovered from a description."""

    entity_name: str | None = None
    entity_document: str | None = None
    document_number: str | None = None


@dataclass
class BackfillResult:
    """Outcome of a backfill run."""

    descriptions: int = 0
    parsed: int = 0
    rows_updated: int = 0


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value or value == NOT_AVAILABLE:
        return None
    return value


def parse_description(description: str | None) -> CounterpartyFields | None:
    """Extract counterparty fields from a legacy description, if it matches."""
    if not description:
        return None

    for pattern in (SALE_PATTERN, PURCHASE_PATTERN):
        match = pattern.search(description)
        if match:
            return CounterpartyFields(
                entity_name=_clean(match.group(1)),
                entity_document=_clean(match.group(2).replace(")", "")),
                document_number=_clean(match.group(3)),
            )

    match = SIMPLE_PURCHASE_PATTERN.search(description)
    if match:
        return CounterpartyFields(
            entity_name=_clean(match.group(1)),
            document_number=_clean(match.group(2)),
        )
    return None


async def backfill_descriptions(pool: ConnectionPool) -> BackfillResult:
    """
    Fill missing structured fields of purchase and sale movements.

    Runs in one transaction; a failure leaves the database untouched.
    """
    result = BackfillResult()

    async with pool.transaction() as conn:
        cursor = await conn.execute(
            """
            SELECT DISTINCT description FROM inventory_movements
            WHERE (transaction_id IS NULL OR document_number IS NULL)
              AND type IN (?, ?)
              AND description IS NOT NULL
            """,
            (MovementType.ENTRADA.value, MovementType.SALIDA.value),
        )
        descriptions = [row[0] for row in await cursor.fetchall()]
        result.descriptions = len(descriptions)

        for description in descriptions:
            fields = parse_description(description) or CounterpartyFields()
            if any(vars(fields).values()):
                result.parsed += 1

            cursor = await conn.execute(
                """
                UPDATE inventory_movements SET
                    transaction_id = COALESCE(transaction_id, ?),
                    entity_name = COALESCE(entity_name, ?),
                    entity_document = COALESCE(entity_document, ?),
                    document_number = COALESCE(document_number, ?)
                WHERE description = ? AND type IN (?, ?)
                """,
                (
                    uuid.uuid4().hex,
                    fields.entity_name,
                    fields.entity_document,
                    fields.document_number,
                    description,
                    MovementType.ENTRADA.value,
                    MovementType.SALIDA.value,
                ),
            )
            result.rows_updated += cursor.rowcount
            logger.debug(
                "description_backfilled",
                description=description[:30],
                rows=cursor.rowcount,
            )

    logger.info(
        "description_backfill_complete",
        descriptions=result.descriptions,
        parsed=result.parsed,
        rows_updated=result.rows_updated,
    )
    return result
