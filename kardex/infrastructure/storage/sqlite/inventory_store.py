"""SQLite implementation of inventory storage."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime

import aiosqlite

from kardex.config import get_logger
from kardex.core.entities.inventory import (
    InventoryMovement,
    InventorySnapshot,
    MovementStatus,
    MovementType,
    Product,
    ProductStatus,
    utc_now,
)
from kardex.core.exceptions import DatabaseError
from kardex.core.interfaces.inventory_store import IInventoryStore
from kardex.infrastructure.storage.sqlite.connection import ConnectionPool, get_pool

logger = get_logger(__name__)


class SQLiteInventoryStore(IInventoryStore):
    """
    SQLite implementation of product, movement and snapshot storage.

    An unbound store takes a pooled connection per call and commits each
    write on its own. ``transaction()`` yields a store bound to a single
    connection; every call made through it belongs to that transaction.
    """

    def __init__(
        self,
        pool: ConnectionPool | None = None,
        conn: aiosqlite.Connection | None = None,
    ):
        self._pool = pool
        self._conn = conn

    async def _get_pool(self) -> ConnectionPool:
        if self._pool is None:
            self._pool = await get_pool()
        return self._pool

    @asynccontextmanager
    async def _reading(self) -> AsyncIterator[aiosqlite.Connection]:
        if self._conn is not None:
            yield self._conn
            return
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def _writing(self) -> AsyncIterator[aiosqlite.Connection]:
        if self._conn is not None:
            yield self._conn
            return
        pool = await self._get_pool()
        async with pool.transaction() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SQLiteInventoryStore"]:
        """
        Open a transaction, or join the one this store is bound to.

        SQLite failures surface as DatabaseError once the transaction has
        been rolled back.
        """
        if self._conn is not None:
            yield self
            return
        pool = await self._get_pool()
        try:
            async with pool.transaction() as conn:
                yield SQLiteInventoryStore(pool, conn=conn)
        except aiosqlite.Error as e:
            logger.error("inventory_transaction_failed", error=str(e))
            raise DatabaseError("transaction", str(e)) from e

    # Products

    async def create_product(self, product: Product) -> Product:
        """Create a new product."""
        now = utc_now()
        product.created_at = now
        product.updated_at = now
        async with self._writing() as conn:
            cursor = await conn.execute(
                """
                INSERT INTO products (
                    name, sku, current_stock, average_cost,
                    status, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    product.name,
                    product.sku,
                    product.current_stock,
                    product.average_cost,
                    product.status.value,
                    product.created_at.isoformat(),
                    product.updated_at.isoformat(),
                ),
            )
            product.id = cursor.lastrowid
        logger.info("product_created", product_id=product.id, sku=product.sku)
        return product

    async def get_product(self, product_id: int) -> Product | None:
        """Get product by ID."""
        async with self._reading() as conn:
            cursor = await conn.execute(
                "SELECT * FROM products WHERE id = ?", (product_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_product(row)

    async def list_products(self, active_only: bool = False) -> list[Product]:
        """List products ordered by ID."""
        sql = "SELECT * FROM products"
        params: tuple = ()
        if active_only:
            sql += " WHERE status = ?"
            params = (ProductStatus.ACTIVE.value,)
        sql += " ORDER BY id"
        async with self._reading() as conn:
            cursor = await conn.execute(sql, params)
            rows = await cursor.fetchall()
            return [self._row_to_product(row) for row in rows]

    async def list_product_ids(self) -> list[int]:
        """List the IDs of every product."""
        async with self._reading() as conn:
            cursor = await conn.execute("SELECT id FROM products ORDER BY id")
            rows = await cursor.fetchall()
            return [row["id"] for row in rows]

    async def update_product_state(
        self, product_id: int, current_stock: float, average_cost: float
    ) -> None:
        """Overwrite the denormalized live valuation of a product."""
        async with self._writing() as conn:
            await conn.execute(
                """
                UPDATE products SET
                    current_stock = ?,
                    average_cost = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (current_stock, average_cost, utc_now().isoformat(), product_id),
            )
        logger.debug(
            "product_state_updated",
            product_id=product_id,
            current_stock=current_stock,
            average_cost=average_cost,
        )

    # Movements

    async def add_movement(self, movement: InventoryMovement) -> InventoryMovement:
        """Append a movement to the log."""
        async with self._writing() as conn:
            cursor = await conn.execute(
                """
                INSERT INTO inventory_movements (
                    product_id, type, quantity, unit_cost, price,
                    transaction_date, created_at, status, transaction_id,
                    entity_name, entity_document, document_number, description
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    movement.product_id,
                    movement.type.value,
                    movement.quantity,
                    movement.unit_cost,
                    movement.price,
                    movement.transaction_date.isoformat(),
                    movement.created_at.isoformat(),
                    movement.status.value,
                    movement.transaction_id,
                    movement.entity_name,
                    movement.entity_document,
                    movement.document_number,
                    movement.description,
                ),
            )
            movement.id = cursor.lastrowid
        logger.info(
            "inventory_movement_recorded",
            movement_id=movement.id,
            product_id=movement.product_id,
            type=movement.type.value,
            qty=movement.quantity,
        )
        return movement

    async def get_movement(self, movement_id: int) -> InventoryMovement | None:
        """Get movement by ID."""
        async with self._reading() as conn:
            cursor = await conn.execute(
                "SELECT * FROM inventory_movements WHERE id = ?", (movement_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_movement(row)

    async def set_movement_status(
        self, movement_id: int, status: MovementStatus
    ) -> None:
        """Change the status of a movement."""
        async with self._writing() as conn:
            await conn.execute(
                "UPDATE inventory_movements SET status = ? WHERE id = ?",
                (status.value, movement_id),
            )
        logger.info(
            "inventory_movement_status_changed",
            movement_id=movement_id,
            status=status.value,
        )

    async def list_movements(
        self,
        product_id: int,
        after: date | None = None,
        through: date | None = None,
    ) -> list[InventoryMovement]:
        """Get the Active movements of a product in replay order."""
        sql = """
            SELECT * FROM inventory_movements
            WHERE product_id = ? AND status = ?
        """
        params: list = [product_id, MovementStatus.ACTIVE.value]
        if after is not None:
            sql += " AND date(transaction_date) > ?"
            params.append(after.isoformat())
        if through is not None:
            sql += " AND date(transaction_date) <= ?"
            params.append(through.isoformat())
        sql += " ORDER BY transaction_date ASC, created_at ASC, id ASC"

        async with self._reading() as conn:
            cursor = await conn.execute(sql, params)
            rows = await cursor.fetchall()
            return [self._row_to_movement(row) for row in rows]

    async def latest_movement_date(self, product_id: int) -> datetime | None:
        """Get the transaction_date of the last Active movement of a product."""
        async with self._reading() as conn:
            cursor = await conn.execute(
                """
                SELECT MAX(transaction_date) AS latest FROM inventory_movements
                WHERE product_id = ? AND status = ?
                """,
                (product_id, MovementStatus.ACTIVE.value),
            )
            row = await cursor.fetchone()
            if row is None or row["latest"] is None:
                return None
            return datetime.fromisoformat(row["latest"])

    # Snapshots

    async def latest_snapshot_before(
        self, product_id: int, as_of: date
    ) -> InventorySnapshot | None:
        """Get the latest snapshot with snapshot_date <= as_of."""
        async with self._reading() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM inventory_snapshots
                WHERE product_id = ? AND snapshot_date <= ?
                ORDER BY snapshot_date DESC
                LIMIT 1
                """,
                (product_id, as_of.isoformat()),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_snapshot(row)

    async def write_snapshot(self, snapshot: InventorySnapshot) -> InventorySnapshot:
        """Insert or replace the snapshot for (product_id, snapshot_date)."""
        async with self._writing() as conn:
            await conn.execute(
                """
                INSERT INTO inventory_snapshots (
                    product_id, snapshot_date, closing_stock,
                    closing_average_cost, created_at
                ) VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(product_id, snapshot_date) DO UPDATE SET
                    closing_stock = excluded.closing_stock,
                    closing_average_cost = excluded.closing_average_cost,
                    created_at = excluded.created_at
                """,
                (
                    snapshot.product_id,
                    snapshot.snapshot_date.isoformat(),
                    snapshot.closing_stock,
                    snapshot.closing_average_cost,
                    snapshot.created_at.isoformat(),
                ),
            )
        return snapshot

    async def list_snapshots(self, snapshot_date: date) -> list[InventorySnapshot]:
        """Get every snapshot row taken on a date."""
        async with self._reading() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM inventory_snapshots
                WHERE snapshot_date = ?
                ORDER BY product_id
                """,
                (snapshot_date.isoformat(),),
            )
            rows = await cursor.fetchall()
            return [self._row_to_snapshot(row) for row in rows]

    async def list_snapshot_dates(self) -> list[date]:
        """Get the distinct snapshot dates, oldest first."""
        async with self._reading() as conn:
            cursor = await conn.execute(
                "SELECT DISTINCT snapshot_date FROM inventory_snapshots ORDER BY snapshot_date"
            )
            rows = await cursor.fetchall()
            return [date.fromisoformat(row["snapshot_date"]) for row in rows]

    async def delete_snapshots(self, snapshot_date: date) -> int:
        """Delete every snapshot row for a date."""
        async with self._writing() as conn:
            cursor = await conn.execute(
                "DELETE FROM inventory_snapshots WHERE snapshot_date = ?",
                (snapshot_date.isoformat(),),
            )
            return cursor.rowcount

    @staticmethod
    def _parse_datetime(value: str | None) -> datetime:
        if value:
            try:
                return datetime.fromisoformat(value)
            except (ValueError, TypeError):
                pass
        return utc_now()

    @staticmethod
    def _row_to_product(row: aiosqlite.Row) -> Product:
        """Convert a database row to a Product entity."""
        return Product(
            id=row["id"],
            name=row["name"],
            sku=row["sku"],
            current_stock=float(row["current_stock"]),
            average_cost=float(row["average_cost"]),
            status=ProductStatus(row["status"]),
            created_at=SQLiteInventoryStore._parse_datetime(row["created_at"]),
            updated_at=SQLiteInventoryStore._parse_datetime(row["updated_at"]),
        )

    @staticmethod
    def _row_to_movement(row: aiosqlite.Row) -> InventoryMovement:
        """Convert a database row to an InventoryMovement entity."""
        return InventoryMovement(
            id=row["id"],
            product_id=row["product_id"],
            type=MovementType(row["type"]),
            quantity=float(row["quantity"]),
            unit_cost=float(row["unit_cost"]) if row["unit_cost"] is not None else None,
            price=float(row["price"]) if row["price"] is not None else None,
            # no fallback: replay order depends on it
            transaction_date=datetime.fromisoformat(row["transaction_date"]),
            created_at=SQLiteInventoryStore._parse_datetime(row["created_at"]),
            status=MovementStatus(row["status"]),
            transaction_id=row["transaction_id"],
            entity_name=row["entity_name"],
            entity_document=row["entity_document"],
            document_number=row["document_number"],
            description=row["description"],
        )

    @staticmethod
    def _row_to_snapshot(row: aiosqlite.Row) -> InventorySnapshot:
        """Convert a database row to an InventorySnapshot entity."""
        return InventorySnapshot(
            product_id=row["product_id"],
            snapshot_date=date.fromisoformat(row["snapshot_date"]),
            closing_stock=float(row["closing_stock"]),
            closing_average_cost=float(row["closing_average_cost"]),
            created_at=SQLiteInventoryStore._parse_datetime(row["created_at"]),
        )
