"""Abstract interface for inventory storage."""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import date, datetime

from kardex.core.entities.inventory import (
    InventoryMovement,
    InventorySnapshot,
    MovementStatus,
    Product,
)


class IInventoryStore(ABC):
    """
    Interface for product, movement log and snapshot persistence.

    A store is an explicit handle on one store's database. Services never
    look up a "current" store on their own; they receive the one to use.
    """

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager["IInventoryStore"]:
        """
        Open a serializable unit of work.

        Yields a store bound to the transaction. Everything done through it
        commits together on exit or rolls back if the block raises. Opening
        a transaction on an already bound store reuses the outer one.
        """
        pass

    # Products

    @abstractmethod
    async def create_product(self, product: Product) -> Product:
        """Create a new product."""
        pass

    @abstractmethod
    async def get_product(self, product_id: int) -> Product | None:
        """Get product by ID."""
        pass

    @abstractmethod
    async def list_products(self, active_only: bool = False) -> list[Product]:
        """List products ordered by ID."""
        pass

    @abstractmethod
    async def list_product_ids(self) -> list[int]:
        """List the IDs of every product, ordered."""
        pass

    @abstractmethod
    async def update_product_state(
        self, product_id: int, current_stock: float, average_cost: float
    ) -> None:
        """Overwrite the denormalized live valuation of a product."""
        pass

    # Movements

    @abstractmethod
    async def add_movement(self, movement: InventoryMovement) -> InventoryMovement:
        """Append a movement to the log."""
        pass

    @abstractmethod
    async def get_movement(self, movement_id: int) -> InventoryMovement | None:
        """Get movement by ID, whatever its status."""
        pass

    @abstractmethod
    async def set_movement_status(
        self, movement_id: int, status: MovementStatus
    ) -> None:
        """Change the status of a movement (annul / supersede)."""
        pass

    @abstractmethod
    async def list_movements(
        self,
        product_id: int,
        after: date | None = None,
        through: date | None = None,
    ) -> list[InventoryMovement]:
        """
        Get the Active movements of a product in replay order.

        Ordered by (transaction_date, created_at, id). ``after`` is
        exclusive and ``through`` inclusive, both on the calendar date of
        transaction_date.
        """
        pass

    @abstractmethod
    async def latest_movement_date(self, product_id: int) -> datetime | None:
        """Get the transaction_date of the last Active movement of a product."""
        pass

    # Snapshots

    @abstractmethod
    async def latest_snapshot_before(
        self, product_id: int, as_of: date
    ) -> InventorySnapshot | None:
        """Get the latest snapshot of a product with snapshot_date <= as_of."""
        pass

    @abstractmethod
    async def write_snapshot(self, snapshot: InventorySnapshot) -> InventorySnapshot:
        """Insert or replace the snapshot for (product_id, snapshot_date)."""
        pass

    @abstractmethod
    async def list_snapshots(self, snapshot_date: date) -> list[InventorySnapshot]:
        """Get every snapshot row taken on a date."""
        pass

    @abstractmethod
    async def list_snapshot_dates(self) -> list[date]:
        """Get the distinct snapshot dates, oldest first."""
        pass

    @abstractmethod
    async def delete_snapshots(self, snapshot_date: date) -> int:
        """Delete every snapshot row for a date. Returns rows removed."""
        pass
