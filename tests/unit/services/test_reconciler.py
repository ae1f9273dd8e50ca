"""Tests for InventoryReconciler."""

from datetime import date, datetime

import pytest

from kardex.core.entities.inventory import (
    InventoryMovement,
    MovementStatus,
    MovementType,
    Product,
)
from kardex.core.exceptions import (
    BatchOperationError,
    InsufficientStockError,
    MovementNotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from kardex.core.services import InventoryReconciler, SnapshotManager


@pytest.fixture
def reconciler(store) -> InventoryReconciler:
    return InventoryReconciler(store)


@pytest.fixture
async def stocked(reconciler, product, make_movement):
    """Product holding 10 units at 20."""
    await reconciler.apply_movement(make_movement(product.id, MovementType.ENTRADA, 10, 20.0))
    return product


class TestApplyMovement:
    async def test_purchase_updates_live_state(self, reconciler, store, stocked, make_movement):
        state = await reconciler.apply_movement(
            make_movement(stocked.id, MovementType.ENTRADA, 5, 22.0, day="2024-01-11")
        )

        assert state.current_stock == 15
        assert state.average_cost == pytest.approx(20.67, abs=0.005)
        product = await store.get_product(stocked.id)
        assert product.current_stock == 15
        assert product.average_cost == pytest.approx(state.average_cost)

    async def test_sale_keeps_cost(self, reconciler, stocked, make_movement):
        state = await reconciler.apply_movement(
            make_movement(stocked.id, MovementType.SALIDA, 3, day="2024-01-11")
        )
        assert state.current_stock == 7
        assert state.average_cost == pytest.approx(20.0)

    async def test_oversell_is_rejected_without_side_effects(
        self, reconciler, store, stocked, make_movement
    ):
        with pytest.raises(InsufficientStockError) as exc_info:
            await reconciler.apply_movement(
                make_movement(stocked.id, MovementType.SALIDA, 15, day="2024-01-11")
            )

        assert exc_info.value.details["available"] == 10
        product = await store.get_product(stocked.id)
        assert product.current_stock == 10
        assert product.average_cost == pytest.approx(20.0)
        assert len(await store.list_movements(stocked.id)) == 1

    async def test_unknown_product(self, reconciler, make_movement, pool):
        with pytest.raises(ProductNotFoundError):
            await reconciler.apply_movement(make_movement(999, MovementType.ENTRADA, 1, 1.0))

    async def test_inbound_without_cost_is_rejected_by_default(
        self, reconciler, product, make_movement
    ):
        with pytest.raises(ValidationError) as exc_info:
            await reconciler.apply_movement(make_movement(product.id, MovementType.ENTRADA, 1))
        assert exc_info.value.details["field"] == "unit_cost"

    async def test_inbound_without_cost_allowed_when_configured(
        self, store, product, make_movement
    ):
        reconciler = InventoryReconciler(store, require_inbound_cost=False)
        state = await reconciler.apply_movement(make_movement(product.id, MovementType.ENTRADA, 4))
        assert state.current_stock == 4
        assert state.average_cost == 0.0

    async def test_negative_cost_is_rejected(self, reconciler, product, make_movement):
        with pytest.raises(ValidationError):
            await reconciler.apply_movement(
                make_movement(product.id, MovementType.ENTRADA, 1, -5.0)
            )

    async def test_non_active_movement_is_rejected(self, reconciler, product, make_movement):
        movement = make_movement(
            product.id, MovementType.ENTRADA, 1, 1.0, status=MovementStatus.ANNULLED
        )
        with pytest.raises(ValidationError):
            await reconciler.apply_movement(movement)

    async def test_backdated_movement_triggers_replay(
        self, reconciler, store, product, make_movement
    ):
        await reconciler.apply_movement(
            make_movement(product.id, MovementType.ENTRADA, 10, 10.0, day="2024-01-01")
        )
        await reconciler.apply_movement(
            make_movement(product.id, MovementType.SALIDA, 10, day="2024-01-05")
        )
        await reconciler.apply_movement(
            make_movement(product.id, MovementType.ENTRADA, 10, 30.0, day="2024-01-10")
        )
        # A purchase dated before the sale changes the average the sale left behind
        state = await reconciler.apply_movement(
            make_movement(product.id, MovementType.ENTRADA, 10, 20.0, day="2024-01-03")
        )

        # 10@10 + 10@20 -> 20@15, sell 10 -> 10@15, + 10@30 -> 20@22.5
        assert state.current_stock == 20
        assert state.average_cost == pytest.approx(22.5)
        product = await store.get_product(product.id)
        assert product.average_cost == pytest.approx(22.5)


class TestRegisterTransaction:
    async def test_shared_transaction_id(self, reconciler, store, stocked):
        other = await store.create_product(Product(name="Aceite", sku="ACE-001"))
        when = datetime(2024, 1, 11, 12)

        states = await reconciler.register_transaction(
            [
                InventoryMovement(
                    product_id=stocked.id, type=MovementType.SALIDA, quantity=2, transaction_date=when
                ),
                InventoryMovement(
                    product_id=other.id,
                    type=MovementType.ENTRADA,
                    quantity=4,
                    unit_cost=3.0,
                    transaction_date=when,
                ),
            ]
        )

        assert [s.current_stock for s in states] == [8, 4]
        first = (await store.list_movements(stocked.id))[-1]
        second = (await store.list_movements(other.id))[0]
        assert first.transaction_id is not None
        assert first.transaction_id == second.transaction_id

    async def test_all_or_nothing(self, reconciler, store, stocked, make_movement):
        with pytest.raises(InsufficientStockError):
            await reconciler.register_transaction(
                [
                    make_movement(stocked.id, MovementType.SALIDA, 4, day="2024-01-11"),
                    make_movement(stocked.id, MovementType.SALIDA, 7, day="2024-01-11"),
                ]
            )

        product = await store.get_product(stocked.id)
        assert product.current_stock == 10
        assert len(await store.list_movements(stocked.id)) == 1

    async def test_empty(self, reconciler):
        with pytest.raises(ValidationError):
            await reconciler.register_transaction([])


class TestAnnulAndSupersede:
    async def test_annul_sale_restores_stock(self, reconciler, store, stocked, make_movement):
        await reconciler.apply_movement(
            make_movement(stocked.id, MovementType.SALIDA, 3, day="2024-01-11")
        )
        sale = (await store.list_movements(stocked.id))[-1]

        state = await reconciler.annul_movement(sale.id)

        assert state.current_stock == 10
        annulled = await store.get_movement(sale.id)
        assert annulled.status is MovementStatus.ANNULLED

    async def test_annul_purchase_already_sold_is_rejected(
        self, reconciler, store, stocked, make_movement
    ):
        await reconciler.apply_movement(
            make_movement(stocked.id, MovementType.SALIDA, 8, day="2024-01-11")
        )
        purchase = (await store.list_movements(stocked.id))[0]

        with pytest.raises(InsufficientStockError):
            await reconciler.annul_movement(purchase.id)

        assert (await store.get_movement(purchase.id)).status is MovementStatus.ACTIVE
        assert (await store.get_product(stocked.id)).current_stock == 2

    async def test_annul_twice(self, reconciler, store, stocked):
        purchase = (await store.list_movements(stocked.id))[0]
        await reconciler.annul_movement(purchase.id)

        with pytest.raises(ValidationError):
            await reconciler.annul_movement(purchase.id)

    async def test_annul_to_active_is_rejected(self, reconciler, stocked):
        with pytest.raises(ValidationError):
            await reconciler.annul_movement(1, status=MovementStatus.ACTIVE)

    async def test_annul_unknown(self, reconciler, stocked):
        with pytest.raises(MovementNotFoundError):
            await reconciler.annul_movement(12345)

    async def test_supersede_corrects_cost(self, reconciler, store, stocked, make_movement):
        purchase = (await store.list_movements(stocked.id))[0]

        state = await reconciler.supersede_movement(
            purchase.id, make_movement(stocked.id, MovementType.ENTRADA, 10, 25.0)
        )

        assert state.current_stock == 10
        assert state.average_cost == pytest.approx(25.0)
        assert (await store.get_movement(purchase.id)).status is MovementStatus.SUPERSEDED
        active = await store.list_movements(stocked.id)
        assert len(active) == 1
        assert active[0].transaction_id == purchase.transaction_id

    async def test_supersede_other_product_is_rejected(
        self, reconciler, store, stocked, make_movement
    ):
        other = await store.create_product(Product(name="Aceite"))
        purchase = (await store.list_movements(stocked.id))[0]

        with pytest.raises(ValidationError):
            await reconciler.supersede_movement(
                purchase.id, make_movement(other.id, MovementType.ENTRADA, 1, 1.0)
            )


class TestResync:
    async def test_resync_repairs_drift(self, reconciler, store, stocked):
        await store.update_product_state(stocked.id, 999.0, 1.0)

        state = await reconciler.resync(stocked.id)

        assert state.current_stock == 10
        assert state.average_cost == pytest.approx(20.0)

    async def test_resync_is_idempotent(self, reconciler, stocked):
        first = await reconciler.resync(stocked.id)
        second = await reconciler.resync(stocked.id)
        assert first == second

    async def test_resync_unknown_product(self, reconciler, pool):
        with pytest.raises(ProductNotFoundError):
            await reconciler.resync(404)

    async def test_resync_all(self, reconciler, store, stocked):
        other = await store.create_product(Product(name="Aceite"))
        await store.update_product_state(stocked.id, 1.0, 1.0)

        result = await reconciler.resync_all()

        assert result.succeeded == 2
        assert not result.failures
        assert (await store.get_product(stocked.id)).current_stock == 10
        assert (await store.get_product(other.id)).current_stock == 0

    async def test_resync_all_atomic_failure(self, mock_store):
        mock_store.list_product_ids.return_value = [1, 2]
        mock_store.list_movements.side_effect = [[], RuntimeError("corrupt row")]

        with pytest.raises(BatchOperationError) as exc_info:
            await InventoryReconciler(mock_store).resync_all(atomic=True)
        assert exc_info.value.details["product_id"] == 2

    async def test_resync_all_isolated_failure(self, mock_store):
        mock_store.list_product_ids.return_value = [1, 2]
        mock_store.get_product.side_effect = [Product(id=1, name="A"), None]
        mock_store.list_movements.return_value = []

        result = await InventoryReconciler(mock_store).resync_all(atomic=False)

        assert result.succeeded == 1
        assert 2 in result.failures


class TestCheckConsistency:
    async def test_consistent(self, reconciler, stocked):
        report = await reconciler.check_consistency()
        assert report.consistent
        assert report.live_total == pytest.approx(200.0)
        assert report.replay_total == pytest.approx(200.0)

    async def test_reports_drift_without_repairing(self, reconciler, store, stocked):
        await store.update_product_state(stocked.id, 12.0, 20.0)

        report = await reconciler.check_consistency()

        assert not report.consistent
        assert report.drifts[0].product_id == stocked.id
        assert report.difference == pytest.approx(-40.0)
        assert (await store.get_product(stocked.id)).current_stock == 12


class TestStaleSnapshots:
    """Mutations dated inside a snapshotted period report the snapshot."""

    YEAR_END = date(2023, 12, 31)

    @pytest.fixture
    async def snapshotted(self, reconciler, store, product, make_movement):
        await reconciler.apply_movement(
            make_movement(product.id, MovementType.ENTRADA, 10, 20.0, day="2023-06-01")
        )
        await reconciler.apply_movement(
            make_movement(product.id, MovementType.ENTRADA, 5, 30.0, day="2023-07-01")
        )
        await SnapshotManager(store).create_snapshot(self.YEAR_END)
        return product

    async def test_annul_before_snapshot_reports_it(self, reconciler, store, snapshotted):
        second = (await store.list_movements(snapshotted.id))[-1]

        state = await reconciler.annul_movement(second.id)

        assert state.current_stock == 10
        assert state.stale_snapshot_date == self.YEAR_END
        # The checkpoint is left as written
        snapshot = await store.latest_snapshot_before(snapshotted.id, self.YEAR_END)
        assert snapshot.closing_stock == 15

    async def test_backdated_movement_on_snapshot_day(
        self, reconciler, snapshotted, make_movement
    ):
        state = await reconciler.apply_movement(
            make_movement(snapshotted.id, MovementType.SALIDA, 1, day="2023-12-31")
        )
        assert state.stale_snapshot_date == self.YEAR_END

    async def test_supersede_uses_earliest_date(
        self, reconciler, store, snapshotted, make_movement
    ):
        await reconciler.apply_movement(
            make_movement(snapshotted.id, MovementType.SALIDA, 2, day="2024-02-01")
        )
        sale = (await store.list_movements(snapshotted.id))[-1]

        state = await reconciler.supersede_movement(
            sale.id, make_movement(snapshotted.id, MovementType.SALIDA, 2, day="2023-11-15")
        )
        assert state.stale_snapshot_date == self.YEAR_END

    async def test_movement_after_snapshot_is_not_flagged(
        self, reconciler, snapshotted, make_movement
    ):
        state = await reconciler.apply_movement(
            make_movement(snapshotted.id, MovementType.SALIDA, 3, day="2024-01-05")
        )
        assert state.stale_snapshot_date is None

    async def test_without_snapshots(self, reconciler, stocked, make_movement):
        state = await reconciler.apply_movement(
            make_movement(stocked.id, MovementType.SALIDA, 1, day="2024-01-11")
        )
        assert state.stale_snapshot_date is None


class TestFractionalQuantities:
    async def test_selling_remaining_stock_after_rounding(
        self, reconciler, product, make_movement
    ):
        await reconciler.apply_movement(
            make_movement(product.id, MovementType.ENTRADA, 0.7, 10.0, day="2024-01-01")
        )
        await reconciler.apply_movement(
            make_movement(product.id, MovementType.SALIDA, 0.1, day="2024-01-02")
        )
        await reconciler.apply_movement(
            make_movement(product.id, MovementType.SALIDA, 0.2, day="2024-01-03")
        )

        state = await reconciler.apply_movement(
            make_movement(product.id, MovementType.SALIDA, 0.4, day="2024-01-04")
        )

        assert state.current_stock == pytest.approx(0.0, abs=1e-9)
        assert state.value == 0.0

    async def test_oversell_beyond_tolerance_is_still_rejected(
        self, reconciler, product, make_movement
    ):
        await reconciler.apply_movement(
            make_movement(product.id, MovementType.ENTRADA, 0.7, 10.0, day="2024-01-01")
        )
        with pytest.raises(InsufficientStockError):
            await reconciler.apply_movement(
                make_movement(product.id, MovementType.SALIDA, 0.71, day="2024-01-02")
            )

    async def test_annul_leaving_rounding_residue(
        self, reconciler, store, product, make_movement
    ):
        for movement in (
            make_movement(product.id, MovementType.ENTRADA, 0.3, 10.0, day="2024-01-01"),
            make_movement(product.id, MovementType.SALIDA, 0.1, day="2024-01-02"),
            make_movement(product.id, MovementType.SALIDA, 0.2, day="2024-01-03"),
            make_movement(product.id, MovementType.ENTRADA, 5, 12.0, day="2024-01-04"),
        ):
            await reconciler.apply_movement(movement)
        restock = (await store.list_movements(product.id))[-1]

        state = await reconciler.annul_movement(restock.id)

        assert state.current_stock == pytest.approx(0.0, abs=1e-9)
        assert (await store.get_movement(restock.id)).status is MovementStatus.ANNULLED
