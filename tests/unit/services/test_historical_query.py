"""Tests for HistoricalQueryService."""

from datetime import date

import pytest

from kardex.core.entities.inventory import (
    InventorySnapshot,
    MovementStatus,
    MovementType,
    Product,
)
from kardex.core.exceptions import ProductNotFoundError, SnapshotInconsistencyError
from kardex.core.services import HistoricalQueryService, SnapshotManager


@pytest.fixture
def query(store) -> HistoricalQueryService:
    return HistoricalQueryService(store)


@pytest.fixture
async def history(store, product, make_movement):
    """
    One product across two years:

    2023-03-01  ENTRADA 10 @ 20   -> 10 @ 20  (200)
    2023-09-01  SALIDA   4        ->  6 @ 20  (120)
    2024-02-01  ENTRADA  6 @ 30   -> 12 @ 25  (300)
    2024-05-01  RETIRO   2        -> 10 @ 25  (250)
    """
    for args in [
        (MovementType.ENTRADA, 10, 20.0, "2023-03-01"),
        (MovementType.SALIDA, 4, None, "2023-09-01"),
        (MovementType.ENTRADA, 6, 30.0, "2024-02-01"),
        (MovementType.RETIRO, 2, None, "2024-05-01"),
    ]:
        type, qty, cost, day = args
        await store.add_movement(make_movement(product.id, type, qty, cost, day=day))
    return product


class TestValueAtDate:
    @pytest.mark.parametrize(
        "as_of, expected",
        [
            (date(2023, 1, 1), 0.0),
            (date(2023, 3, 1), 200.0),
            (date(2023, 12, 31), 120.0),
            (date(2024, 2, 1), 300.0),
            (date(2024, 12, 31), 250.0),
        ],
    )
    async def test_full_replay(self, query, history, as_of, expected):
        assert await query.value_at_date(as_of, use_snapshot=False) == pytest.approx(expected)

    async def test_date_is_inclusive(self, query, history):
        state = await query.product_state_at(history.id, date(2023, 9, 1), use_snapshot=False)
        assert state.stock == 6

    async def test_snapshot_and_replay_agree(self, query, store, history):
        await SnapshotManager(store).create_snapshot(date(2023, 12, 31))

        for as_of in [date(2023, 12, 31), date(2024, 3, 1), date(2024, 12, 31)]:
            with_snapshot = await query.value_at_date(as_of, use_snapshot=True)
            without = await query.value_at_date(as_of, use_snapshot=False)
            assert abs(with_snapshot - without) < 0.01

    async def test_lines_record_snapshot_used(self, query, store, history):
        await SnapshotManager(store).create_snapshot(date(2023, 12, 31))

        valuation = await query.valuation_at_date(date(2024, 12, 31), use_snapshot=True)

        assert valuation.use_snapshot
        assert valuation.lines[0].snapshot_date == date(2023, 12, 31)
        assert valuation.lines[0].stock == 10
        assert valuation.lines[0].average_cost == pytest.approx(25.0)

    async def test_later_snapshot_is_not_used(self, query, store, history):
        await SnapshotManager(store).create_snapshot(date(2024, 12, 31))

        valuation = await query.valuation_at_date(date(2023, 12, 31), use_snapshot=True)

        assert valuation.lines[0].snapshot_date is None
        assert valuation.total == pytest.approx(120.0)

    async def test_deleting_snapshot_does_not_change_value(self, query, store, history):
        manager = SnapshotManager(store)
        await manager.create_snapshot(date(2023, 12, 31))
        before = await query.value_at_date(date(2024, 12, 31))

        await manager.delete_snapshot(date(2023, 12, 31))

        assert await query.value_at_date(date(2024, 12, 31)) == pytest.approx(before)

    async def test_default_mode_from_constructor(self, store, history):
        await store.write_snapshot(
            InventorySnapshot(
                product_id=history.id,
                snapshot_date=date(2023, 12, 31),
                closing_stock=100,
                closing_average_cost=1.0,
            )
        )
        as_of = date(2024, 1, 15)

        assert await HistoricalQueryService(store, use_snapshots=True).value_at_date(as_of) == 100
        assert await HistoricalQueryService(store, use_snapshots=False).value_at_date(
            as_of
        ) == pytest.approx(120.0)

    async def test_unknown_product(self, query, pool):
        with pytest.raises(ProductNotFoundError):
            await query.product_state_at(77, date(2024, 1, 1))

    async def test_annulled_movements_ignored(self, query, store, history):
        sale = (await store.list_movements(history.id))[1]
        await store.set_movement_status(sale.id, MovementStatus.ANNULLED)

        assert await query.value_at_date(date(2023, 12, 31), use_snapshot=False) == 200.0


class TestGrowth:
    async def test_growth_between(self, query, history):
        growth = await query.growth_between(date(2023, 12, 31), date(2024, 12, 31))
        assert growth == pytest.approx(130.0)

    async def test_growth_series_sorts_and_dedupes(self, query, history):
        periods = await query.growth_series(
            [date(2024, 12, 31), date(2022, 12, 31), date(2023, 12, 31), date(2024, 12, 31)]
        )

        assert [(p.start, p.end) for p in periods] == [
            (date(2022, 12, 31), date(2023, 12, 31)),
            (date(2023, 12, 31), date(2024, 12, 31)),
        ]
        assert periods[0].growth == pytest.approx(120.0)
        assert periods[1].growth == pytest.approx(130.0)

    async def test_growth_series_single_date(self, query, history):
        assert await query.growth_series([date(2024, 1, 1)]) == []


class TestEquivalence:
    async def test_consistent(self, query, store, history):
        await SnapshotManager(store).create_snapshot(date(2023, 12, 31))

        check = await query.verify_equivalence(date(2024, 12, 31))

        assert check.consistent
        assert check.without_snapshot == pytest.approx(250.0)

    async def test_stale_snapshot_detected(self, query, store, history):
        await store.write_snapshot(
            InventorySnapshot(
                product_id=history.id,
                snapshot_date=date(2023, 12, 31),
                closing_stock=6,
                closing_average_cost=10.0,
            )
        )

        check = await query.verify_equivalence(date(2024, 12, 31))
        assert not check.consistent

        with pytest.raises(SnapshotInconsistencyError):
            await query.verify_equivalence(date(2024, 12, 31), strict=True)


class TestLiveValue:
    async def test_only_active_products(self, query, store):
        await store.create_product(Product(name="A", current_stock=2, average_cost=5.0))
        await store.create_product(
            Product(name="B", current_stock=3, average_cost=5.0, status="Inactive")
        )
        assert await query.live_value() == 10.0
