"""Valuation value objects and report entities."""

from dataclasses import dataclass, field
from datetime import date


@dataclass(frozen=True)
class ValuationState:
    """Stock level and moving weighted-average cost at some point of a replay."""

    stock: float = 0.0
    average_cost: float = 0.0

    @property
    def value(self) -> float:
        """Valuation contribution; negative or zero stock counts as zero."""
        if self.stock <= 0:
            return 0.0
        return self.stock * self.average_cost


@dataclass(frozen=True)
class ProductState:
    """Live valuation of a product after a mutation or resync."""

    product_id: int
    current_stock: float
    average_cost: float
    # Latest snapshot whose period the mutation rewrote; it is not refreshed
    stale_snapshot_date: date | None = None

    @property
    def value(self) -> float:
        if self.current_stock <= 0:
            return 0.0
        return self.current_stock * self.average_cost


@dataclass
class ValuationLine:
    """One product's contribution to an inventory valuation."""

    product_id: int
    stock: float
    average_cost: float
    value: float
    snapshot_date: date | None = None  # replay starting point, if any


@dataclass
class InventoryValuation:
    """Inventory value as of a date with the per-product breakdown."""

    as_of: date
    use_snapshot: bool
    lines: list[ValuationLine] = field(default_factory=list)

    @property
    def total(self) -> float:
        return sum(line.value for line in self.lines)


@dataclass
class GrowthPeriod:
    """Change of inventory value between two dates."""

    start: date
    end: date
    start_value: float
    end_value: float

    @property
    def growth(self) -> float:
        return self.end_value - self.start_value


@dataclass
class EquivalenceCheck:
    """Comparison of snapshot-assisted and full-replay valuations."""

    as_of: date
    with_snapshot: float
    without_snapshot: float
    epsilon: float

    @property
    def difference(self) -> float:
        return self.with_snapshot - self.without_snapshot

    @property
    def consistent(self) -> bool:
        return abs(self.difference) < self.epsilon


@dataclass
class ProductDrift:
    """Disagreement between a stored state and a replay for one product."""

    product_id: int
    stored_stock: float
    stored_cost: float
    replayed_stock: float
    replayed_cost: float

    @property
    def value_difference(self) -> float:
        return (
            ValuationState(self.stored_stock, self.stored_cost).value
            - ValuationState(self.replayed_stock, self.replayed_cost).value
        )


@dataclass
class SnapshotVerification:
    """Result of checking a stored snapshot against a full replay."""

    snapshot_date: date
    products_checked: int
    snapshot_total: float
    replay_total: float
    drifts: list[ProductDrift] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.drifts


@dataclass
class ConsistencyReport:
    """Live denormalized totals compared against replay of the movement log."""

    products_checked: int
    live_total: float
    replay_total: float
    drifts: list[ProductDrift] = field(default_factory=list)

    @property
    def difference(self) -> float:
        return self.replay_total - self.live_total

    @property
    def consistent(self) -> bool:
        return not self.drifts


@dataclass
class RescaleResult:
    """Outcome of an administrative snapshot cost correction."""

    snapshot_date: date
    factor: float
    products: int
    original_total: float
    new_total: float
    expected_total: float | None
    applied: bool

    @property
    def target_difference(self) -> float | None:
        if self.expected_total is None:
            return None
        return self.new_total - self.expected_total


@dataclass
class BatchResult:
    """Per-product outcome of a bulk resync."""

    states: list[ProductState] = field(default_factory=list)
    failures: dict[int, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> int:
        return len(self.states)
