"""
Valuation replay engine.

Moving weighted-average cost derived by folding an ordered movement log:

- ENTRADA blends the new lot into the running average, weighted by value.
- SALIDA, RETIRO and AUTO-CONSUMO reduce stock and leave the cost untouched.

Everything here is pure. Stock may go negative part way through a historical
replay; the average cost is kept as is so later inbound lots blend correctly,
and only the reported value treats non-positive stock as worth zero.
"""

from collections.abc import Iterable
from datetime import datetime

from kardex.core.entities.inventory import InventoryMovement
from kardex.core.entities.valuation import ValuationState

EMPTY_STATE = ValuationState(stock=0.0, average_cost=0.0)


def movement_sort_key(movement: InventoryMovement) -> tuple[datetime, datetime, int]:
    """Replay order: transaction_date, then created_at, then id."""
    return (
        movement.transaction_date,
        movement.created_at,
        movement.id if movement.id is not None else 0,
    )


def apply_movement(state: ValuationState, movement: InventoryMovement) -> ValuationState:
    """Apply a single movement to a valuation state."""
    if movement.type.is_inbound:
        total_value = state.stock * state.average_cost
        entry_value = movement.quantity * (movement.unit_cost or 0.0)
        stock = state.stock + movement.quantity
        cost = (total_value + entry_value) / stock if stock > 0 else 0.0
        return ValuationState(stock=stock, average_cost=cost)

    return ValuationState(
        stock=state.stock - movement.quantity,
        average_cost=state.average_cost,
    )


def replay(
    movements: Iterable[InventoryMovement],
    start: ValuationState | None = None,
) -> ValuationState:
    """
    Fold an ordered movement sequence into a valuation state.

    Args:
        movements: Movements oldest first (see movement_sort_key)
        start: Starting state, e.g. from a snapshot. Defaults to empty.

    Returns:
        The ending state. Non-active movements are skipped.
    """
    state = start or EMPTY_STATE
    for movement in movements:
        if not movement.is_active:
            continue
        state = apply_movement(state, movement)
    return state


def inventory_value(states: Iterable[ValuationState]) -> float:
    """Aggregate value of many product states."""
    return sum(state.value for state in states)


def round_currency(amount: float, decimals: int = 2) -> float:
    """Round an amount for presentation. Never used inside a replay."""
    return round(amount, decimals)


def within_tolerance(a: float, b: float, epsilon: float) -> bool:
    return abs(a - b) < epsilon
