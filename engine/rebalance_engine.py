"""Rebalance planning.

Computes the fund movements needed to move a set of strategy balances from
their current weights to new target weights:

1. ``total_value = sum(balances) + idle``.
2. ``old_weight_i = balance_i * SCALE // total_value``.
3. Every allocation whose weight drops releases
   ``balance_i * (old_i - new_i) // old_i`` into the idle balance.
4. The idle balance is then shared among the allocations whose weight rises,
   in proportion ``(new_i - old_i) / sum_increase``; the last of them takes
   whatever remains.

Planning is pure. The engine validates the plan before moving anything and
only then executes the withdrawals and, from the realized idle balance, the
deposits.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from common.errors import ExecutionError, ValidationError
from engine.drift_engine import current_weights
from engine.move_planner import DEPOSIT, WITHDRAW, Move


@dataclass
class RebalancePlan:
    """Withdrawals to execute first, then the increase targets for the freed funds."""

    total_value: int
    idle: int
    old_weights: List[int]
    new_weights: List[int]
    withdrawals: List[Move] = field(default_factory=list)
    increases: List[Tuple[str, int]] = field(default_factory=list)  # (handle, weight increase)

    @property
    def sum_increase(self) -> int:
        return sum(d for _, d in self.increases)

    @property
    def expected_idle(self) -> int:
        return self.idle + sum(m.amount for m in self.withdrawals)


def plan_rebalance(
    handles: Sequence[str],
    balances: Sequence[int],
    new_weights: Sequence[int],
    idle: int,
) -> RebalancePlan:
    """Plan a rebalance towards ``new_weights``.

    Args:
        handles: Strategy handles in allocation order.
        balances: Current adapter balances.
        new_weights: Target weights in basis points.
        idle: Base-asset balance held by the engine outside any adapter.

    Returns:
        RebalancePlan with withdrawals and increase targets.

    Raises:
        ExecutionError: If funds would be freed (or are already idle) but no
            allocation's weight increases, leaving nowhere to place them.
    """
    if not (len(handles) == len(balances) == len(new_weights)):
        raise ValidationError("LengthMismatch", "handles, balances and weights differ in length")

    total_value = sum(balances) + idle
    old_weights = current_weights(balances, total_value)
    plan = RebalancePlan(
        total_value=total_value,
        idle=idle,
        old_weights=old_weights,
        new_weights=list(new_weights),
    )

    for i, (handle, old, new) in enumerate(zip(handles, old_weights, new_weights)):
        if new < old:
            amount = balances[i] * (old - new) // old
            if amount > 0:
                plan.withdrawals.append(
                    Move(handle, WITHDRAW, amount, f"Weight {old} -> {new} bps")
                )
        elif new > old:
            plan.increases.append((handle, new - old))

    if plan.sum_increase == 0 and plan.expected_idle > 0:
        raise ExecutionError(
            "InvalidExecution",
            f"{plan.expected_idle} would be left idle with no allocation to increase",
        )
    return plan


def distribute_idle(idle: int, increases: Sequence[Tuple[str, int]]) -> List[Move]:
    """Share ``idle`` among increasing allocations; the last absorbs the remainder."""
    total_increase = sum(d for _, d in increases)
    if idle <= 0 or total_increase <= 0:
        return []

    moves: List[Move] = []
    placed = 0
    for i, (handle, delta) in enumerate(increases):
        if i == len(increases) - 1:
            amount = idle - placed
        else:
            amount = idle * delta // total_increase
        placed += amount
        if amount > 0:
            moves.append(Move(handle, DEPOSIT, amount, f"Weight increase of {delta} bps"))
    return moves
