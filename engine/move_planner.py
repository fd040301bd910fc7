"""Fund movement planning.

Splits deposits and redemptions across allocations with integer arithmetic.
Rounding rules:
- every split is floor division;
- on deposit, the last allocation takes whatever the engine still holds after
  the earlier splits, so no dust is left behind.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from common.errors import ValidationError
from policy.types import SCALE

DEPOSIT = "DEPOSIT"
WITHDRAW = "WITHDRAW"


@dataclass(frozen=True)
class Move:
    """A single transfer between the engine and one strategy adapter."""

    handle: str
    action: str  # DEPOSIT/WITHDRAW
    amount: int
    reason: str

    def __str__(self) -> str:
        """Format move for display."""
        return f"{self.action} {self.amount:,} {self.handle}"


def split_deposit(
    amount: int,
    balances: Sequence[int],
    weights: Sequence[int],
    available: int,
) -> List[int]:
    """Split a deposit across allocations.

    Args:
        amount: Newly deposited amount.
        balances: Current adapter balances, one per allocation.
        weights: Target weights in basis points, one per allocation.
        available: Engine holdings after the deposit was pulled in. The last
            allocation receives ``available`` minus the earlier splits.

    Returns:
        Amount routed to each allocation, in allocation order.
    """
    if not balances:
        return []
    if len(balances) != len(weights):
        raise ValidationError("LengthMismatch", "balances and weights differ in length")

    aggregate = sum(balances)
    parts: List[int] = []
    for i in range(len(balances) - 1):
        if aggregate == 0:
            parts.append(amount * weights[i] // SCALE)
        else:
            parts.append(amount * balances[i] // aggregate)
    parts.append(available - sum(parts))
    return parts


def split_redemption(shares: int, balances: Sequence[int], total_supply: int) -> List[int]:
    """Amount released by each allocation for ``shares`` of ``total_supply``."""
    if total_supply <= 0:
        raise ValidationError("ZeroAmount", "no shares outstanding")
    return [shares * b // total_supply for b in balances]


def deposit_moves(handles: Sequence[str], parts: Sequence[int], empty_pool: bool) -> List[Move]:
    reason = "Deposit split by target weight" if empty_pool else "Deposit split by current value share"
    return [Move(h, DEPOSIT, p, reason) for h, p in zip(handles, parts) if p > 0]
