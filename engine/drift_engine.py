from __future__ import annotations
from typing import List, Sequence

from policy.types import SCALE


def current_weights(balances: Sequence[int], total_value: int) -> List[int]:
    """Each balance's share of ``total_value`` in basis points, floored."""
    if total_value <= 0:
        return [0 for _ in balances]
    return [b * SCALE // total_value for b in balances]


def weight_deltas(old: Sequence[int], new: Sequence[int]) -> List[int]:
    return [n - o for o, n in zip(old, new)]
