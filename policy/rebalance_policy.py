from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Any, Sequence

@dataclass(frozen=True)
class RebalancePolicy:
    raw: Dict[str, Any]

    @property
    def drift_abs_bps(self) -> int:
        return int(self.raw.get("rebalance", {}).get("drift_absolute_bps", 200))

    @property
    def drift_rel(self) -> float:
        return float(self.raw.get("rebalance", {}).get("drift_relative", 0.20))

def is_drifted(current: int, target: int, drift_abs_bps: int, drift_rel: float) -> bool:
    if target <= 0:
        return False
    abs_d = abs(current - target)
    rel_d = abs_d / target
    return abs_d > drift_abs_bps or rel_d > drift_rel

def any_drifted(current: Sequence[int], targets: Sequence[int], pol: RebalancePolicy) -> bool:
    return any(is_drifted(c, t, pol.drift_abs_bps, pol.drift_rel) for c, t in zip(current, targets))
