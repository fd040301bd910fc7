from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional

SCALE = 10_000  # basis-point denominator for weights and fee rates


@dataclass(frozen=True)
class AssetInfo:
    enabled: bool
    handler: Optional[Any] = None  # StrategyAdapter serving this handle
