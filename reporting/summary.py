from __future__ import annotations
from typing import Dict, Any

import pandas as pd

from engine.vault import Vault


def vault_summary(vault: Vault) -> Dict[str, Any]:
    engine = vault.engine
    return {
        "total_supply": vault.total_supply,
        "aggregate_value": engine.aggregate_value(),
        "idle_balance": engine.idle_balance(),
        "share_price": vault.share_price(),
        "fee_rate_bps": vault.fee_rate,
        "holders": vault.holders(),
        "allocations": dict(zip(engine.allocations.handles, engine.allocations.weights)),
    }


def allocation_frame(vault: Vault) -> pd.DataFrame:
    """One row per allocation: target weight, current weight, balance."""
    engine = vault.engine
    return pd.DataFrame(
        {
            "handle": list(engine.allocations.handles),
            "target_weight": list(engine.allocations.weights),
            "current_weight": engine.current_weights(),
            "balance": engine.balances(),
        },
        columns=["handle", "target_weight", "current_weight", "balance"],
    ).set_index("handle")
