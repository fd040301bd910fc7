"""Build an in-memory vault from configuration."""
from __future__ import annotations

from typing import Any, Dict, List

from accounts.access import RoleAccessGate
from accounts.account import AssetBook
from adapters.asset_registry import InMemoryAssetRegistry
from adapters.strategy_adapter import SimulatedStrategyAdapter
from common.errors import ValidationError
from engine.allocation_engine import AllocationEngine
from engine.vault import Vault


def roles_from(raw: Dict[str, Any]) -> Dict[str, str]:
    roles = raw.get("roles") or {}
    return {
        "creator": str(roles.get("creator", "admin")),
        "strategy_manager": str(roles.get("strategy_manager", "strategist")),
        "vault": str(roles.get("vault", "bridge")),
    }


def build_vault(raw: Dict[str, Any]) -> Vault:
    """Wire book, registry, access gate, adapters, engine and vault.

    Strategies with a positive weight become the initial allocation list;
    the rest are only registered. ``funding`` credits user balances of the
    base asset.
    """
    vault_cfg = raw.get("vault") or {}
    base_asset = str(vault_cfg.get("base_asset", "USDC"))
    roles = roles_from(raw)

    book = AssetBook()
    registry = InMemoryAssetRegistry()
    access = RoleAccessGate()
    access.setup_initial_roles(roles["creator"], roles["strategy_manager"], roles["vault"])

    engine = AllocationEngine(book, registry, access, base_asset)

    handles: List[str] = []
    weights: List[int] = []
    for s in raw.get("strategies") or []:
        handle = str(s["handle"])
        adapter = SimulatedStrategyAdapter(
            handle, book, owner=engine.account_id, loss_bps=int(s.get("loss_bps", 0))
        )
        registry.register(handle, adapter, enabled=bool(s.get("enabled", True)))
        weight = int(s.get("weight", 0))
        if weight > 0:
            handles.append(handle)
            weights.append(weight)

    if not handles:
        raise ValidationError("EmptyList", "no strategy with a positive weight configured")
    engine.set_allocations(roles["strategy_manager"], handles, weights)

    vault = Vault(
        engine,
        access,
        allowed_assets=vault_cfg.get("allowed_assets") or [base_asset],
        fee_rate=int(vault_cfg.get("fee_rate_bps", 0)),
    )

    for holder, amount in (raw.get("funding") or {}).items():
        book.credit(str(holder), base_asset, int(amount))
    return vault
