"""Scripted vault operations, as listed in a scenario file."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from engine.move_planner import Move
from engine.vault import Vault


@dataclass
class StepResult:
    op: str
    detail: str
    moves: List[Move] = field(default_factory=list)


def run_step(vault: Vault, step: Dict[str, Any], roles: Dict[str, str]) -> StepResult:
    op = step["op"]
    engine = vault.engine
    asset = step.get("asset", engine.base_asset)
    slippage = step.get("slippage")

    if op == "deposit":
        shares = vault.deposit(step["caller"], asset, int(step["amount"]), slippage)
        return StepResult(op, f"{step['caller']} deposited {step['amount']:,} {asset} -> {shares:,} shares")
    if op == "withdraw":
        out = vault.withdraw(step["caller"], asset, int(step["shares"]), slippage)
        return StepResult(op, f"{step['caller']} redeemed {step['shares']:,} shares -> {out:,} {asset}")
    if op == "update_weights":
        moves = engine.update_strategy_weights(roles["strategy_manager"], step["weights"], slippage)
        return StepResult(op, f"weights -> {step['weights']}", moves)
    if op == "update_strategy":
        moves = engine.update_strategy(roles["strategy_manager"], step["handles"], step["weights"], slippage)
        return StepResult(op, f"strategies -> {dict(zip(step['handles'], step['weights']))}", moves)
    if op == "accrue":
        engine.adapter(step["handle"]).accrue(asset, int(step["amount"]))
        return StepResult(op, f"{step['handle']} accrued {step['amount']:,} {asset}")
    raise ValueError(f"Unknown scenario op: {op}")


def run_steps(vault: Vault, steps: List[Dict[str, Any]], roles: Dict[str, str]) -> List[StepResult]:
    return [run_step(vault, s, roles) for s in steps]
