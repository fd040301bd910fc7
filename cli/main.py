"""Strategy vault CLI.

Provides commands for:
- show: Configured vault state and allocations
- simulate: Run a scripted scenario of deposits, withdrawals and rebalances
- backtest: Share-price simulation over synthetic strategy yields
"""
from __future__ import annotations

import argparse
import sys
from typing import Any, Dict

import pandas as pd
from loguru import logger

from backtest.simulator import compare, generate_synthetic_returns
from common.config_loader import load_all
from common.errors import VaultError
from engine.explanation_engine import explain_moves
from engine.scenario_runner import run_steps
from engine.vault_factory import build_vault, roles_from
from reporting.summary import allocation_frame, vault_summary


def configure_logging(verbose: bool) -> None:
    """Route loguru to stderr at WARNING (DEBUG with --verbose)."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def print_summary(summary: Dict[str, Any]) -> None:
    print("\nSummary:")
    for k, v in summary.items():
        if isinstance(v, dict):
            print(f"  {k}:")
            for kk, vv in v.items():
                print(f"    {kk}: {vv:,}")
        elif isinstance(v, float):
            print(f"  {k}: {v:.6f}")
        else:
            print(f"  {k}: {v:,}")


def cmd_show(args) -> int:
    """Handle show command: configured vault state."""
    cfg = load_all(args.config, args.scenario)
    vault = build_vault(cfg.vault)

    print(f"Vault ({vault.engine.base_asset})")
    print("=" * 50)
    print_summary(vault_summary(vault))

    print("\nAllocations:")
    print(allocation_frame(vault).to_string())
    return 0


def cmd_simulate(args) -> int:
    """Handle simulate command: run scenario steps against a fresh vault."""
    cfg = load_all(args.config, args.scenario)
    vault = build_vault(cfg.vault)
    steps = cfg.scenario.get("steps") or []

    print(f"Scenario: {len(steps)} steps")
    print("=" * 50)

    try:
        results = run_steps(vault, steps, roles_from(cfg.vault))
    except VaultError as e:
        print(f"Error: {e}")
        return 1

    for i, r in enumerate(results, start=1):
        print(f"{i:>3}. {r.op:16} {r.detail}")
        if r.moves:
            lines = explain_moves(r.moves) if args.explain else [str(m) for m in r.moves]
            for line in lines:
                print("       " + line)

    print_summary(vault_summary(vault))
    print("\nAllocations:")
    print(allocation_frame(vault).to_string())
    return 0


def cmd_backtest(args) -> int:
    """Handle backtest command: share-price simulation."""
    cfg = load_all(args.config, args.scenario)
    strategies = cfg.vault.get("strategies") or []

    if args.returns:
        df = pd.read_csv(args.returns)
        if "date" not in df.columns:
            raise SystemExit("CSV must contain 'date' column")
        df["date"] = pd.to_datetime(df["date"])
        returns = df.set_index("date").sort_index()
    else:
        returns = generate_synthetic_returns(strategies, seed=args.seed)

    scenarios_to_run = [args.mode] if args.mode else None
    results = compare(cfg.vault, returns, scenarios=scenarios_to_run)

    print("Backtest Results")
    print("=" * 60)

    for r in results:
        print(f"\nScenario: {r.scenario}")
        print("-" * 40)
        print(f"  CAGR:               {r.cagr:>8.2%}")
        print(f"  Annualized Vol:     {r.vol:>8.2%}")
        print(f"  Max Drawdown:       {r.max_drawdown:>8.2%}")
        print(f"  Sharpe Ratio:       {r.sharpe_ratio:>8.2f}")
        print(f"  Rebalances:         {r.num_rebalances:>8}")
        print(f"  Ending Share Price: {r.ending_share_price:>12.6f}")

    return 0


def main():
    """Main entry point."""
    p = argparse.ArgumentParser(
        prog="cli.main",
        description="Strategy vault CLI: multi-strategy share accounting and rebalancing",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # Common arguments for all commands
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default="config/vault.yaml", help="Vault config file")
    common.add_argument("--scenario", default="config/scenario.yaml", help="Scenario steps file")
    common.add_argument("--verbose", action="store_true", help="Log every fund movement")

    show = sub.add_parser("show", parents=[common], help="Show configured vault")
    show.set_defaults(func=cmd_show)

    sim = sub.add_parser("simulate", parents=[common], help="Run scenario steps")
    sim.add_argument("--explain", action="store_true", help="Include reasons for each fund movement")
    sim.set_defaults(func=cmd_simulate)

    bt = sub.add_parser("backtest", parents=[common], help="Run share-price backtest")
    bt.add_argument(
        "--mode",
        choices=["rebalanced", "buy_and_hold"],
        default=None,
        help="Scenario to run (default: all)",
    )
    bt.add_argument("--returns", default=None, help="Path to CSV with daily strategy returns")
    bt.add_argument("--seed", type=int, default=7, help="Seed for synthetic returns")
    bt.set_defaults(func=cmd_backtest)

    args = p.parse_args()
    configure_logging(args.verbose)
    raise SystemExit(args.func(args))


if __name__ == "__main__":
    main()
