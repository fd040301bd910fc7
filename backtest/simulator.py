"""Vault backtesting simulator.

Runs a configured vault over synthetic per-strategy yield paths and records
the share price.

Metrics computed:
- CAGR (Compound Annual Growth Rate) of the share price
- Annualized volatility
- Maximum drawdown
- Sharpe ratio
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from loguru import logger

from engine.vault_factory import build_vault, roles_from
from policy.rebalance_policy import RebalancePolicy, any_drifted

SEED_INVESTOR = "__backtest_seed__"


@dataclass
class BacktestResult:
    """Results from a vault backtest."""

    scenario: str
    cagr: float
    vol: float
    max_drawdown: float
    sharpe_ratio: float
    num_rebalances: int
    ending_share_price: float
    share_price: pd.Series


def _cagr(series: pd.Series, periods_per_year: int = 252) -> float:
    """Calculate compound annual growth rate.

    Args:
        series: Share price series.
        periods_per_year: Trading periods per year (default 252 for daily).

    Returns:
        CAGR as a decimal (e.g., 0.10 for 10%).
    """
    if len(series) < 2:
        return 0.0
    start = float(series.iloc[0])
    end = float(series.iloc[-1])
    years = (len(series) - 1) / periods_per_year
    return (end / start) ** (1 / years) - 1 if (start > 0 and years > 0) else 0.0


def _vol(returns: pd.Series, periods_per_year: int = 252) -> float:
    return float(returns.std()) * np.sqrt(periods_per_year)


def _max_drawdown(series: pd.Series) -> float:
    """Maximum drawdown as a negative decimal (e.g., -0.30 for 30%)."""
    peak = series.cummax()
    dd = (series / peak) - 1.0
    return float(dd.min())


def _sharpe_ratio(
    returns: pd.Series,
    risk_free_rate: float = 0.02,
    periods_per_year: int = 252,
) -> float:
    if len(returns) < 2 or returns.std() == 0:
        return 0.0

    excess_return = returns.mean() * periods_per_year - risk_free_rate
    annual_vol = returns.std() * np.sqrt(periods_per_year)

    return excess_return / annual_vol if annual_vol > 0 else 0.0


def generate_synthetic_returns(
    strategies: List[Dict[str, Any]],
    start: str = "2020-01-01",
    end: str = "2023-12-29",
    seed: int = 7,
) -> pd.DataFrame:
    """Generate synthetic daily strategy returns.

    Each strategy's ``annual_yield`` and ``annual_vol`` set the drift and
    dispersion of a normal daily return.

    Args:
        strategies: Strategy config entries (handle, annual_yield, annual_vol).
        start: Start date string.
        end: End date string.
        seed: Random seed for reproducibility.

    Returns:
        DataFrame with date index and one column per strategy handle.
    """
    rng = np.random.default_rng(seed)
    dates = pd.bdate_range(start=start, end=end)
    returns = pd.DataFrame(index=dates)

    for s in strategies:
        mu = float(s.get("annual_yield", 0.05)) / 252
        sigma = float(s.get("annual_vol", 0.02)) / np.sqrt(252)
        returns[str(s["handle"])] = rng.normal(mu, sigma, size=len(dates))

    returns.index.name = "date"
    return returns


def run_backtest(
    raw: Dict[str, Any],
    returns: pd.DataFrame,
    rebalance: bool = True,
    rebalance_freq: str = "M",
    start_value: int = 1_000_000,
) -> tuple[pd.Series, int]:
    """Run a vault over ``returns``, rebalancing drifted allocations periodically.

    Args:
        raw: Vault configuration (as loaded from vault.yaml).
        returns: Daily returns per strategy handle.
        rebalance: Whether to rebalance back to target weights.
        rebalance_freq: Rebalance frequency ('M' for monthly, 'Q' for quarterly).
        start_value: Amount deposited by the seed investor on day one.

    Returns:
        Tuple of (share price series, number of rebalances executed).
    """
    vault = build_vault(raw)
    engine = vault.engine
    asset = engine.base_asset
    manager = roles_from(raw)["strategy_manager"]
    pol = RebalancePolicy(raw)

    engine.book.credit(SEED_INVESTOR, asset, start_value)
    vault.deposit(SEED_INVESTOR, asset, start_value)

    # last trading day of each period
    dates = returns.index.to_series()
    reb_dates = set(dates.groupby(returns.index.to_period(rebalance_freq)).last())

    curve = []
    num_rebalances = 0
    for dt, r in returns.iterrows():
        for handle in engine.allocations.handles:
            adapter = engine.adapter(handle)
            accrued = int(adapter.balance_of(asset) * float(r.get(handle, 0.0)))
            adapter.accrue(asset, accrued)

        if rebalance and dt in reb_dates:
            targets = list(engine.allocations.weights)
            if any_drifted(engine.current_weights(), targets, pol):
                engine.update_strategy_weights(manager, targets)
                num_rebalances += 1
        curve.append(vault.share_price())

    logger.info("Backtest finished: {} days, {} rebalances", len(curve), num_rebalances)
    return pd.Series(curve, index=returns.index, name="share_price"), num_rebalances


def compare(
    raw: Dict[str, Any],
    returns: pd.DataFrame,
    scenarios: Optional[List[str]] = None,
) -> List[BacktestResult]:
    """Compare the rebalanced vault with a buy-and-hold vault.

    Args:
        raw: Vault configuration.
        returns: Daily returns per strategy handle.
        scenarios: Scenario names to run (default: all).

    Returns:
        List of BacktestResult objects.
    """
    all_scenarios = {"rebalanced": True, "buy_and_hold": False}
    if scenarios is None:
        scenarios = list(all_scenarios)

    results = []
    for name in scenarios:
        if name not in all_scenarios:
            continue

        curve, n = run_backtest(raw, returns, rebalance=all_scenarios[name])
        rets = curve.pct_change().fillna(0.0)

        results.append(
            BacktestResult(
                scenario=name,
                cagr=_cagr(curve),
                vol=_vol(rets),
                max_drawdown=_max_drawdown(curve),
                sharpe_ratio=_sharpe_ratio(rets),
                num_rebalances=n,
                ending_share_price=float(curve.iloc[-1]),
                share_price=curve,
            )
        )

    return results
