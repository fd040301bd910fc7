"""Allocation engine.

Owns the allocation list and every movement of funds between the engine and
the strategy adapters:
- split deposits across allocations
- release redemptions pro-rata to the global share supply
- rebalance when target weights or the strategy set change
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

from loguru import logger

from accounts.access import STRATEGY_MANAGER_ROLE, AccessGate, check_role
from accounts.account import AssetBook
from common.errors import StateError, ValidationError
from common.guard import OperationLock
from engine.drift_engine import current_weights
from engine.move_planner import (
    WITHDRAW,
    Move,
    deposit_moves,
    split_deposit,
    split_redemption,
)
from engine.rebalance_engine import RebalancePlan, distribute_idle, plan_rebalance
from policy.allocation_policy import (
    validate_enabled,
    validate_lengths,
    validate_not_paused,
    validate_unique,
    validate_weight_sum,
)
from portfolio.allocation import AllocationSet


class AllocationEngine:
    """Routes vault funds across strategy adapters according to target weights.

    ``deposit`` and ``withdraw`` are called by the vault while it holds the
    shared operation lock. The allocation-changing operations take the lock
    themselves.
    """

    def __init__(
        self,
        book: AssetBook,
        registry,
        access: AccessGate,
        base_asset: str,
        account_id: str = "engine",
        lock: Optional[OperationLock] = None,
    ) -> None:
        if not base_asset:
            raise ValidationError("ZeroAddress", "base asset must be set")
        self.book = book
        self.registry = registry
        self.access = access
        self.base_asset = base_asset
        self.account_id = account_id
        self.lock = lock or OperationLock()
        self._allocations = AllocationSet()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def allocations(self) -> AllocationSet:
        return self._allocations

    def adapter(self, handle: str):
        info = self.registry.lookup_handler(handle)
        if info.handler is None:
            raise StateError("TokenNotEnabled", f"no adapter registered for {handle}")
        return info.handler

    def balances(self, asset: Optional[str] = None, handles: Optional[Sequence[str]] = None) -> List[int]:
        asset = asset or self.base_asset
        handles = self._allocations.handles if handles is None else handles
        return [int(self.adapter(h).balance_of(asset)) for h in handles]

    def aggregate_value(self, asset: Optional[str] = None) -> int:
        """Sum of adapter balances, queried live."""
        return sum(self.balances(asset))

    def idle_balance(self, asset: Optional[str] = None) -> int:
        return self.book.balance_of(self.account_id, asset or self.base_asset)

    def current_weights(self) -> List[int]:
        balances = self.balances()
        return current_weights(balances, sum(balances) + self.idle_balance())

    @contextmanager
    def atomic(self, operation: str) -> Iterator[None]:
        """Undo every book movement and the allocation swap if the body raises.

        Adapters keep their funds in the shared AssetBook, so restoring the
        book also restores their balances.
        """
        holdings = self.book.snapshot()
        allocations = self._allocations
        try:
            yield
        except Exception as exc:
            self.book.restore(holdings)
            self._allocations = allocations
            logger.warning("{} aborted, state restored: {}", operation, exc)
            raise

    # ------------------------------------------------------------------
    # Fund routing (vault-facing)
    # ------------------------------------------------------------------

    def deposit(self, asset: str, amount: int, slippage: Optional[int] = None) -> int:
        """Place ``amount`` of ``asset`` (already held by the engine) into the adapters.

        Returns:
            Sum of the amounts the adapters report as actually placed.
        """
        handles = self._allocations.handles
        balances = self.balances(asset)
        parts = split_deposit(
            amount,
            balances,
            self._allocations.weights,
            available=self.idle_balance(asset),
        )

        invested = 0
        for move in deposit_moves(handles, parts, empty_pool=sum(balances) == 0):
            invested += int(self.adapter(move.handle).deposit(asset, move.amount, slippage))
            logger.debug("Deposit move: {}", move)
        return invested

    def withdraw(
        self,
        asset: str,
        shares: int,
        total_supply: int,
        receiver: str,
        slippage: Optional[int] = None,
    ) -> int:
        """Release ``shares / total_supply`` of every allocation to ``receiver``.

        ``total_supply`` is the global share supply before the redeemed
        shares were burned.
        """
        handles = self._allocations.handles
        amounts = split_redemption(shares, self.balances(asset, handles), total_supply)

        amount_out = 0
        for handle, amount in zip(handles, amounts):
            if amount <= 0:
                continue
            realized = int(self.adapter(handle).withdraw(asset, amount, slippage))
            self.book.transfer(asset, self.account_id, receiver, realized)
            amount_out += realized
            logger.debug("Redeemed {} {} from {} to {}", realized, asset, handle, receiver)
        return amount_out

    # ------------------------------------------------------------------
    # Allocation changes
    # ------------------------------------------------------------------

    def set_allocations(self, caller: str, handles: Sequence[str], weights: Sequence[int]) -> AllocationSet:
        """Replace the allocation list without moving funds."""
        with self.lock.hold("set_allocations"):
            check_role(self.access, STRATEGY_MANAGER_ROLE, caller)
            validate_not_paused(self.registry)
            validate_lengths(handles, weights)
            validate_unique(handles)
            validate_enabled(self.registry, handles)
            validate_weight_sum(weights)

            self._allocations = AllocationSet.build(handles, weights)
            logger.info("Allocations set: {}", dict(zip(handles, weights)))
            return self._allocations

    def update_strategy_weights(
        self,
        caller: str,
        weights: Sequence[int],
        slippage: Optional[int] = None,
    ) -> List[Move]:
        """Set new target weights on the current strategies and rebalance to them."""
        with self.lock.hold("update_strategy_weights"):
            check_role(self.access, STRATEGY_MANAGER_ROLE, caller)
            validate_not_paused(self.registry)
            handles = self._allocations.handles
            validate_lengths(handles, weights)
            validate_weight_sum(weights)

            plan = plan_rebalance(handles, self.balances(), weights, self.idle_balance())
            with self.atomic("update_strategy_weights"):
                moves = self._execute(plan, slippage)
                self._allocations = AllocationSet.build(handles, weights)
            logger.info("Strategy weights updated: {} -> {}", plan.old_weights, list(weights))
            return moves

    def update_strategy(
        self,
        caller: str,
        handles: Sequence[str],
        weights: Sequence[int],
        slippage: Optional[int] = None,
    ) -> List[Move]:
        """Replace the strategy set and rebalance into it.

        Handles given weight 0, and current handles missing from ``handles``,
        are liquidated into the idle balance and dropped.
        """
        with self.lock.hold("update_strategy"):
            check_role(self.access, STRATEGY_MANAGER_ROLE, caller)
            validate_not_paused(self.registry)
            if not handles:
                raise ValidationError("EmptyList", "strategy list is empty")
            validate_lengths(handles, weights)
            validate_unique(handles)
            validate_weight_sum(weights)

            keep = [(h, w) for h, w in zip(handles, weights) if w > 0]
            keep_handles = [h for h, _ in keep]
            keep_weights = [w for _, w in keep]
            validate_enabled(self.registry, keep_handles)

            zeroed = [h for h, w in zip(handles, weights) if w == 0]
            omitted = [h for h in self._allocations.handles if h not in handles]
            # unregistered handles hold nothing to liquidate
            dropped = [h for h in zeroed + omitted if self.registry.lookup_handler(h).handler is not None]
            # Dry run on the expected post-liquidation state so nothing moves on failure.
            liquidated = sum(self.balances(handles=dropped))
            plan_rebalance(
                keep_handles,
                self.balances(handles=keep_handles),
                keep_weights,
                self.idle_balance() + liquidated,
            )

            moves: List[Move] = []
            with self.atomic("update_strategy"):
                for h in dropped:
                    balance = int(self.adapter(h).balance_of(self.base_asset))
                    if balance > 0:
                        self.adapter(h).withdraw(self.base_asset, balance, slippage)
                        reason = "Liquidated: weight set to 0" if h in zeroed else "Liquidated: removed from strategy set"
                        moves.append(Move(h, WITHDRAW, balance, reason))
                        logger.info("Liquidated {} ({} {})", h, balance, self.base_asset)

                plan = plan_rebalance(
                    keep_handles,
                    self.balances(handles=keep_handles),
                    keep_weights,
                    self.idle_balance(),
                )
                moves += self._execute(plan, slippage)
                self._allocations = AllocationSet.build(keep_handles, keep_weights)
            logger.info("Strategy set replaced: {}", dict(keep))
            return moves

    def _execute(self, plan: RebalancePlan, slippage: Optional[int]) -> List[Move]:
        """Run the withdrawals, then spread the realized idle balance over the increases."""
        executed: List[Move] = []
        for move in plan.withdrawals:
            self.adapter(move.handle).withdraw(self.base_asset, move.amount, slippage)
            executed.append(move)
            logger.debug("Rebalance move: {}", move)

        for move in distribute_idle(self.idle_balance(), plan.increases):
            self.adapter(move.handle).deposit(self.base_asset, move.amount, slippage)
            executed.append(move)
            logger.debug("Rebalance move: {}", move)

        if executed:
            logger.info(
                "Rebalanced {} moves, idle left {}",
                len(executed), self.idle_balance(),
            )
        return executed
