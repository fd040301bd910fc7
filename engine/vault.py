"""Share ledger for the multi-strategy vault.

Issues shares against deposited value and redeems them pro-rata:
- first deposit: shares == invested amount
- later deposits: shares == invested * supply_before // aggregate_value_before
- withdrawals burn the shares before any funds leave the adapters

The aggregate value used for issuance is snapshotted before the deposit is
pulled in, so the new funds never dilute their own share price.

If an adapter raises, the operation is undone: book holdings (including
adapter balances) and any burned shares are restored before the error
propagates.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from loguru import logger

from accounts.access import VAULT_MANAGER_ROLE, VAULT_ROLE, AccessGate, check_role
from common.errors import StateError, ValidationError, require
from engine.allocation_engine import AllocationEngine
from policy.allocation_policy import validate_not_paused
from policy.types import SCALE


@dataclass(frozen=True)
class VaultEvent:
    """Record of a completed share-changing operation."""

    kind: str  # deposit/withdraw/mint/burn
    caller: str
    asset: Optional[str]
    amount: int
    shares: int


class Vault:
    """Share supply, holder balances and the deposit/withdraw entry points."""

    def __init__(
        self,
        engine: AllocationEngine,
        access: AccessGate,
        allowed_assets: Optional[Iterable[str]] = None,
        fee_rate: int = 0,
    ) -> None:
        self.engine = engine
        self.access = access
        self.lock = engine.lock
        self.allowed_assets = set(allowed_assets or [engine.base_asset])
        self._validate_fee_rate(fee_rate)
        self.fee_rate = fee_rate
        self.total_supply = 0
        self._balances: Dict[str, int] = {}
        self.events: List[VaultEvent] = []

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def balance_of(self, holder: str) -> int:
        return self._balances.get(holder, 0)

    def holders(self) -> Dict[str, int]:
        return {h: b for h, b in self._balances.items() if b > 0}

    def share_price(self) -> float:
        """Aggregate value per share; 1.0 when no shares exist."""
        if self.total_supply == 0:
            return 1.0
        return self.engine.aggregate_value() / self.total_supply

    def preview_deposit(self, amount: int, asset: Optional[str] = None) -> int:
        """Shares an ``amount`` deposit would mint if the adapters placed it in full."""
        if self.total_supply == 0:
            return amount
        aggregate = self.engine.aggregate_value(asset)
        if aggregate == 0:
            return 0
        return amount * self.total_supply // aggregate

    def preview_withdraw(self, shares: int, asset: Optional[str] = None) -> int:
        """Amount ``shares`` would redeem before adapter-level slippage."""
        if self.total_supply == 0 or shares <= 0:
            return 0
        return sum(shares * b // self.total_supply for b in self.engine.balances(asset))

    # ------------------------------------------------------------------
    # Deposit / withdraw
    # ------------------------------------------------------------------

    def deposit(self, caller: str, asset: str, amount: int, slippage: Optional[int] = None) -> int:
        """Deposit ``amount`` of ``asset`` and mint shares to ``caller``.

        Returns:
            Number of shares minted.

        Raises:
            ValidationError: Zero address, zero amount, no allocations, or
                the caller does not hold ``amount``.
            StateError: Asset not allowed, protocol paused, or the vault has
                shares outstanding but no value behind them.
        """
        with self.lock.hold("deposit"):
            self._validate_entry(caller, asset, amount)
            require(len(self.engine.allocations) > 0, ValidationError, "EmptyList", "no allocations configured")
            held = self.engine.book.balance_of(caller, asset)
            require(held >= amount, ValidationError, "InsufficientBalance",
                    f"{caller} holds {held} {asset}, cannot deposit {amount}")

            supply_pre = self.total_supply
            aggregate_pre = self.engine.aggregate_value(asset)
            if supply_pre > 0:
                require(aggregate_pre > 0, StateError, "EmptyVault",
                        f"{supply_pre} shares outstanding against zero value")
                require(amount * supply_pre // aggregate_pre > 0, ValidationError, "ZeroAmount",
                        f"deposit of {amount} would mint zero shares")

            with self.engine.atomic("deposit"):
                self.engine.book.transfer(asset, caller, self.engine.account_id, amount)
                invested = self.engine.deposit(asset, amount, slippage)

            if supply_pre == 0:
                shares = invested
            else:
                shares = invested * supply_pre // aggregate_pre
            self._mint(caller, shares)

            self.events.append(VaultEvent("deposit", caller, asset, amount, shares))
            logger.info(
                "Deposit: {} deposited {} {} (invested {}), minted {} shares",
                caller, amount, asset, invested, shares,
            )
            return shares

    def withdraw(self, caller: str, asset: str, shares: int, slippage: Optional[int] = None) -> int:
        """Burn ``shares`` from ``caller`` and send the redeemed value back.

        Returns:
            Amount of ``asset`` transferred to ``caller``.
        """
        with self.lock.hold("withdraw"):
            self._validate_entry(caller, asset, shares)
            held = self.balance_of(caller)
            require(held >= shares, ValidationError, "InsufficientShares",
                    f"{caller} holds {held} shares, cannot redeem {shares}")

            supply_pre = self.total_supply
            self._burn(caller, shares)
            try:
                with self.engine.atomic("withdraw"):
                    amount_out = self.engine.withdraw(asset, shares, supply_pre, caller, slippage)
            except Exception:
                self._mint(caller, shares)
                raise

            self.events.append(VaultEvent("withdraw", caller, asset, amount_out, shares))
            logger.info(
                "Withdraw: {} redeemed {} shares for {} {}",
                caller, shares, amount_out, asset,
            )
            return amount_out

    # ------------------------------------------------------------------
    # Privileged operations
    # ------------------------------------------------------------------

    def mint_shares(self, caller: str, to: str, amount: int) -> None:
        """Mint without a matching deposit. Trusted migration/bridging path only."""
        with self.lock.hold("mint_shares"):
            check_role(self.access, VAULT_ROLE, caller)
            require(bool(to), ValidationError, "ZeroAddress", "recipient must be set")
            require(amount > 0, ValidationError, "ZeroAmount", "amount must be positive")
            self._mint(to, amount)
            self.events.append(VaultEvent("mint", caller, None, 0, amount))
            logger.info("Privileged mint of {} shares to {} by {}", amount, to, caller)

    def burn_shares(self, caller: str, holder: str, amount: int) -> None:
        """Burn without a matching withdrawal. Trusted migration/bridging path only."""
        with self.lock.hold("burn_shares"):
            check_role(self.access, VAULT_ROLE, caller)
            require(bool(holder), ValidationError, "ZeroAddress", "holder must be set")
            require(amount > 0, ValidationError, "ZeroAmount", "amount must be positive")
            require(self.balance_of(holder) >= amount, ValidationError, "InsufficientShares",
                    f"{holder} holds {self.balance_of(holder)} shares, cannot burn {amount}")
            self._burn(holder, amount)
            self.events.append(VaultEvent("burn", caller, None, 0, amount))
            logger.info("Privileged burn of {} shares from {} by {}", amount, holder, caller)

    def set_fee_rate(self, caller: str, rate: int) -> None:
        with self.lock.hold("set_fee_rate"):
            check_role(self.access, VAULT_MANAGER_ROLE, caller)
            self._validate_fee_rate(rate)
            self.fee_rate = rate
            logger.info("Fee rate set to {} bps", rate)

    def set_allowed_asset(self, caller: str, asset: str, allowed: bool) -> None:
        with self.lock.hold("set_allowed_asset"):
            check_role(self.access, VAULT_MANAGER_ROLE, caller)
            require(bool(asset), ValidationError, "ZeroAddress", "asset must be set")
            if allowed:
                self.allowed_assets.add(asset)
            else:
                self.allowed_assets.discard(asset)
            logger.info("Asset {} allowed={}", asset, allowed)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _validate_entry(self, caller: str, asset: str, amount: int) -> None:
        try:
            require(bool(caller) and bool(asset), ValidationError, "ZeroAddress", "caller and asset must be set")
            require(amount > 0, ValidationError, "ZeroAmount", "amount must be positive")
            require(asset in self.allowed_assets, StateError, "TokenNotAllowed", f"{asset} is not allowed")
            validate_not_paused(self.engine.registry)
        except (ValidationError, StateError) as exc:
            logger.warning("Rejected request from {}: {}", caller, exc)
            raise

    @staticmethod
    def _validate_fee_rate(rate: int) -> None:
        if not 0 <= rate <= SCALE:
            raise ValidationError("InvalidFeeRate", f"fee rate {rate} outside 0..{SCALE}")

    def _mint(self, holder: str, amount: int) -> None:
        self._balances[holder] = self.balance_of(holder) + amount
        self.total_supply += amount

    def _burn(self, holder: str, amount: int) -> None:
        self._balances[holder] = self.balance_of(holder) - amount
        self.total_supply -= amount
