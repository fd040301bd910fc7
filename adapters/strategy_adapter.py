"""Strategy adapter interface and an in-memory simulated adapter.

An adapter is opaque to the vault: it accepts funds, returns funds, and
reports the balance it holds. What it does with the funds in between is its
own business.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from loguru import logger

from accounts.account import AssetBook
from common.errors import ExecutionError, ValidationError
from policy.types import SCALE

MARKET = "__market__"  # counterparty absorbing slippage and paying yield


@runtime_checkable
class StrategyAdapter(Protocol):
    """Protocol every sub-strategy adapter must satisfy.

    ``deposit`` pulls ``amount`` from the engine that owns the adapter and
    returns the value actually placed. ``withdraw`` sends value back to the
    engine and returns the value actually released.
    """

    def deposit(self, asset: str, amount: int, slippage: Optional[int] = None) -> int:
        ...

    def withdraw(self, asset: str, amount: int, slippage: Optional[int] = None) -> int:
        ...

    def balance_of(self, asset: str) -> int:
        ...


class SimulatedStrategyAdapter:
    """Adapter backed by an AssetBook account.

    ``loss_bps`` models execution cost: each deposit or withdrawal loses that
    fraction of the moved amount to the market. ``slippage`` on a call is the
    largest loss (in basis points) the caller tolerates; ``None`` disables the
    check.
    """

    def __init__(self, handle: str, book: AssetBook, owner: str, loss_bps: int = 0) -> None:
        if not 0 <= loss_bps <= SCALE:
            raise ValidationError("InvalidFeeRate", f"loss_bps out of range: {loss_bps}")
        self.handle = handle
        self.account_id = f"adapter:{handle}"
        self.owner = owner
        self.loss_bps = loss_bps
        self._book = book

    def _check_slippage(self, slippage: Optional[int]) -> None:
        if slippage is not None and self.loss_bps > slippage:
            raise ExecutionError(
                "SlippageExceeded",
                f"{self.handle} loses {self.loss_bps} bps, caller tolerates {slippage}",
            )

    def _apply_loss(self, amount: int) -> int:
        return amount - amount * self.loss_bps // SCALE

    def deposit(self, asset: str, amount: int, slippage: Optional[int] = None) -> int:
        self._check_slippage(slippage)
        self._book.transfer(asset, self.owner, self.account_id, amount)
        realized = self._apply_loss(amount)
        self._book.transfer(asset, self.account_id, MARKET, amount - realized)
        logger.debug("{} deposit {} {} realized {}", self.handle, amount, asset, realized)
        return realized

    def withdraw(self, asset: str, amount: int, slippage: Optional[int] = None) -> int:
        self._check_slippage(slippage)
        realized = self._apply_loss(amount)
        self._book.transfer(asset, self.account_id, MARKET, amount - realized)
        self._book.transfer(asset, self.account_id, self.owner, realized)
        logger.debug("{} withdraw {} {} realized {}", self.handle, amount, asset, realized)
        return realized

    def balance_of(self, asset: str) -> int:
        return self._book.balance_of(self.account_id, asset)

    def accrue(self, asset: str, amount: int) -> None:
        """Credit strategy yield (positive) or book a loss (negative)."""
        if amount >= 0:
            self._book.credit(self.account_id, asset, amount)
        else:
            self._book.transfer(asset, self.account_id, MARKET, min(-amount, self.balance_of(asset)))
