from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict

from common.errors import ValidationError


@dataclass
class Account:
    id: str
    holdings: Dict[str, int] = field(default_factory=dict)  # asset -> units

    def balance(self, asset: str) -> int:
        return self.holdings.get(asset, 0)

    def total_value(self) -> int:
        return sum(self.holdings.values())


class AssetBook:
    """Holdings of every principal that touches the vault: users, engine, adapters."""

    def __init__(self) -> None:
        self._accounts: Dict[str, Account] = {}

    def account(self, account_id: str) -> Account:
        acct = self._accounts.get(account_id)
        if acct is None:
            acct = Account(account_id)
            self._accounts[account_id] = acct
        return acct

    def balance_of(self, account_id: str, asset: str) -> int:
        return self.account(account_id).balance(asset)

    def credit(self, account_id: str, asset: str, amount: int) -> None:
        if amount < 0:
            raise ValidationError("ZeroAmount", f"cannot credit negative amount {amount}")
        acct = self.account(account_id)
        acct.holdings[asset] = acct.balance(asset) + amount

    def debit(self, account_id: str, asset: str, amount: int) -> None:
        acct = self.account(account_id)
        held = acct.balance(asset)
        if amount < 0 or amount > held:
            raise ValidationError(
                "InsufficientBalance", f"{account_id} holds {held} {asset}, cannot debit {amount}"
            )
        acct.holdings[asset] = held - amount

    def transfer(self, asset: str, src: str, dst: str, amount: int) -> None:
        if amount == 0 or src == dst:
            return
        self.debit(src, asset, amount)
        self.credit(dst, asset, amount)

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        """Copy of every account's holdings, for restoring after a failed operation."""
        return {aid: dict(acct.holdings) for aid, acct in self._accounts.items()}

    def restore(self, snapshot: Dict[str, Dict[str, int]]) -> None:
        self._accounts = {aid: Account(aid, dict(h)) for aid, h in snapshot.items()}
