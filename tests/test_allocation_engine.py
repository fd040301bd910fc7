"""Tests for allocation changes and rebalancing through the engine."""
from __future__ import annotations

import pytest

from common.errors import AuthorizationError, ExecutionError, StateError, ValidationError
from engine.move_planner import DEPOSIT, WITHDRAW
from engine.vault import Vault
from engine.vault_factory import build_vault


def make_vault(weights=(6000, 4000, 0), loss_bps=None) -> Vault:
    """Vault with strategies s0, s1, ...; zero-weight strategies are registered only."""
    raw = {
        "vault": {"base_asset": "USDC"},
        "roles": {"creator": "admin", "strategy_manager": "strategist", "vault": "bridge"},
        "strategies": [
            {"handle": f"s{i}", "weight": w, "loss_bps": l}
            for i, (w, l) in enumerate(zip(weights, loss_bps or [0] * len(weights)))
        ],
        "funding": {"alice": 1_000_000},
    }
    return build_vault(raw)


def funded_vault(amount: int = 1000, loss_bps=None) -> Vault:
    vault = make_vault(loss_bps=loss_bps)
    vault.deposit("alice", "USDC", amount)
    return vault


class TestSetAllocations:
    """Tests for wholesale allocation replacement."""

    def test_replaces_list(self):
        vault = make_vault()
        engine = vault.engine

        engine.set_allocations("strategist", ["s1", "s2"], [2500, 7500])

        assert engine.allocations.handles == ("s1", "s2")
        assert engine.allocations.weights == (2500, 7500)

    def test_weight_sum_mismatch_leaves_list_untouched(self):
        """Weights summing to 9999 are rejected."""
        vault = make_vault()
        engine = vault.engine
        before = engine.allocations

        with pytest.raises(ValidationError) as exc:
            engine.set_allocations("strategist", ["s0", "s1"], [5999, 4000])

        assert exc.value.code == "WeightSumMismatch"
        assert engine.allocations is before
        assert engine.allocations.weights == (6000, 4000)

    def test_paused(self):
        vault = make_vault()
        vault.engine.registry.pause()

        with pytest.raises(StateError) as exc:
            vault.engine.set_allocations("strategist", ["s0", "s1"], [5000, 5000])

        assert exc.value.code == "ProtocolPaused"
        assert vault.engine.allocations.weights == (6000, 4000)

    def test_length_mismatch(self):
        vault = make_vault()

        with pytest.raises(ValidationError) as exc:
            vault.engine.set_allocations("strategist", ["s0", "s1"], [10_000])

        assert exc.value.code == "LengthMismatch"

    def test_handle_not_enabled(self):
        vault = make_vault()
        vault.engine.registry.set_enabled("s2", False)

        with pytest.raises(StateError) as exc:
            vault.engine.set_allocations("strategist", ["s0", "s2"], [5000, 5000])

        assert exc.value.code == "TokenNotEnabled"

    def test_unknown_handle_not_enabled(self):
        vault = make_vault()

        with pytest.raises(StateError):
            vault.engine.set_allocations("strategist", ["s0", "nope"], [5000, 5000])

    def test_duplicate_handles_rejected(self):
        vault = make_vault()

        with pytest.raises(ValidationError) as exc:
            vault.engine.set_allocations("strategist", ["s0", "s0"], [5000, 5000])

        assert exc.value.code == "DuplicateHandle"

    def test_requires_strategy_manager(self):
        vault = make_vault()

        with pytest.raises(AuthorizationError):
            vault.engine.set_allocations("alice", ["s0"], [10_000])


class TestUpdateStrategyWeights:
    """Tests for reweighting the current strategies."""

    def test_rebalance_moves_freed_funds_to_increasing_allocation(self):
        """[6000, 4000] -> [4000, 6000] on balances [600, 400]."""
        vault = funded_vault()
        engine = vault.engine

        moves = engine.update_strategy_weights("strategist", [4000, 6000])

        assert [(m.handle, m.action, m.amount) for m in moves] == [
            ("s0", WITHDRAW, 200),
            ("s1", DEPOSIT, 200),
        ]
        assert engine.balances() == [400, 600]
        assert engine.idle_balance() == 0
        assert engine.allocations.weights == (4000, 6000)

    def test_value_conserved(self):
        vault = funded_vault()
        engine = vault.engine

        engine.update_strategy_weights("strategist", [2500, 7500])

        assert engine.balances() == [250, 750]
        assert sum(engine.balances()) + engine.idle_balance() == 1000
        assert vault.total_supply == 1000

    def test_same_weights_moves_nothing(self):
        vault = funded_vault()

        moves = vault.engine.update_strategy_weights("strategist", [6000, 4000])

        assert moves == []
        assert vault.engine.balances() == [600, 400]

    def test_length_must_match_current_list(self):
        vault = funded_vault()

        with pytest.raises(ValidationError) as exc:
            vault.engine.update_strategy_weights("strategist", [3000, 3000, 4000])

        assert exc.value.code == "LengthMismatch"

    def test_weight_sum_mismatch_leaves_state(self):
        vault = funded_vault()
        engine = vault.engine

        with pytest.raises(ValidationError) as exc:
            engine.update_strategy_weights("strategist", [4000, 5999])

        assert exc.value.code == "WeightSumMismatch"
        assert engine.allocations.weights == (6000, 4000)
        assert engine.balances() == [600, 400]

    def test_paused(self):
        vault = funded_vault()
        vault.engine.registry.pause()

        with pytest.raises(StateError) as exc:
            vault.engine.update_strategy_weights("strategist", [4000, 6000])

        assert exc.value.code == "ProtocolPaused"
        assert vault.engine.balances() == [600, 400]

    def test_deposit_after_reweight_follows_current_value(self):
        vault = funded_vault()
        vault.engine.update_strategy_weights("strategist", [4000, 6000])

        vault.deposit("alice", "USDC", 500)

        assert vault.engine.balances() == [600, 900]


class TestUpdateStrategy:
    """Tests for replacing the strategy set."""

    def test_zero_weight_handle_liquidated_and_dropped(self):
        vault = funded_vault()
        engine = vault.engine

        moves = engine.update_strategy("strategist", ["s0", "s1", "s2"], [0, 5000, 5000])

        assert engine.allocations.handles == ("s1", "s2")
        assert engine.allocations.weights == (5000, 5000)
        assert engine.adapter("s0").balance_of("USDC") == 0
        # idle 600: s1 gets 600 * 1000 // 6000, s2 the rest
        assert engine.balances() == [500, 500]
        assert engine.idle_balance() == 0
        assert moves[0].handle == "s0" and moves[0].action == WITHDRAW and moves[0].amount == 600

    def test_omitted_handle_is_liquidated(self):
        vault = funded_vault()
        engine = vault.engine

        moves = engine.update_strategy("strategist", ["s1", "s2"], [5000, 5000])

        assert engine.adapter("s0").balance_of("USDC") == 0
        assert engine.balances() == [500, 500]
        assert moves[0].reason == "Liquidated: removed from strategy set"

    def test_shares_redeem_from_new_set(self):
        vault = funded_vault()
        vault.engine.update_strategy("strategist", ["s1", "s2"], [5000, 5000])

        out = vault.withdraw("alice", "USDC", 500)

        assert out == 500
        assert vault.engine.balances() == [250, 250]

    def test_empty_list(self):
        vault = funded_vault()

        with pytest.raises(ValidationError) as exc:
            vault.engine.update_strategy("strategist", [], [])

        assert exc.value.code == "EmptyList"

    def test_weight_sum_mismatch_moves_nothing(self):
        vault = funded_vault()
        engine = vault.engine

        with pytest.raises(ValidationError) as exc:
            engine.update_strategy("strategist", ["s0", "s1", "s2"], [0, 5000, 4999])

        assert exc.value.code == "WeightSumMismatch"
        assert engine.balances() == [600, 400]
        assert engine.allocations.handles == ("s0", "s1")

    def test_new_handle_must_be_enabled(self):
        vault = funded_vault()
        vault.engine.registry.set_enabled("s2", False)

        with pytest.raises(StateError):
            vault.engine.update_strategy("strategist", ["s0", "s2"], [5000, 5000])

        assert vault.engine.balances() == [600, 400]

    def test_requires_strategy_manager(self):
        vault = funded_vault()

        with pytest.raises(AuthorizationError):
            vault.engine.update_strategy("alice", ["s1"], [10_000])

    def test_paused(self):
        vault = funded_vault()
        vault.engine.registry.pause()

        with pytest.raises(StateError) as exc:
            vault.engine.update_strategy("strategist", ["s1", "s2"], [5000, 5000])

        assert exc.value.code == "ProtocolPaused"
        assert vault.engine.allocations.handles == ("s0", "s1")
        assert vault.engine.balances() == [600, 400]


class TestFailedRebalance:
    """An adapter failing mid-rebalance leaves funds and allocations as they were."""

    def test_failed_weight_update_is_undone(self):
        # s1 loses 10 bps; the 400 deposit rounds that loss to 0
        vault = funded_vault(loss_bps=(0, 10, 0))
        engine = vault.engine

        with pytest.raises(ExecutionError) as exc:
            engine.update_strategy_weights("strategist", [4000, 6000], slippage=5)

        assert exc.value.code == "SlippageExceeded"
        assert engine.allocations.weights == (6000, 4000)
        assert engine.balances() == [600, 400]
        assert engine.idle_balance() == 0

    def test_failed_strategy_replacement_is_undone(self):
        """s0 is liquidated, then the deposit into s2 fails: nothing sticks."""
        vault = funded_vault(loss_bps=(0, 0, 10))
        engine = vault.engine

        with pytest.raises(ExecutionError):
            engine.update_strategy("strategist", ["s0", "s1", "s2"], [0, 5000, 5000], slippage=5)

        assert engine.allocations.handles == ("s0", "s1")
        assert engine.balances() == [600, 400]
        assert engine.adapter("s2").balance_of("USDC") == 0
        assert engine.idle_balance() == 0
        assert not engine.lock.held

    def test_vault_usable_after_failed_rebalance(self):
        vault = funded_vault(loss_bps=(0, 0, 10))
        with pytest.raises(ExecutionError):
            vault.engine.update_strategy("strategist", ["s0", "s1", "s2"], [0, 5000, 5000], slippage=5)

        out = vault.withdraw("alice", "USDC", 500)

        assert out == 500
        assert vault.engine.balances() == [300, 200]
