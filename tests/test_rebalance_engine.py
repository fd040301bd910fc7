"""Tests for deposit/redemption splitting and rebalance planning."""
from __future__ import annotations

import pytest

from common.errors import ExecutionError, ValidationError
from engine.move_planner import DEPOSIT, WITHDRAW, split_deposit, split_redemption
from engine.rebalance_engine import distribute_idle, plan_rebalance


class TestSplitDeposit:
    """Tests for deposit splitting."""

    def test_empty_pool_uses_target_weights(self):
        assert split_deposit(1000, [0, 0], [6000, 4000], available=1000) == [600, 400]

    def test_non_empty_pool_uses_current_value_share(self):
        assert split_deposit(500, [600, 400], [6000, 4000], available=500) == [300, 200]

    def test_last_allocation_absorbs_rounding_dust(self):
        parts = split_deposit(100, [1, 1, 1], [3333, 3333, 3334], available=100)

        assert parts == [33, 33, 34]
        assert sum(parts) == 100

    def test_last_allocation_sweeps_idle_balance(self):
        """Whatever the engine holds after the earlier splits goes to the last allocation."""
        assert split_deposit(500, [600, 400], [6000, 4000], available=507) == [300, 207]

    def test_no_allocations(self):
        assert split_deposit(100, [], [], available=100) == []


class TestSplitRedemption:
    def test_pro_rata_to_global_supply(self):
        assert split_redemption(250, [900, 400], total_supply=1000) == [225, 100]

    def test_floor_division(self):
        assert split_redemption(1, [999, 1], total_supply=3) == [333, 0]

    def test_no_supply(self):
        with pytest.raises(ValidationError):
            split_redemption(1, [100], total_supply=0)


class TestPlanRebalance:
    """Tests for rebalance planning."""

    def test_swap_weights(self):
        """[6000, 4000] -> [4000, 6000] on [600, 400]."""
        plan = plan_rebalance(["a", "b"], [600, 400], [4000, 6000], idle=0)

        assert plan.total_value == 1000
        assert plan.old_weights == [6000, 4000]
        assert [(m.handle, m.action, m.amount) for m in plan.withdrawals] == [("a", WITHDRAW, 200)]
        assert plan.increases == [("b", 2000)]
        assert plan.expected_idle == 200

    def test_full_exit_withdraws_entire_balance(self):
        plan = plan_rebalance(["a", "b"], [600, 400], [0, 10_000], idle=0)

        assert plan.withdrawals[0].amount == 600

    def test_idle_counts_towards_total_value(self):
        plan = plan_rebalance(["a", "b"], [500, 500], [5000, 5000], idle=1000)

        assert plan.old_weights == [2500, 2500]
        assert plan.withdrawals == []
        assert plan.increases == [("a", 2500), ("b", 2500)]

    def test_empty_vault_has_nothing_to_move(self):
        plan = plan_rebalance(["a", "b"], [0, 0], [5000, 5000], idle=0)

        assert plan.withdrawals == []
        assert plan.expected_idle == 0

    def test_idle_without_increase_target_rejected(self):
        """Funds that would stay idle with nowhere to go fail the plan."""
        # total 1100, old weights [5454, 3636]; unchanged targets leave 100 idle
        with pytest.raises(ExecutionError) as exc:
            plan_rebalance(["a", "b"], [600, 400], [5454, 3636], idle=100)

        assert exc.value.code == "InvalidExecution"

    def test_length_mismatch(self):
        with pytest.raises(ValidationError):
            plan_rebalance(["a"], [600, 400], [10_000], idle=0)


class TestDistributeIdle:
    def test_proportional_to_weight_increase(self):
        moves = distribute_idle(100, [("a", 1000), ("b", 2000)])

        assert [(m.handle, m.action, m.amount) for m in moves] == [
            ("a", DEPOSIT, 33),
            ("b", DEPOSIT, 67),
        ]

    def test_single_target_takes_everything(self):
        moves = distribute_idle(200, [("b", 2000)])

        assert [(m.handle, m.amount) for m in moves] == [("b", 200)]

    def test_nothing_idle(self):
        assert distribute_idle(0, [("a", 1000)]) == []
