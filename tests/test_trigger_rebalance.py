"""Tests for rebalance triggers and the trigger grid search.

Covers the interval / deviation / AND rules of ``RebalanceTrigger``, batch
evaluation in ``RebalanceStrategy`` and the three notions of best trigger
found by ``search_best_trigger``.
"""

import numpy as np
import pytest

from rebalance.errors import ConfigError, EmptyInputError, NotFoundError
from rebalance.search import DEVIATION_CANDIDATES_PERC, search_best_trigger, trigger_grid
from rebalance.strategies.trigger import RebalanceStrategy, RebalanceTrigger

# ---------------------------------------------------------------------------
# 1. Trigger rules
# ---------------------------------------------------------------------------


class TestRebalanceTrigger:
    def test_never_triggers_without_conditions(self):
        trigger = RebalanceTrigger.never()
        assert not trigger.is_set
        assert trigger.is_triggered(12, [0.9, 0.1], [0.5, 0.5]) is False

    def test_interval_only(self):
        trigger = RebalanceTrigger(interval=3)
        assert trigger.is_triggered(6, [0.5, 0.5], [0.5, 0.5]) is True
        assert trigger.is_triggered(5, [0.9, 0.1], [0.5, 0.5]) is False

    def test_interval_0_is_disabled(self):
        assert RebalanceTrigger(interval=0).is_triggered_by_interval(6) is False
        assert not RebalanceTrigger(interval=0).is_set

    def test_interval_0_leaves_deviation_alone(self):
        trigger = RebalanceTrigger(interval=0, deviation=0.1)
        assert trigger.is_set
        assert trigger.is_triggered(1, [0.65, 0.35], [0.5, 0.5]) is True
        assert trigger.is_triggered(1, [0.55, 0.45], [0.5, 0.5]) is False

    def test_deviation_only(self):
        trigger = RebalanceTrigger(deviation=0.1)
        assert trigger.is_triggered(1, [0.65, 0.35], [0.5, 0.5]) is True
        assert trigger.is_triggered(1, [0.55, 0.45], [0.5, 0.5]) is False

    def test_both_conditions_must_hold(self):
        trigger = RebalanceTrigger(interval=3, deviation=0.1)
        assert trigger.is_triggered(3, [0.65, 0.35], [0.5, 0.5]) is True
        assert trigger.is_triggered(3, [0.55, 0.45], [0.5, 0.5]) is False
        assert trigger.is_triggered(4, [0.65, 0.35], [0.5, 0.5]) is False

    def test_zero_total_never_deviates(self):
        trigger = RebalanceTrigger(deviation=0.1)
        assert trigger.is_triggered(1, [0.0, 0.0], [0.5, 0.5]) is False

    def test_batch_evaluation_is_row_wise(self):
        strategy = RebalanceStrategy([0.5, 0.5], RebalanceTrigger(deviation=0.1))
        balances = np.array([[0.65, 0.35], [0.5, 0.5], [0.2, 0.8]])
        assert strategy.should_rebalance(1, balances).tolist() == [True, False, True]

    def test_batch_interval_broadcasts(self):
        strategy = RebalanceStrategy([0.5, 0.5], RebalanceTrigger(interval=2))
        balances = np.ones((3, 2))
        assert strategy.should_rebalance(2, balances).tolist() == [True, True, True]
        assert strategy.should_rebalance(3, balances).tolist() == [False, False, False]

    def test_rebalance_keeps_total(self):
        strategy = RebalanceStrategy([0.7, 0.3])
        assert strategy.rebalance([3.0, 7.0]).tolist() == pytest.approx([7.0, 3.0])

    @pytest.mark.parametrize("kwargs", [{"interval": -1}, {"deviation": 1.5}, {"deviation": -0.1}])
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(ConfigError):
            RebalanceTrigger(**kwargs)

    def test_str(self):
        assert str(RebalanceTrigger(interval=12, deviation=0.05)) == "interval=12, deviation=5%"


# ---------------------------------------------------------------------------
# 2. Search grid
# ---------------------------------------------------------------------------


class TestTriggerGrid:
    def test_grid_size(self):
        assert len(list(trigger_grid(6))) == 3 * len(DEVIATION_CANDIDATES_PERC)

    def test_grid_starts_with_baseline(self):
        grid = list(trigger_grid(6))
        assert grid[0] == RebalanceTrigger.never()
        assert grid[1] == RebalanceTrigger(deviation=0.01)
        assert grid[len(DEVIATION_CANDIDATES_PERC)] == RebalanceTrigger(interval=1)


# ---------------------------------------------------------------------------
# 3. Best trigger search
# ---------------------------------------------------------------------------


class TestSearchBestTrigger:
    def test_best_balance(self, dip_and_recovery):
        result = search_best_trigger(dip_and_recovery, 1.0, None, [0.5, 0.5])
        assert result.best.final_balance == pytest.approx(1.125)
        assert result.best.total_payments == pytest.approx(1.0)

    def test_ties_keep_first_candidate(self, dip_and_recovery):
        """Interval 1 reaches 1.125 too, but deviation 1% comes first."""
        result = search_best_trigger(dip_and_recovery, 1.0, None, [0.5, 0.5])
        assert result.best.trigger == RebalanceTrigger(deviation=0.01)

    def test_best_per_category(self, dip_and_recovery):
        result = search_best_trigger(dip_and_recovery, 1.0, None, [0.5, 0.5])
        assert result.with_best_dev.trigger == RebalanceTrigger(deviation=0.01)
        assert result.with_best_dev.final_balance == pytest.approx(1.125)
        assert result.with_best_interval.trigger == RebalanceTrigger(interval=1)
        assert result.with_best_interval.final_balance == pytest.approx(1.125)

    def test_is_deterministic(self, dip_and_recovery):
        assert search_best_trigger(dip_and_recovery, 1.0, None, [0.5, 0.5]) == search_best_trigger(
            dip_and_recovery, 1.0, None, [0.5, 0.5]
        )

    def test_baseline_wins_without_dips(self):
        prices = [[1.0, 2.0, 3.0, 4.0, 5.0, 6.0], [1.0] * 6]
        result = search_best_trigger(prices, 1.0, None, [0.5, 0.5])
        assert result.best.trigger == RebalanceTrigger.never()
        assert result.best.final_balance == pytest.approx(3.5)

    def test_empty_input(self):
        with pytest.raises(EmptyInputError):
            search_best_trigger([], 1.0, None, [])

    def test_too_short_for_interval_candidates(self):
        with pytest.raises(NotFoundError, match="interval-only"):
            search_best_trigger([[1.0, 0.5, 1.0], [1.0, 1.0, 1.0]], 1.0, None, [0.5, 0.5])

    def test_to_frame(self, dip_and_recovery):
        df = search_best_trigger(dip_and_recovery, 1.0, None, [0.5, 0.5]).to_frame(n_months=5)
        assert list(df.index) == ["best", "best deviation", "best interval"]
        assert df.loc["best", "deviation_perc"] == 1
        assert df.loc["best interval", "interval"] == 1
        assert "yearly_return_perc" in df.columns
