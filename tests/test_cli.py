"""Tests for the Hydra runner: config builders and mode dispatch.

Configs are built with ``OmegaConf.create`` so Hydra itself is never started.
"""

import pytest
from omegaconf import OmegaConf

from rebalance.backtester.payments import MonthlyPayments
from rebalance.cli import (
    build_charts,
    build_fractions,
    build_monthly_payments,
    build_trigger,
    run,
)
from rebalance.errors import ConfigError
from rebalance.metrics.rebalance_stats import RebalanceStatsSummary
from rebalance.metrics.returns import FinalBalance
from rebalance.search import BestRebalanceTrigger
from rebalance.strategies.trigger import RebalanceTrigger
from rebalance.utils.date import Date

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_cfg(**overrides):
    """Small config with two synthetic charts of 36 months."""
    base = {
        "mode": "balance",
        "charts": {"data_dir": None, "names": [], "start": None, "end": None},
        "simulated": [
            {
                "name": "stocks",
                "expected_yearly_return": 7.0,
                "is_markovian": False,
                "vola": "mid",
                "vola_smoothing": True,
                "start": "2000/01",
                "n_months": 36,
                "crashes": ["2001/06"],
                "seed": 1,
            },
            {
                "name": "bonds",
                "expected_yearly_return": 2.0,
                "is_markovian": True,
                "vola": "low",
                "vola_smoothing": False,
                "start": "2000/07",
                "n_months": 36,
                "crashes": [],
                "seed": 2,
            },
        ],
        "portfolio": {
            "initial_balance": 1000.0,
            "fractions": [0.6, 0.4],
            "monthly_payments": [{"expression": "100", "start": None, "end": None}],
        },
        "rebalance": {"interval": 6, "deviation_pct": None},
        "stats": {"min_window_months": 10},
    }
    return OmegaConf.merge(OmegaConf.create(base), OmegaConf.create(overrides))


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


class TestBuilders:
    def test_build_trigger(self):
        assert build_trigger(_make_cfg()) == RebalanceTrigger(interval=6)
        cfg = _make_cfg(rebalance={"interval": 0, "deviation_pct": 5})
        assert build_trigger(cfg) == RebalanceTrigger(deviation=0.05)

    def test_build_fractions_default_is_equal(self):
        cfg = _make_cfg(portfolio={"fractions": None})
        assert build_fractions(cfg, 4) == [0.25] * 4

    def test_build_fractions_validation(self):
        with pytest.raises(ConfigError, match="3 fractions for 2"):
            build_fractions(_make_cfg(portfolio={"fractions": [0.2, 0.3, 0.5]}), 2)
        with pytest.raises(ConfigError, match="sum up to 1"):
            build_fractions(_make_cfg(portfolio={"fractions": [0.5, 0.6]}), 2)

    def test_build_monthly_payments(self):
        cfg = _make_cfg(
            portfolio={
                "monthly_payments": [
                    {"expression": "100", "start": None, "end": None},
                    {"expression": "0.01 * current_balance", "start": "2001/01", "end": "2001/12"},
                ]
            }
        )
        payments = build_monthly_payments(cfg)
        assert isinstance(payments, MonthlyPayments)
        assert payments.compute(Date(2000, 5), current_balance=1000.0) == pytest.approx(100.0)
        assert payments.compute(Date(2001, 5), current_balance=1000.0) == pytest.approx(110.0)

    def test_no_monthly_payments(self):
        assert build_monthly_payments(_make_cfg(portfolio={"monthly_payments": []})) is None

    def test_payment_needs_both_interval_ends(self):
        cfg = _make_cfg(
            portfolio={"monthly_payments": [{"expression": "1", "start": "2000/01", "end": None}]}
        )
        with pytest.raises(ConfigError, match="both start and end"):
            build_monthly_payments(cfg)

    def test_build_charts_from_csv_and_simulation(self, tmp_path):
        (tmp_path / "world.csv").write_text("date,value\n2000/01,1\n2000/02,2\n2000/03,3\n")
        cfg = _make_cfg(charts={"data_dir": str(tmp_path), "names": ["world"]})
        charts = build_charts(cfg)
        assert [c.name for c in charts] == ["world", "stocks", "bonds"]
        assert len(charts[1]) == 37
        assert charts[2].start_date == Date(2000, 7)


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------


class TestRun:
    def test_balance_mode(self, capsys):
        result = run(_make_cfg())
        assert isinstance(result, FinalBalance)
        # aligned window 2000/07 - 2003/01 has 30 monthly payments
        assert result.total_payments == pytest.approx(1000.0 + 30 * 100.0)
        assert "BALANCE RESULTS" in capsys.readouterr().out

    def test_best_trigger_mode(self):
        result = run(_make_cfg(mode="best_trigger"))
        assert isinstance(result, BestRebalanceTrigger)
        assert result.best.final_balance >= result.with_best_dev.final_balance

    def test_stats_mode(self):
        result = run(_make_cfg(mode="stats"))
        assert isinstance(result, RebalanceStatsSummary)
        assert result.min_n_months == 10
        assert result.max_n_months == 31

    def test_user_window(self):
        cfg = _make_cfg(charts={"start": "2001/01", "end": "2001/12"})
        result = run(cfg)
        assert result.total_payments == pytest.approx(1000.0 + 11 * 100.0)

    def test_simulate_mode_writes_csv(self, tmp_path):
        paths = run(_make_cfg(mode="simulate", charts={"data_dir": str(tmp_path)}))
        assert sorted(p.split("/")[-1] for p in paths) == ["bonds.csv", "stocks.csv"]
        assert (tmp_path / "stocks.csv").exists()

    def test_unknown_mode(self):
        with pytest.raises(ConfigError, match="unknown mode"):
            run(_make_cfg(mode="plot"))
