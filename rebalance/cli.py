"""
Hydra-based runner for rebalance.

Usage:
    # Search the best rebalance trigger for the default synthetic portfolio:
    uv run rebalance-run

    # Balance development with a yearly rebalance:
    uv run rebalance-run mode=balance rebalance.interval=12

    # With-vs-without rebalancing statistics:
    uv run rebalance-run mode=stats rebalance.interval=null rebalance.deviation_pct=5

    # Historical charts from <data_dir>/<name>.csv instead of synthetic ones:
    uv run rebalance-run charts.data_dir=data 'charts.names=[world,bonds]' simulated=[]

    # Write the synthetic charts as CSV files into charts.data_dir:
    uv run rebalance-run mode=simulate charts.data_dir=data
"""

import logging
import os
import sys

import hydra
from omegaconf import DictConfig, OmegaConf, open_dict

from rebalance.backtester.payments import MonthlyPayments
from rebalance.backtester.simulator import BalanceSimulator
from rebalance.errors import BalanceError, ConfigError
from rebalance.metrics.rebalance_stats import compute_rebalance_stats
from rebalance.metrics.returns import FinalBalance
from rebalance.sampling.random_walk import simulate_chart
from rebalance.search import search_best_trigger
from rebalance.strategies.trigger import RebalanceTrigger
from rebalance.utils.charts import align_charts
from rebalance.utils.data_loader import CsvChartLoader
from rebalance.utils.date import Date, Interval

log = logging.getLogger(__name__)

MODES = ("balance", "best_trigger", "stats", "simulate")


def _parse_date(value):
    return None if value is None else Date.from_string(str(value))


# ---------------------------------------------------------------------------
# Builders: translate the YAML config into core objects
# ---------------------------------------------------------------------------


def build_simulated_charts(cfg: DictConfig):
    charts = []
    for sim_cfg in OmegaConf.select(cfg, "simulated", default=None) or []:
        charts.append(
            simulate_chart(
                start_date=_parse_date(sim_cfg.start),
                n_months=int(sim_cfg.n_months),
                expected_yearly_return=float(sim_cfg.expected_yearly_return),
                vola=sim_cfg.get("vola", "mid"),
                vola_smoothing=bool(sim_cfg.get("vola_smoothing", True)),
                is_markovian=bool(sim_cfg.get("is_markovian", False)),
                crash_dates=[_parse_date(d) for d in sim_cfg.get("crashes", None) or []],
                name=sim_cfg.get("name", None),
                seed=sim_cfg.get("seed", None),
            )
        )
    return charts


def build_charts(cfg: DictConfig):
    """Historical charts from ``charts.data_dir`` followed by the simulated ones."""
    charts = []
    names = OmegaConf.select(cfg, "charts.names", default=None) or []
    if names:
        loader = CsvChartLoader(OmegaConf.select(cfg, "charts.data_dir", default=None))
        charts.extend(loader.load_charts(list(names)))
    charts.extend(build_simulated_charts(cfg))
    return charts


def build_monthly_payments(cfg: DictConfig):
    """``MonthlyPayments`` from ``portfolio.monthly_payments`` or None if there are none."""
    payment_cfgs = OmegaConf.select(cfg, "portfolio.monthly_payments", default=None) or []
    expressions, intervals = [], []
    for payment_cfg in payment_cfgs:
        start = _parse_date(payment_cfg.get("start", None))
        end = _parse_date(payment_cfg.get("end", None))
        if (start is None) != (end is None):
            raise ConfigError(
                f"payment '{payment_cfg.expression}' needs both start and end or neither"
            )
        expressions.append(str(payment_cfg.expression))
        intervals.append(None if start is None else Interval(start, end))
    if not expressions:
        return None
    return MonthlyPayments.from_intervals(expressions, intervals)


def build_trigger(cfg: DictConfig) -> RebalanceTrigger:
    interval = OmegaConf.select(cfg, "rebalance.interval", default=None)
    deviation_pct = OmegaConf.select(cfg, "rebalance.deviation_pct", default=None)
    return RebalanceTrigger(
        interval=int(interval) if interval else None,
        deviation=float(deviation_pct) / 100.0 if deviation_pct else None,
    )


def build_fractions(cfg: DictConfig, n_charts):
    """Target fractions, an equal split if none are configured."""
    fractions = OmegaConf.select(cfg, "portfolio.fractions", default=None)
    if not fractions:
        return [1.0 / n_charts] * n_charts
    fractions = [float(f) for f in fractions]
    if len(fractions) != n_charts:
        raise ConfigError(f"got {len(fractions)} fractions for {n_charts} charts")
    if any(f < 0 for f in fractions) or abs(sum(fractions) - 1.0) > 1e-6:
        raise ConfigError(f"fractions need to be non-negative and sum up to 1, got {fractions}")
    return fractions


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------


def run(cfg: DictConfig):
    """Run the configured mode and return its result."""
    mode = cfg.mode
    if mode not in MODES:
        raise ConfigError(f"unknown mode {mode}, expected one of {MODES}")

    if mode == "simulate":
        loader = CsvChartLoader(OmegaConf.select(cfg, "charts.data_dir", default=None))
        paths = [loader.save_chart(chart) for chart in build_simulated_charts(cfg)]
        for path in paths:
            print(f"Wrote {path}")
        return paths

    charts = build_charts(cfg)
    start_date, end_date, price_devs = align_charts(
        charts,
        _parse_date(OmegaConf.select(cfg, "charts.start", default=None)),
        _parse_date(OmegaConf.select(cfg, "charts.end", default=None)),
    )
    n_months = len(price_devs[0]) - 1
    initial_balance = float(cfg.portfolio.initial_balance)
    monthly_payments = build_monthly_payments(cfg)
    fractions = build_fractions(cfg, len(charts))
    trigger = build_trigger(cfg)
    log.info(f"Aligned {len(charts)} charts from {start_date} to {end_date}")

    print("\n" + "=" * 60)
    print(f"{mode.upper().replace('_', ' ')} RESULTS")
    print("=" * 60)
    print(f"Period:    {start_date} to {end_date} ({n_months} months)")
    for chart, fraction in zip(charts, fractions):
        print(f"  {chart.name}: {fraction * 100:.1f}%")
    print(f"Initial:   {initial_balance:,.2f}")
    if monthly_payments is not None:
        print(f"Payments:  {monthly_payments}")
    print("-" * 60)

    if mode == "balance":
        history = BalanceSimulator(
            price_devs,
            initial_balance,
            fractions,
            trigger=trigger,
            monthly_payments=monthly_payments,
            start_date=start_date,
        ).run()
        result = FinalBalance.from_history(history["balance"], history["payments"])
        print(f"Rebalance:      {trigger}")
        print(f"Total invested: {result.total_payments:,.2f}")
        print(f"Final value:    {result.final_balance:,.2f}")
        print(f"Yearly return:  {result.yearly_return_perc:.2f}%")
        print(f"IRR:            {result.irr_perc:.2f}%")
    elif mode == "best_trigger":
        result = search_best_trigger(
            price_devs, initial_balance, monthly_payments, fractions, start_date
        )
        print(result.to_frame(n_months).to_string())
    else:
        stats = compute_rebalance_stats(
            price_devs,
            initial_balance,
            monthly_payments,
            trigger,
            fractions,
            start_date,
            min_window_months=int(OmegaConf.select(cfg, "stats.min_window_months", default=10)),
        )
        result = stats.mean_across_nmonths()
        print(f"Rebalance: {trigger}")
        print(result.to_frame().to_string(float_format=lambda v: f"{v:,.2f}"))
    print("=" * 60)
    return result


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


@hydra.main(version_base=None, config_path="configs", config_name="config")
def main(cfg: DictConfig):
    # Hydra changes cwd to the output dir; resolve relative paths against original cwd
    orig_cwd = hydra.utils.get_original_cwd()
    data_dir = OmegaConf.select(cfg, "charts.data_dir")
    if data_dir is not None and not os.path.isabs(data_dir):
        with open_dict(cfg):
            cfg.charts.data_dir = os.path.join(orig_cwd, data_dir)

    log.info("Configuration:\n%s", OmegaConf.to_yaml(cfg))

    try:
        return run(cfg)
    except BalanceError as e:
        log.error(f"{type(e).__name__}: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
