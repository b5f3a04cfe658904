"""
Experiment 001: Rebalance Triggers on Synthetic Markets
=======================================================

Does rebalancing pay off on simulated markets, and which trigger works best?

Setup:
  - Stocks: 7% expected yearly return, mid vola, non-Markovian, crashes in
    2008/09 and 2020/03
  - Bonds:  2% expected yearly return, low vola, Markovian
  - 70/30 split, 10,000 initial balance, 500 paid every month

Steps:
  1. Grid of final balances over interval x deviation triggers (heatmap)
  2. Best trigger overall / deviation-only / interval-only, per seed
  3. With-vs-without rebalancing statistics for the best interval trigger,
     bucketed by holding period

Usage:
    uv run python experiments/001_simulated_rebalance_triggers/run_experiment.py
"""

import sys
import warnings
from pathlib import Path

import matplotlib
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

matplotlib.use("Agg")
warnings.filterwarnings("ignore")

# ---------------------------------------------------------------------------
# Path setup
# ---------------------------------------------------------------------------

ROOT = Path(__file__).parent.parent.parent
sys.path.insert(0, str(ROOT))

from rebalance.backtester.payments import MonthlyPayments  # noqa: E402
from rebalance.backtester.simulator import BalanceSimulator  # noqa: E402
from rebalance.metrics.rebalance_stats import compute_rebalance_stats  # noqa: E402
from rebalance.sampling.random_walk import simulate_chart  # noqa: E402
from rebalance.search import search_best_trigger, trigger_grid  # noqa: E402
from rebalance.strategies.trigger import RebalanceStrategy  # noqa: E402
from rebalance.utils.charts import align_charts  # noqa: E402
from rebalance.utils.date import Date  # noqa: E402
from rebalance.utils.logger import setup_logger  # noqa: E402

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

START = Date(2000, 1)
N_MONTHS = 300
CRASHES = [Date(2008, 9), Date(2020, 3)]
FRACTIONS = [0.7, 0.3]
INITIAL = 10_000.0
PAYMENT = "500"
SEEDS = [1, 2, 3, 4, 5]
MIN_WINDOW_MONTHS = 12

RESULTS_DIR = Path(__file__).parent / "results"
FIGURES_DIR = RESULTS_DIR / "figures"
RESULTS_DIR.mkdir(exist_ok=True)
FIGURES_DIR.mkdir(exist_ok=True)

log = setup_logger("experiment_001", str(RESULTS_DIR / "logs"), capture=("rebalance",))


# ---------------------------------------------------------------------------
# Market setup
# ---------------------------------------------------------------------------


def make_market(seed):
    stocks = simulate_chart(
        START, N_MONTHS, 7.0, vola="mid", is_markovian=False,
        crash_dates=CRASHES, name="stocks", seed=seed,
    )
    bonds = simulate_chart(
        START, N_MONTHS, 2.0, vola="low", is_markovian=True,
        name="bonds", seed=seed + 1000,
    )
    start, _, price_devs = align_charts([stocks, bonds])
    return start, price_devs


# ---------------------------------------------------------------------------
# Step 1: trigger grid
# ---------------------------------------------------------------------------


def run_trigger_grid(start, price_devs, payments):
    """Final balance of every grid trigger, as interval x deviation table."""
    sim = BalanceSimulator(
        price_devs, INITIAL, FRACTIONS, monthly_payments=payments, start_date=start
    )
    rows = []
    for trigger in trigger_grid(sim.n_points):
        # intervals up to three years
        if trigger.interval is not None and trigger.interval > 36:
            continue
        balances, _ = sim.final_balances(
            sim.n_points, [0], RebalanceStrategy(FRACTIONS, trigger)
        )
        rows.append(
            {
                "interval": trigger.interval or 0,
                "deviation_perc": round((trigger.deviation or 0) * 100),
                "balance": float(balances[0]),
            }
        )
    return pd.DataFrame(rows).pivot(index="interval", columns="deviation_perc", values="balance")


def fig_trigger_grid(grid, seed):
    fig, ax = plt.subplots(figsize=(12, 10))
    sns.heatmap(grid / 1000, cmap="viridis", ax=ax, cbar_kws={"label": "Final balance (k)"})
    ax.set_xlabel("Deviation threshold (%)")
    ax.set_ylabel("Interval (months)")
    ax.set_title(f"Experiment 001 -- Final balance per trigger (seed {seed})")
    fig.tight_layout()
    path = FIGURES_DIR / f"trigger_grid_seed{seed}.png"
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"  Saved: {path}")


# ---------------------------------------------------------------------------
# Step 2 + 3: best triggers and stats
# ---------------------------------------------------------------------------


def run_best_triggers(start, price_devs, payments, seed):
    best = search_best_trigger(price_devs, INITIAL, payments, FRACTIONS, start)
    df = best.to_frame(n_months=len(price_devs[0]) - 1)
    df["seed"] = seed
    return best, df


def run_stats(start, price_devs, payments, trigger, seed):
    stats = compute_rebalance_stats(
        price_devs, INITIAL, payments, trigger, FRACTIONS, start,
        min_window_months=MIN_WINDOW_MONTHS,
    )
    df = stats.to_frame()
    df["seed"] = seed
    return stats.mean_across_nmonths(), df


def fig_stats_factor(stats_df):
    fig, ax = plt.subplots(figsize=(12, 6))
    for seed, df in stats_df.groupby("seed"):
        ax.plot(df.index, df["factor"], label=f"seed {seed}", linewidth=1.2)
    ax.axhline(1.0, color="black", linewidth=0.8)
    ax.set_xlabel("Holding period (months)")
    ax.set_ylabel("Mean balance with / without rebalancing")
    ax.grid(True, alpha=0.3)
    ax.legend()
    ax.set_title("Experiment 001 -- Rebalancing factor by holding period")
    fig.tight_layout()
    path = FIGURES_DIR / "rebalance_factor.png"
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"  Saved: {path}")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main():
    payments = MonthlyPayments.from_single_payment(PAYMENT)
    best_frames, stats_frames, summaries = [], [], []

    for seed in SEEDS:
        print(f"\n=== SEED {seed} ===")
        start, price_devs = make_market(seed)
        log.info(f"Seed {seed}: {len(price_devs[0])} months from {start}")

        if seed == SEEDS[0]:
            fig_trigger_grid(run_trigger_grid(start, price_devs, payments), seed)

        best, best_df = run_best_triggers(start, price_devs, payments, seed)
        best_frames.append(best_df)
        print(best_df.drop(columns="seed").to_string(float_format=lambda v: f"{v:,.2f}"))

        summary, stats_df = run_stats(
            start, price_devs, payments, best.with_best_interval.trigger, seed
        )
        stats_frames.append(stats_df)
        log.debug(f"Seed {seed}: {len(stats_df)} holding periods")
        summary_df = summary.to_frame()
        summary_df["seed"] = seed
        summaries.append(summary_df)
        print(f"Rebalance: {best.with_best_interval.trigger}")
        print(summary_df.drop(columns="seed").to_string(float_format=lambda v: f"{v:,.3f}"))

    best_all = pd.concat(best_frames)
    stats_all = pd.concat(stats_frames)
    summary_all = pd.concat(summaries)
    best_all.to_csv(RESULTS_DIR / "best_triggers.csv")
    stats_all.to_csv(RESULTS_DIR / "rebalance_stats.csv")
    summary_all.to_csv(RESULTS_DIR / "rebalance_stats_summary.csv")

    print("\n=== GENERATING FIGURES ===")
    fig_stats_factor(stats_all)

    print("\n=== SUMMARY ===")
    mean_factor = summary_all.loc["all", "factor"]
    print(f"Mean factor over all holding periods: {np.mean(mean_factor):.3f}")
    print()


if __name__ == "__main__":
    main()
