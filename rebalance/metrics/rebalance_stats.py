# rebalance/metrics/rebalance_stats.py

import logging
from dataclasses import asdict, dataclass
from typing import List

import numpy as np
import pandas as pd

from rebalance.backtester.simulator import BalanceSimulator, find_shortest_len
from rebalance.errors import ConfigError, TooShortError
from rebalance.strategies.trigger import RebalanceStrategy

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RebalanceStatRecord:
    """Mean final balance over all windows of ``n_months`` points."""

    mean_w_reb: float
    mean_wo_reb: float
    n_months: int

    @property
    def factor(self):
        return self.mean_w_reb / self.mean_wo_reb if self.mean_wo_reb else float("nan")


@dataclass(frozen=True)
class RebalanceStatsSummary:
    """Records bucketed by window length at the 33rd and 67th percentile.

    The buckets are ``min_n_months .. n_months_33``, ``n_months_33 ..
    n_months_67``, ``n_months_67 .. max_n_months`` and all records, where each
    border label is the first window length of the next bucket.
    """

    mean_across_months_w_reb_min_33: float
    mean_across_months_wo_reb_min_33: float
    mean_across_months_w_reb_33_67: float
    mean_across_months_wo_reb_33_67: float
    mean_across_months_w_reb_67_max: float
    mean_across_months_wo_reb_67_max: float
    mean_across_months_w_reb: float
    mean_across_months_wo_reb: float
    min_n_months: int
    n_months_33: int
    n_months_67: int
    max_n_months: int

    def to_frame(self) -> pd.DataFrame:
        """One row per bucket with both means and their ratio."""
        rows = [
            (
                f"{self.min_n_months} - {self.n_months_33}",
                self.mean_across_months_w_reb_min_33,
                self.mean_across_months_wo_reb_min_33,
            ),
            (
                f"{self.n_months_33} - {self.n_months_67}",
                self.mean_across_months_w_reb_33_67,
                self.mean_across_months_wo_reb_33_67,
            ),
            (
                f"{self.n_months_67} - {self.max_n_months}",
                self.mean_across_months_w_reb_67_max,
                self.mean_across_months_wo_reb_67_max,
            ),
            ("all", self.mean_across_months_w_reb, self.mean_across_months_wo_reb),
        ]
        df = pd.DataFrame(rows, columns=["n_months", "mean_w_reb", "mean_wo_reb"])
        df["factor"] = df["mean_w_reb"] / df["mean_wo_reb"]
        return df.set_index("n_months")


def _bucket_means(records):
    return (
        float(np.mean([r.mean_w_reb for r in records])),
        float(np.mean([r.mean_wo_reb for r in records])),
    )


class RebalanceStats:
    def __init__(self, records: List[RebalanceStatRecord]):
        self.records = list(records)

    def __len__(self):
        return len(self.records)

    def mean_across_nmonths(self) -> RebalanceStatsSummary:
        """Average the records per third of the window lengths.

        :raises TooShortError: if there are less than 3 records.
        """
        n = len(self.records)
        if n < 3:
            raise TooShortError(f"need at least 3 window lengths to summarize, got {n}")
        i33 = max(1, n * 33 // 100)
        i67 = max(i33 + 1, n * 67 // 100)
        w_min_33, wo_min_33 = _bucket_means(self.records[:i33])
        w_33_67, wo_33_67 = _bucket_means(self.records[i33:i67])
        w_67_max, wo_67_max = _bucket_means(self.records[i67:])
        w_all, wo_all = _bucket_means(self.records)
        return RebalanceStatsSummary(
            mean_across_months_w_reb_min_33=w_min_33,
            mean_across_months_wo_reb_min_33=wo_min_33,
            mean_across_months_w_reb_33_67=w_33_67,
            mean_across_months_wo_reb_33_67=wo_33_67,
            mean_across_months_w_reb_67_max=w_67_max,
            mean_across_months_wo_reb_67_max=wo_67_max,
            mean_across_months_w_reb=w_all,
            mean_across_months_wo_reb=wo_all,
            min_n_months=self.records[0].n_months,
            n_months_33=self.records[i33].n_months,
            n_months_67=self.records[i67].n_months,
            max_n_months=self.records[-1].n_months,
        )

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame.from_records([asdict(r) for r in self.records])
        if df.empty:
            return pd.DataFrame(columns=["mean_w_reb", "mean_wo_reb", "factor"])
        df["factor"] = df["mean_w_reb"] / df["mean_wo_reb"]
        return df.set_index("n_months")


def compute_rebalance_stats(
    price_devs,
    initial_balance,
    monthly_payments,
    trigger,
    fractions,
    start_date=None,
    min_window_months=10,
) -> RebalanceStats:
    """
    Compare rebalancing against buy-and-hold over all sub-windows of the history.

    For every window length from ``min_window_months`` up to the full length,
    every start offset is simulated once with ``trigger`` and once without
    rebalancing. All offsets of one length run as a single batch.

    :param price_devs: One aligned price development per asset.
    :param initial_balance: Total balance at the start of every window.
    :param monthly_payments: :class:`MonthlyPayments` or None. Payment dates
        follow the shifted start date of each window.
    :param trigger: :class:`RebalanceTrigger` with an interval or a deviation.
    :param fractions: Target fraction per asset.
    :param start_date: :class:`Date` of the first price, required with payments.
    :param min_window_months: Shortest window length in months.
    :return: :class:`RebalanceStats` with one record per window length.
    """
    if trigger is None or not trigger.is_set:
        raise ConfigError("neither rebalance interval nor deviation given")
    if min_window_months < 2:
        raise ConfigError(f"minimum window must be at least 2 months, got {min_window_months}")
    n_points = find_shortest_len(price_devs)
    if n_points < min_window_months:
        raise TooShortError(
            f"history of {n_points} months is shorter than the minimum window of "
            f"{min_window_months} months"
        )

    simulator = BalanceSimulator(
        price_devs,
        initial_balance,
        fractions,
        monthly_payments=monthly_payments,
        start_date=start_date,
    )
    with_reb = RebalanceStrategy(fractions, trigger)
    without_reb = with_reb.without_rebalancing()

    records = []
    for n_months in range(min_window_months, n_points + 1):
        offsets = np.arange(n_points - n_months + 1)
        w_reb, _ = simulator.final_balances(n_months, offsets, with_reb)
        wo_reb, _ = simulator.final_balances(n_months, offsets, without_reb)
        records.append(
            RebalanceStatRecord(
                mean_w_reb=float(np.mean(w_reb)),
                mean_wo_reb=float(np.mean(wo_reb)),
                n_months=n_months,
            )
        )
    log.debug(f"Computed rebalance stats for {len(records)} window lengths")
    return RebalanceStats(records)
