"""
Rebalance trigger search for rebalance.

Runs a grid of rebalance triggers over the same price developments and
keeps the best ones.  The grid crosses

- intervals ``0 .. shortest_len // 2 - 1`` months (0 = no interval condition),
- deviation thresholds ``0, 1, ..., 9, 20, 30, 40, 75`` percent
  (0 = no deviation condition).

Interval 0 with deviation 0 is the never-rebalance baseline.  Triggers are
visited intervals first, deviations second, and a candidate replaces the
current best only with a strictly larger final balance, so ties keep the
first candidate.

Usage::

    from rebalance.search import search_best_trigger

    best = search_best_trigger(price_devs, 10_000.0, None, [0.7, 0.3], start_date)
    best.best.trigger, best.best.final_balance
"""

import logging
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from rebalance.backtester.simulator import BalanceSimulator, find_shortest_len
from rebalance.errors import NotFoundError
from rebalance.metrics.returns import yearly_return
from rebalance.strategies.trigger import RebalanceStrategy, RebalanceTrigger

log = logging.getLogger(__name__)

DEVIATION_CANDIDATES_PERC = (0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 20, 30, 40, 75)


@dataclass(frozen=True)
class TriggerResult:
    """Outcome of simulating one trigger to the end."""

    trigger: RebalanceTrigger
    final_balance: float
    total_payments: float


@dataclass(frozen=True)
class BestRebalanceTrigger:
    """Best triggers found by :func:`search_best_trigger`.

    Attributes:
        best: Highest final balance across the whole grid.
        with_best_dev: Highest final balance among deviation-only triggers.
        with_best_interval: Highest final balance among interval-only triggers.
    """

    best: TriggerResult
    with_best_dev: TriggerResult
    with_best_interval: TriggerResult

    def to_frame(self, n_months: Optional[int] = None) -> pd.DataFrame:
        """One row per notion of best, with the yearly return if ``n_months`` is given."""
        rows = []
        for label, result in (
            ("best", self.best),
            ("best deviation", self.with_best_dev),
            ("best interval", self.with_best_interval),
        ):
            deviation = result.trigger.deviation
            row = {
                "kind": label,
                "balance": result.final_balance,
                "total_payments": result.total_payments,
                "interval": result.trigger.interval,
                "deviation_perc": None if deviation is None else round(deviation * 100),
            }
            if n_months:
                row["yearly_return_perc"], _ = yearly_return(
                    result.total_payments, n_months, result.final_balance
                )
            rows.append(row)
        return pd.DataFrame.from_records(rows, index="kind")


def trigger_grid(shortest_len):
    """All candidate triggers in search order."""
    for interval in range(0, shortest_len // 2):
        for dev_perc in DEVIATION_CANDIDATES_PERC:
            yield RebalanceTrigger(
                interval=interval if interval > 0 else None,
                deviation=dev_perc / 100.0 if dev_perc > 0 else None,
            )


def _keep_better(current, candidate):
    if current is None or candidate.final_balance > current.final_balance:
        return candidate
    return current


def search_best_trigger(
    price_devs,
    initial_balance,
    monthly_payments,
    fractions,
    start_date=None,
) -> BestRebalanceTrigger:
    """Grid search for the rebalance trigger with the highest final balance.

    :param price_devs: One aligned price development per asset.
    :param initial_balance: Total balance at month 0.
    :param monthly_payments: :class:`MonthlyPayments` or None.
    :param fractions: Target fraction per asset.
    :param start_date: :class:`Date` of month 0, required with payments.
    :raises EmptyInputError: if no price development is given.
    :raises NotFoundError: if a category of triggers has no candidate, e.g.
        interval-only triggers for series shorter than 4 months.
    """
    shortest_len = find_shortest_len(price_devs)
    simulator = BalanceSimulator(
        price_devs,
        initial_balance,
        fractions,
        monthly_payments=monthly_payments,
        start_date=start_date,
    )

    best = with_best_dev = with_best_interval = None
    n_candidates = 0
    for trigger in trigger_grid(shortest_len):
        strategy = RebalanceStrategy(fractions, trigger)
        balances, payments = simulator.final_balances(shortest_len, [0], strategy)
        result = TriggerResult(trigger, float(balances[0]), float(payments[0]))
        n_candidates += 1

        best = _keep_better(best, result)
        if trigger.interval is None and trigger.deviation is not None:
            with_best_dev = _keep_better(with_best_dev, result)
        if trigger.interval is not None and trigger.deviation is None:
            with_best_interval = _keep_better(with_best_interval, result)

    log.debug(f"Searched {n_candidates} rebalance triggers over {shortest_len} months")
    if best is None:
        raise NotFoundError("no rebalance trigger candidates")
    if with_best_dev is None:
        raise NotFoundError("no deviation-only rebalance trigger candidates")
    if with_best_interval is None:
        raise NotFoundError(
            f"no interval-only rebalance trigger candidates for {shortest_len} months"
        )
    log.debug(f"Best rebalance trigger: {best.trigger} with balance {best.final_balance:.2f}")
    return BestRebalanceTrigger(best, with_best_dev, with_best_interval)
