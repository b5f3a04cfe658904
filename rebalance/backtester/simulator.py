# rebalance/backtester/simulator.py

import logging
from collections import deque

import numpy as np
import pandas as pd

from rebalance.errors import ConfigError, EmptyInputError, TooShortError
from rebalance.strategies.trigger import RebalanceStrategy
from rebalance.utils.date import fill_between

log = logging.getLogger(__name__)


def find_shortest_len(price_devs):
    """Length of the shortest price development.

    :raises EmptyInputError: if ``price_devs`` is empty.
    :raises TooShortError: if a price development has less than 2 months.
    """
    if price_devs is None or len(price_devs) == 0:
        raise EmptyInputError("no price developments given")
    shortest_len = min(len(pd_) for pd_ in price_devs)
    if shortest_len < 2:
        raise TooShortError(
            f"need at least 2 months of prices to simulate a single step, got {shortest_len}"
        )
    return shortest_len


class BalanceSimulator:
    def __init__(
        self,
        price_devs,
        initial_balance,
        fractions,
        trigger=None,
        monthly_payments=None,
        start_date=None,
    ):
        """
        Initialize the BalanceSimulator.

        :param price_devs: One price development per asset (sequences of floats),
            aligned such that index ``i`` refers to the same month everywhere.
            Only the first ``shortest length`` months are used.
        :param initial_balance: Total balance at month 0, split by ``fractions``.
        :param fractions: Target fraction per asset, summing to 1.
        :param trigger: (optional) :class:`RebalanceTrigger`. If None, the
            portfolio is never rebalanced.
        :param monthly_payments: (optional) :class:`MonthlyPayments` paid at the
            start of every month and split by ``fractions``.
        :param start_date: :class:`Date` of month 0. Required with payments.
        """
        self.n_points = find_shortest_len(price_devs)
        self.prices = np.vstack(
            [np.asarray(pd_, dtype=float)[: self.n_points] for pd_ in price_devs]
        )
        self.initial_balance = float(initial_balance)
        self.strategy = RebalanceStrategy(fractions, trigger)
        if len(self.strategy.fractions) != self.prices.shape[0]:
            raise ConfigError(
                f"got {len(self.strategy.fractions)} fractions for {self.prices.shape[0]} "
                "price developments"
            )
        if monthly_payments is not None and start_date is None:
            raise ConfigError("monthly payments need a start date")
        self.monthly_payments = monthly_payments
        self.start_date = start_date
        self._schedule = None

    @property
    def n_assets(self):
        return self.prices.shape[0]

    def _payment_schedule(self):
        """Payments of every month for schedules that do not read the balance."""
        if self._schedule is None:
            self._schedule = np.array(
                [
                    self.monthly_payments.compute(self.start_date + i, 0.0, self.initial_balance)
                    for i in range(self.n_points)
                ]
            )
        return self._schedule

    def _compute_payments(self, offsets, month, totals):
        if not self.monthly_payments.depends_on_balance:
            return self._payment_schedule()[offsets + month]
        payments = np.empty(len(offsets))
        for row, offset in enumerate(offsets):
            current_date = self.start_date + int(offset + month)
            payments[row] = self.monthly_payments.compute(
                current_date, totals[row], self.initial_balance
            )
        return payments

    def iter_windows(self, n_points, offsets, strategy=None):
        """Simulate several windows of ``n_points`` months at once.

        Window ``k`` covers the months ``offsets[k] .. offsets[k] + n_points - 1``.
        Each window is its own portfolio, i.e. row ``k`` of the balance matrix.

        :yields: ``(total_balances, total_payments)`` per month, both arrays
            with one entry per window. Month 0 is the initial state.
        """
        strategy = strategy if strategy is not None else self.strategy
        offsets = np.asarray(offsets, dtype=int)
        if n_points < 2:
            raise TooShortError(f"need at least 2 months per window, got {n_points}")
        if len(offsets) == 0 or offsets.min() < 0 or offsets.max() + n_points > self.n_points:
            raise ConfigError(
                f"windows of {n_points} months at offsets {offsets.tolist()} do not fit into "
                f"{self.n_points} months"
            )

        balances = np.tile(strategy.allocate_money(self.initial_balance), (len(offsets), 1))
        total_payments = np.full(len(offsets), self.initial_balance)
        yield balances.sum(axis=1), total_payments.copy()

        for month in range(1, n_points):
            idx = offsets + month
            ratios = (self.prices[:, idx] / self.prices[:, idx - 1]).T
            if self.monthly_payments is not None:
                payments = self._compute_payments(offsets, month, balances.sum(axis=1))
                # paid at the start of the month, so it earns this month's return
                balances = balances + payments[:, None] * strategy.fractions
                total_payments = total_payments + payments
            balances = balances * ratios
            to_rebalance = strategy.should_rebalance(month, balances)
            if to_rebalance.any():
                balances[to_rebalance] = strategy.rebalance(balances[to_rebalance])
            yield balances.sum(axis=1), total_payments.copy()

    def final_balances(self, n_points, offsets, strategy=None):
        """Final ``(total_balances, total_payments)`` of :meth:`iter_windows`."""
        last = deque(self.iter_windows(n_points, offsets, strategy), maxlen=1)
        return last[0]

    def iter_months(self):
        """Yield ``(total_balance, total_payments)`` for every month."""
        for balances, payments in self.iter_windows(self.n_points, [0]):
            yield float(balances[0]), float(payments[0])

    def run(self):
        """Simulate all months and return them as a DataFrame.

        Columns:
            - balance: Total balance at the end of the month
            - payments: Sum of the initial balance and all payments so far

        The index holds ``YYYY/MM`` strings if a start date is known, else the
        month number.
        """
        df = pd.DataFrame.from_records(list(self.iter_months()), columns=["balance", "payments"])
        if self.start_date is not None:
            dates = fill_between(self.start_date, self.start_date + (self.n_points - 1))
            df.index = pd.Index([str(d) for d in dates], name="date")
        else:
            df.index.name = "month"
        log.debug(
            f"Simulated {self.n_points} months of {self.n_assets} assets, "
            f"final balance {df['balance'].iloc[-1]:.2f}"
        )
        return df

    def final_balance(self):
        """``(final_balance, total_payments)`` after the last month."""
        balances, payments = self.final_balances(self.n_points, [0])
        return float(balances[0]), float(payments[0])


def simulate_balance(
    price_devs,
    initial_balance,
    monthly_payments=None,
    trigger=None,
    fractions=None,
    start_date=None,
):
    """Month-by-month balance of a portfolio.

    Inputs are validated right away; the returned iterator then lazily
    yields ``(total_balance, total_payments)`` per month, starting with
    ``(initial_balance, initial_balance)`` for month 0.  Payment evaluation
    errors surface while iterating.

    ``fractions`` defaults to an equal split across all assets.
    """
    if fractions is None and price_devs is not None and len(price_devs) > 0:
        fractions = [1.0 / len(price_devs)] * len(price_devs)
    simulator = BalanceSimulator(
        price_devs,
        initial_balance,
        fractions,
        trigger=trigger,
        monthly_payments=monthly_payments,
        start_date=start_date,
    )
    return simulator.iter_months()
