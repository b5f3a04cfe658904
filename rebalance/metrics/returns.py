# rebalance/metrics/returns.py

from dataclasses import dataclass

import numpy as np
from scipy.optimize import newton

from rebalance.errors import TooShortError


def yearly_return(total_payments, n_months, final_balance):
    """Average yearly return of ``total_payments`` growing to ``final_balance``.

    Ignores when the payments were made, i.e. treats all of them as if they
    had been invested in month 0.

    :return: ``(yearly_return_perc, total_yield)`` where ``total_yield`` is
        ``final_balance - total_payments``.
    """
    total_yield = final_balance - total_payments
    if n_months <= 0 or total_payments <= 0 or final_balance < 0:
        return float("nan"), total_yield
    yearly_return_perc = ((final_balance / total_payments) ** (12.0 / n_months) - 1.0) * 100.0
    return float(yearly_return_perc), total_yield


def internal_rate_of_return(payments, final_balance, guess=0.005):
    """Money-weighted yearly return in percent.

    :param payments: Cumulative payments per month as emitted by the
        simulator, ``payments[0]`` being the initial balance. The payment of
        month ``i`` is invested at the start of that month, i.e. at ``i - 1``.
    :param final_balance: Balance after the last month.
    :param guess: Starting point for the monthly rate.
    :return: Yearly return in percent, ``nan`` if Newton's method fails.
    """
    payments = np.asarray(payments, dtype=float)
    n_points = len(payments)
    if n_points < 2:
        return float("nan")
    cash_flows = np.zeros(n_points)
    cash_flows[:-1] = -np.diff(payments)
    cash_flows[0] -= payments[0]
    cash_flows[-1] += final_balance
    t = np.arange(n_points)

    def npv(rate):
        return np.sum(cash_flows / (1.0 + rate) ** t)

    try:
        monthly_rate = newton(npv, guess)
    except (RuntimeError, OverflowError):
        return float("nan")
    return float(((1.0 + monthly_rate) ** 12 - 1.0) * 100.0)


@dataclass(frozen=True)
class FinalBalance:
    """Headline numbers of a simulated balance development."""

    final_balance: float
    total_payments: float
    yearly_return_perc: float
    irr_perc: float

    @classmethod
    def from_history(cls, balances, payments):
        """Build from the per-month balances and cumulative payments of a simulation."""
        if len(balances) == 0 or len(payments) == 0:
            raise TooShortError("cannot compute final balance from empty history")
        final_balance = float(balances[-1])
        total_payments = float(payments[-1])
        n_months = len(balances) - 1
        yearly_return_perc, _ = yearly_return(total_payments, n_months, final_balance)
        return cls(
            final_balance=final_balance,
            total_payments=total_payments,
            yearly_return_perc=yearly_return_perc,
            irr_perc=internal_rate_of_return(payments, final_balance),
        )
