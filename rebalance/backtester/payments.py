"""Monthly payment rules.

A payment rule is a small arithmetic expression, e.g. ``"500"`` or
``"0.01 * current_balance"``, optionally restricted to an
:class:`~rebalance.utils.date.Interval` of months.  Expressions are
evaluated with :mod:`asteval` and may use two variables:

- ``current_balance``: total portfolio balance before this month's payment,
- ``initial_balance``: total balance at the start of the simulation.

All rules active in a month are summed.  Negative results are withdrawals.

Example::

    from rebalance.backtester.payments import MonthlyPayments
    from rebalance.utils.date import Date, Interval

    payments = MonthlyPayments.from_intervals(
        ["500", "0.004 * current_balance"],
        [
            Interval(Date(2000, 1), Date(2009, 12)),
            Interval(Date(2010, 1), Date(2019, 12)),
        ],
    )
    payments.compute(Date(2012, 5), current_balance=100_000, initial_balance=10_000)
    # 400.0
"""

import ast
import numbers

from asteval import Interpreter

from rebalance.errors import ConfigError, EvaluationError


def evaluate_expression(interpreter, expr, variables) -> float:
    """Evaluate ``expr`` with ``variables`` bound and return a float.

    :raises EvaluationError: if evaluation fails or the result is not a number.
    """
    for name, value in variables.items():
        interpreter.symtable[name] = value
    result = interpreter.eval(expr, show_errors=False)
    if interpreter.error:
        msg = ": ".join(interpreter.error[0].get_error())
        raise EvaluationError(f"could not evaluate payment '{expr}'; {msg}")
    if isinstance(result, bool) or not isinstance(result, numbers.Real):
        raise EvaluationError(f"payment '{expr}' evaluated to non-number {result!r}")
    return float(result)


class MonthlyPayments:
    """Sum of interval-scoped payment expressions.

    :param expressions: Payment expressions (strings or plain numbers).
    :param intervals: One :class:`Interval` per expression, or ``None`` for
        rules that apply every month.
    """

    def __init__(self, expressions, intervals=None):
        expressions = [str(e).strip() for e in expressions]
        if intervals is None:
            intervals = [None] * len(expressions)
        intervals = list(intervals)
        if len(expressions) != len(intervals):
            raise ConfigError(
                f"got {len(expressions)} payment expressions but {len(intervals)} intervals"
            )
        self._interpreter = Interpreter(use_numpy=False)
        self.expressions = expressions
        self.intervals = intervals
        self._names = set()
        for expr in expressions:
            try:
                node = self._interpreter.parse(expr)
            except Exception as e:
                raise EvaluationError(f"could not parse payment '{expr}'; {e}") from e
            if node is None:
                raise EvaluationError(f"could not parse payment '{expr}'")
            self._names.update(n.id for n in ast.walk(node) if isinstance(n, ast.Name))

    @classmethod
    def from_single_payment(cls, expr):
        return cls([expr])

    @classmethod
    def from_intervals(cls, expressions, intervals):
        return cls(expressions, intervals)

    @property
    def depends_on_balance(self) -> bool:
        return "current_balance" in self._names

    def compute(self, current_date, current_balance=0.0, initial_balance=0.0) -> float:
        """Total payment of all rules active in ``current_date``."""
        variables = {
            "current_balance": float(current_balance),
            "initial_balance": float(initial_balance),
        }
        total = 0.0
        for expr, interval in zip(self.expressions, self.intervals):
            if interval is None or interval.contains(current_date):
                total += evaluate_expression(self._interpreter, expr, variables)
        return total

    def __repr__(self):
        rules = ", ".join(
            f"{e!r}" if i is None else f"{e!r} in {i}"
            for e, i in zip(self.expressions, self.intervals)
        )
        return f"MonthlyPayments({rules})"
