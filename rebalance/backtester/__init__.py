# rebalance/backtester/__init__.py

from .payments import MonthlyPayments, evaluate_expression
from .simulator import BalanceSimulator, find_shortest_len, simulate_balance

__all__ = [
    "BalanceSimulator",
    "MonthlyPayments",
    "evaluate_expression",
    "find_shortest_len",
    "simulate_balance",
]
