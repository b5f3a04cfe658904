# rebalance/metrics/__init__.py

from .rebalance_stats import (
    RebalanceStatRecord,
    RebalanceStats,
    RebalanceStatsSummary,
    compute_rebalance_stats,
)
from .returns import FinalBalance, internal_rate_of_return, yearly_return

__all__ = [
    "FinalBalance",
    "RebalanceStatRecord",
    "RebalanceStats",
    "RebalanceStatsSummary",
    "compute_rebalance_stats",
    "internal_rate_of_return",
    "yearly_return",
]
