# rebalance/strategies/__init__.py

from .trigger import RebalanceStrategy, RebalanceTrigger

__all__ = ["RebalanceStrategy", "RebalanceTrigger"]
