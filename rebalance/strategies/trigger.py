# rebalance/strategies/trigger.py

from dataclasses import dataclass
from typing import Optional

import numpy as np

from rebalance.errors import ConfigError


@dataclass(frozen=True)
class RebalanceTrigger:
    """Rule deciding when a portfolio is rebalanced.

    Attributes:
        interval: Rebalance every ``interval`` months. ``None`` or 0 disables
            the interval condition.
        deviation: Rebalance when some asset's share of the total deviates
            from its target fraction by more than this fraction (0..1).
            ``None`` disables the deviation condition.

    If both are set, both conditions must hold.  If only one is set, it
    alone decides.  If none is set, the trigger never fires.
    """

    interval: Optional[int] = None
    deviation: Optional[float] = None

    def __post_init__(self):
        if self.interval is not None and self.interval < 0:
            raise ConfigError(f"rebalance interval must not be negative, got {self.interval}")
        if self.deviation is not None and not 0.0 <= self.deviation <= 1.0:
            raise ConfigError(
                f"rebalance deviation must be a fraction in [0, 1], got {self.deviation}"
            )

    @classmethod
    def never(cls):
        return cls()

    @property
    def is_set(self) -> bool:
        return bool(self.interval) or self.deviation is not None

    def is_triggered_by_interval(self, month: int) -> bool:
        return bool(self.interval) and month % self.interval == 0

    def is_triggered_by_deviation(self, balances, fractions):
        """Whether the largest share deviation exceeds the threshold.

        ``balances`` is either one portfolio ``(n_assets,)`` or a batch
        ``(n_portfolios, n_assets)``; the result has the matching shape.
        """
        balances = np.asarray(balances, dtype=float)
        if self.deviation is None:
            return np.zeros(balances.shape[:-1], dtype=bool)
        totals = balances.sum(axis=-1, keepdims=True)
        with np.errstate(divide="ignore", invalid="ignore"):
            max_dev = np.max(np.abs(np.asarray(fractions) - balances / totals), axis=-1)
        return (max_dev > self.deviation) & (totals[..., 0] != 0.0)

    def is_triggered(self, month, balances, fractions):
        balances = np.asarray(balances, dtype=float)
        by_interval = self.is_triggered_by_interval(month)
        if self.interval and not by_interval:
            triggered = False
        elif self.deviation is not None:
            triggered = self.is_triggered_by_deviation(balances, fractions)
        else:
            triggered = by_interval
        if balances.ndim == 1:
            return bool(triggered)
        return np.broadcast_to(np.asarray(triggered, dtype=bool), balances.shape[:1])

    def __str__(self):
        interval = "None" if self.interval is None else f"{self.interval}"
        deviation = "None" if self.deviation is None else f"{round(self.deviation * 100)}%"
        return f"interval={interval}, deviation={deviation}"


class RebalanceStrategy:
    """Target fractions plus the trigger that restores them.

    :param fractions: Target share per asset, summing to 1.
    :param trigger: :class:`RebalanceTrigger`, ``None`` means never rebalance.
    """

    def __init__(self, fractions, trigger=None):
        self.fractions = np.asarray(fractions, dtype=float)
        self.trigger = trigger if trigger is not None else RebalanceTrigger.never()

    def without_rebalancing(self):
        return RebalanceStrategy(self.fractions, RebalanceTrigger.never())

    def allocate_money(self, money_invested):
        """Split ``money_invested`` across assets by the target fractions."""
        return self.fractions * money_invested

    def should_rebalance(self, month, balances):
        return self.trigger.is_triggered(month, balances, self.fractions)

    def rebalance(self, balances):
        """Redistribute the total of each portfolio by the target fractions."""
        balances = np.asarray(balances, dtype=float)
        return balances.sum(axis=-1, keepdims=True) * self.fractions
