# rebalance/sampling/__init__.py

from .random_walk import VOLA_LEVELS, generate_price_path, random_walk, simulate_chart

__all__ = ["VOLA_LEVELS", "generate_price_path", "random_walk", "simulate_chart"]
