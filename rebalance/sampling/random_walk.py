"""
Synthetic monthly price paths.

A path starts at ``START_PRICE`` and compounds one random monthly return per
step.  The volatility of each step is the median of the last
``sigma_window_size`` sampled sigmas, so single spikes are smoothed out.
Crash months damp the drift of the months around them.

In non-Markovian mode the drift is recalibrated after volatile steps such
that the path still heads for the expected yearly return, i.e. the path
is mean-reverting.

Usage::

    from rebalance.sampling.random_walk import simulate_chart
    from rebalance.utils.date import Date

    chart = simulate_chart(Date(2000, 1), 240, expected_yearly_return=6.0, vola="mid",
                           crash_dates=[Date(2008, 9)], seed=42)
"""

import logging
from collections import deque

import numpy as np

from rebalance.errors import ConfigError
from rebalance.utils.charts import Chart
from rebalance.utils.date import months_between

log = logging.getLogger(__name__)

START_PRICE = 10000.0
CRASH_RADIUS = 3
CRASH_BASE_FACTOR = 0.7

VOLA_LEVELS = {"no": 0.0, "low": 0.005, "mid": 0.01, "high": 0.02}


def vola_window(smoothing: bool) -> int:
    return 12 if smoothing else 1


def crash_factor(month, crash_months, radius=CRASH_RADIUS, base_factor=CRASH_BASE_FACTOR):
    """Drift multiplier of ``month``.

    ``base_factor`` at a crash month, growing linearly to 1.0 at ``radius``
    months distance. Overlapping crashes use the smallest factor.
    """
    factor = 1.0
    for crash in crash_months:
        distance = abs(month - crash)
        if distance < radius:
            factor = min(factor, base_factor + (1.0 - base_factor) * distance / radius)
    return factor


def random_walk(
    expected_yearly_return,
    is_markovian,
    sigma_mean,
    sigma_window_size,
    n_months,
    crash_months=(),
    seed=None,
    crash_radius=CRASH_RADIUS,
    crash_base_factor=CRASH_BASE_FACTOR,
):
    """
    Generate a price path of ``n_months + 1`` prices starting at ``START_PRICE``.

    :param expected_yearly_return: Target return per year in percent.
    :param is_markovian: If False, the drift is recalibrated whenever the
        smoothed sigma exceeds ``sigma_mean``.
    :param sigma_mean: Mean and spread of the sampled monthly sigmas.
    :param sigma_window_size: Number of sampled sigmas the median is taken over.
    :param n_months: Number of monthly steps.
    :param crash_months: Indices into the path around which the drift is damped.
    :param seed: Seed for reproducible paths.
    :return: numpy array of prices.
    """
    if sigma_mean < 0:
        raise ConfigError(f"sigma mean must not be negative, got {sigma_mean}")
    if sigma_window_size < 1:
        raise ConfigError(f"sigma window size must be at least 1, got {sigma_window_size}")
    if n_months < 0:
        raise ConfigError(f"number of months must not be negative, got {n_months}")

    rng = np.random.default_rng(seed)
    mu_target = (1.0 + expected_yearly_return / 100.0) ** (1.0 / 12.0)
    mu = mu_target
    sigmas = deque(maxlen=sigma_window_size)

    prices = np.empty(n_months + 1)
    prices[0] = START_PRICE
    for i in range(1, n_months + 1):
        sigmas.append(abs(rng.normal(sigma_mean, sigma_mean)))
        sigma = float(np.median(sigmas))
        if not is_markovian and sigma > sigma_mean:
            realized = prices[i - 1] / START_PRICE
            remaining = n_months - i + 1
            if realized > 0:
                mu = (mu_target**n_months / realized) ** (1.0 / remaining)
        factor = crash_factor(i, crash_months, crash_radius, crash_base_factor)
        prices[i] = prices[i - 1] * rng.normal(mu * factor, sigma)
    return prices


generate_price_path = random_walk


def simulated_chart_name(expected_yearly_return, n_months, vola, is_markovian):
    return f"{expected_yearly_return}_{n_months}_{vola}_{'mrkv' if is_markovian else 'non-mrkv'}"


def simulate_chart(
    start_date,
    n_months,
    expected_yearly_return,
    vola="mid",
    vola_smoothing=True,
    is_markovian=False,
    crash_dates=(),
    name=None,
    seed=None,
) -> Chart:
    """Generate a synthetic :class:`Chart` from ``start_date`` to ``start_date + n_months``.

    :param vola: One of ``VOLA_LEVELS``.
    :param crash_dates: :class:`Date` objects; those outside the chart are ignored.
    """
    if vola not in VOLA_LEVELS:
        raise ConfigError(f"unknown vola {vola}, expected one of {list(VOLA_LEVELS)}")
    end_date = start_date + n_months
    crash_dates = list(crash_dates)
    crash_months = [
        months_between(start_date, d) for d in crash_dates if start_date <= d <= end_date
    ]
    if len(crash_months) < len(crash_dates):
        log.debug(f"Dropped {len(crash_dates) - len(crash_months)} crash dates outside the chart")
    values = random_walk(
        expected_yearly_return,
        is_markovian,
        VOLA_LEVELS[vola],
        vola_window(vola_smoothing),
        n_months,
        crash_months,
        seed=seed,
    )
    if name is None:
        name = simulated_chart_name(expected_yearly_return, n_months, vola, is_markovian)
    return Chart.from_start_date(name, start_date, values)
