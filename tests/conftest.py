"""Shared fixtures for the rebalance test suite.

Provides small hand-made price developments whose balances can be worked
out on paper, plus a chart factory, so that no test depends on random
numbers or files outside ``tmp_path``.
"""

import pytest

from rebalance.utils.charts import Chart
from rebalance.utils.date import Date

# ---------------------------------------------------------------------------
# Chart factory
# ---------------------------------------------------------------------------


def make_chart(name, start, values):
    """Chart starting at ``start`` (``"YYYY/MM"``) with one value per month."""
    return Chart.from_start_date(name, Date.from_string(start), values)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def start_date():
    return Date(2000, 1)


@pytest.fixture
def dip_and_recovery():
    """Flat asset plus an asset that halves in month 3 and doubles back in month 4.

    Rebalancing right after the dip turns an equal split of 1.0 into 1.125,
    not rebalancing leaves it at 1.0.
    """
    return [
        [1.0, 1.0, 1.0, 1.0, 1.0, 1.0],
        [1.0, 1.0, 1.0, 0.5, 1.0, 1.0],
    ]


@pytest.fixture
def late_dip():
    """Like ``dip_and_recovery`` but the dip is in month 4."""
    return [
        [1.0, 1.0, 1.0, 1.0, 1.0, 1.0],
        [1.0, 1.0, 1.0, 1.0, 0.5, 1.0],
    ]


@pytest.fixture
def world_and_em():
    """World doubles in months 5 and 10, emerging markets stay flat."""
    world = [1.0] * 5 + [2.0] * 5 + [4.0] * 5
    em = [1.0] * 15
    return [world, em]


@pytest.fixture
def overlapping_charts():
    """Two charts overlapping from 2000/06 to 2000/12."""
    return [
        make_chart("a", "2000/01", [float(i) for i in range(1, 13)]),
        make_chart("b", "2000/06", [float(i) for i in range(10, 23)]),
    ]
