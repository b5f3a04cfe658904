# rebalance/utils/charts.py

import numpy as np

from rebalance.errors import AlignmentError, ConfigError, EmptyInputError
from rebalance.utils.date import Date, fill_between


def adapt_pricedev_to_initial_balance(initial_balance, values):
    """Rescale a price development such that it starts at ``initial_balance``."""
    values = np.asarray(values, dtype=float)
    if len(values) == 0:
        return values
    return values * initial_balance / values[0]


def slice_by_date(dates, start_date, end_date, to_be_sliced):
    """Slice ``to_be_sliced`` to the months ``start_date .. end_date`` of ``dates``."""
    start_idx = next((i for i, d in enumerate(dates) if d >= start_date), None)
    if start_idx is None:
        raise AlignmentError(f"slice by date - could not find start idx of {start_date}")
    end_idx = next((i for i, d in enumerate(dates) if d >= end_date), None)
    if end_idx is None:
        raise AlignmentError(f"slice by date - could not find end idx of {end_date}")
    return to_be_sliced[start_idx : end_idx + 1]


class Chart:
    """A named monthly price development.

    :param name: Display name of the chart, e.g. ``"MSCI World"``.
    :param dates: Consecutive months, one per value.
    :param values: Prices, one per month.
    """

    def __init__(self, name, dates, values):
        if len(dates) != len(values):
            raise ConfigError(
                f"chart {name} has {len(dates)} dates but {len(values)} values"
            )
        self.name = name
        self.dates = list(dates)
        self.values = np.asarray(values, dtype=float)

    @classmethod
    def from_start_date(cls, name, start_date: Date, values):
        dates = fill_between(start_date, start_date + (len(values) - 1)) if len(values) else []
        return cls(name, dates, values)

    @property
    def start_date(self):
        return self.dates[0] if self.dates else None

    @property
    def end_date(self):
        return self.dates[-1] if self.dates else None

    def sliced_values(self, start_date, end_date):
        return slice_by_date(self.dates, start_date, end_date, self.values)

    def sliced_dates(self, start_date, end_date):
        return slice_by_date(self.dates, start_date, end_date, self.dates)

    def values_between_dates(self, start_date, end_date, initial_balance=None):
        """Prices between two months, optionally rescaled to start at ``initial_balance``."""
        sliced = self.sliced_values(start_date, end_date)
        if initial_balance is None:
            return sliced
        return adapt_pricedev_to_initial_balance(initial_balance, sliced)

    def __len__(self):
        return len(self.values)

    def __repr__(self):
        return f"Chart(name={self.name!r}, {self.start_date} - {self.end_date}, n={len(self)})"


def start_end_date(charts):
    """Intersect the timelines of all given charts.

    :return: ``(start_date, end_date)`` of the common window.
    :raises EmptyInputError: if no chart is given.
    :raises AlignmentError: if the common window is not strictly longer than one month.
    """
    charts = list(charts)
    if not charts:
        raise EmptyInputError(
            "Add simulated or historical charts to compute your portfolio development"
        )
    min_date, max_date = Date(1, 1), Date(9999, 12)
    start_date = max(c.start_date or min_date for c in charts)
    end_date = min(c.end_date or max_date for c in charts)
    if end_date <= start_date:
        raise AlignmentError("start date needs to be strictly before enddate")
    return start_date, end_date


def align_charts(charts, user_start=None, user_end=None):
    """Cut all charts to their common window.

    ``user_start`` and ``user_end`` narrow the window further, e.g. to a
    period picked by the user.

    :return: ``(start_date, end_date, price_devs)`` where ``price_devs`` holds
        one numpy array per chart, all of the same length.
    """
    charts = list(charts)
    common_start, common_end = start_end_date(charts)
    start = user_start if user_start is not None else common_start
    end = user_end if user_end is not None else common_end
    if start < common_start or end > common_end:
        raise AlignmentError(
            f"{start} - {end} is not within the common window {common_start} - {common_end}"
        )
    if start >= end:
        raise AlignmentError("start needs to be before end")
    price_devs = [c.sliced_values(start, end) for c in charts]
    return start, end, price_devs
