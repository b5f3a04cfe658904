"""Month-granular calendar arithmetic.

A :class:`Date` is a year and a month, nothing more.  Prices, payments and
rebalancing all happen once per month, so days, time zones and floating
point never enter the picture.  All arithmetic goes through the
``year * 12 + month`` linearisation.

Example::

    from rebalance.utils.date import Date, months_between

    start = Date.from_string("2000/11")
    end = start + 14                    # Date(2002, 1)
    months_between(start, end)          # 14
    str(end)                            # "2002/01"
"""

import numbers
import re
from dataclasses import dataclass

import pandas as pd

from rebalance.errors import ConfigError

_DATE_PATTERN = re.compile(r"^(\d{4})/(\d{2})$")


@dataclass(frozen=True, order=True)
class Date:
    """A calendar month.

    Attributes:
        year: Year, at least 1.
        month: Month in ``1..12``.
    """

    year: int
    month: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ConfigError(f"we only have months from 1-12 but not {self.month}")
        if self.year < 1:
            raise ConfigError(f"there was no year {self.year}")

    @classmethod
    def from_string(cls, d: str) -> "Date":
        """Parse the 7 character ``YYYY/MM`` format."""
        match = _DATE_PATTERN.match(d) if isinstance(d, str) else None
        if match is None:
            raise ConfigError(f"date needs 7 digits, YYYY/MM, got {d}")
        return cls(int(match.group(1)), int(match.group(2)))

    @classmethod
    def from_timestamp(cls, ts) -> "Date":
        """Month of anything ``pd.Timestamp`` understands, e.g. ``"2020-03-15"``."""
        ts = pd.Timestamp(ts)
        return cls(ts.year, ts.month)

    @classmethod
    def _from_linear(cls, n_total_months: int) -> "Date":
        year, month_idx = divmod(n_total_months, 12)
        return cls(year, month_idx + 1)

    def _linear(self) -> int:
        return self.year * 12 + self.month - 1

    def next_month(self) -> "Date":
        if self.month == 12:
            return Date(self.year + 1, 1)
        return Date(self.year, self.month + 1)

    def add_months(self, n_months: int) -> "Date":
        if self._linear() + n_months < 12:
            raise ConfigError(f"{self} plus {n_months} months is before year 1")
        return Date._from_linear(self._linear() + n_months)

    def n_months_until(self, later: "Date") -> int:
        return months_between(self, later)

    def __add__(self, n_months):
        if not isinstance(n_months, numbers.Integral):
            return NotImplemented
        return self.add_months(int(n_months))

    def __str__(self):
        return f"{self.year:04d}/{self.month:02d}"


def months_between(earlier: Date, later: Date) -> int:
    """Number of months from ``earlier`` to ``later``.

    :raises ConfigError: if ``earlier`` is after ``later``.
    """
    if earlier > later:
        raise ConfigError(f"{earlier} is after {later}")
    return later._linear() - earlier._linear()


def date_after_nmonths(t0: Date, n_months: int) -> Date:
    return t0.add_months(n_months)


def fill_between(start: Date, end: Date) -> list:
    """All months from ``start`` to ``end``, both included."""
    if start > end:
        return []
    return [start.add_months(i) for i in range(months_between(start, end) + 1)]


@dataclass(frozen=True)
class Interval:
    """Closed range of months ``[start, end]``."""

    start: Date
    end: Date

    def __post_init__(self):
        if self.start > self.end:
            raise ConfigError(
                f"interval start {self.start} needs to be before or equal to end {self.end}"
            )

    @property
    def n_months(self) -> int:
        return months_between(self.start, self.end) + 1

    def contains(self, date: Date) -> bool:
        return self.start <= date <= self.end

    def __contains__(self, date):
        return self.contains(date)

    def __str__(self):
        return f"{self.start} - {self.end}"
