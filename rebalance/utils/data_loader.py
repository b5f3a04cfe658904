# rebalance/utils/data_loader.py

import logging
import os
from abc import ABC, abstractmethod
from io import StringIO

import pandas as pd

from rebalance.errors import ConfigError, NotFoundError
from rebalance.utils.charts import Chart
from rebalance.utils.date import Date

log = logging.getLogger(__name__)

_DATE_REGEX = r"^\d{4}/\d{2}$"


def check_contiguous(dates):
    """Raise ConfigError unless ``dates`` are consecutive months."""
    for d1, d2 in zip(dates, dates[1:]):
        if d1.next_month() != d2:
            raise ConfigError(f"months need to be contiguous, but {d2} follows {d1}")


def chart_from_frame(df: pd.DataFrame, name) -> Chart:
    """
    Build a chart from a DataFrame whose first two columns hold dates and values.

    Rows whose date is not ``YYYY/MM`` or whose value is not a number are skipped.
    """
    if df.shape[1] < 2:
        raise ConfigError(f"chart {name} needs a date and a value column")
    df = df.iloc[:, :2].copy()
    df.columns = ["date", "value"]
    df["date"] = df["date"].astype(str).str.strip()
    df["value"] = pd.to_numeric(df["value"], errors="coerce")
    valid = df["date"].str.match(_DATE_REGEX) & df["value"].notna()
    if not valid.all():
        log.debug(f"Skipped {(~valid).sum()} malformed rows of chart {name}")
    df = df[valid]
    if df.empty:
        raise ConfigError(f"chart {name} has no valid rows")
    dates = [Date.from_string(d) for d in df["date"]]
    check_contiguous(dates)
    return Chart(name, dates, df["value"].to_numpy(dtype=float))


def chart_to_frame(chart: Chart) -> pd.DataFrame:
    return pd.DataFrame({"date": [str(d) for d in chart.dates], "value": chart.values})


def read_csv_from_str(text, name="chart") -> Chart:
    """Parse a CSV with a header row and ``date,value`` columns, one row per month."""
    df = pd.read_csv(StringIO(text), dtype=str)
    return chart_from_frame(df, name)


class BaseDataLoader(ABC):
    """
    Abstract base class for all chart loaders.
    Subclass this to read monthly price developments from other sources.
    """

    def __init__(self, data_dir=None):
        self.data_dir = data_dir if data_dir else os.getcwd()

    @abstractmethod
    def load_chart(self, name) -> Chart:
        """
        Load the chart called ``name``. The returned chart holds one price
        per month without gaps, sorted by date.
        """
        pass

    def load_charts(self, names):
        return [self.load_chart(name) for name in names]


class CsvChartLoader(BaseDataLoader):
    """Load charts from ``<data_dir>/<name>.csv`` files.

    Each file has a header row and the columns ``date`` (``YYYY/MM``) and
    ``value``.

    Args:
        data_dir: Directory containing the CSV files.
    """

    def chart_path(self, name):
        return os.path.join(self.data_dir, f"{name}.csv")

    def list_available(self):
        if not os.path.isdir(self.data_dir):
            return []
        return sorted(f[: -len(".csv")] for f in os.listdir(self.data_dir) if f.endswith(".csv"))

    def load_chart(self, name) -> Chart:
        path = self.chart_path(name)
        if not os.path.isfile(path):
            raise NotFoundError(f"no chart {name} in {self.data_dir}")
        df = pd.read_csv(path, dtype=str)
        chart = chart_from_frame(df, name)
        log.debug(f"Loaded {chart!r} from {path}")
        return chart

    def save_chart(self, chart: Chart):
        os.makedirs(self.data_dir, exist_ok=True)
        path = self.chart_path(chart.name)
        chart_to_frame(chart).to_csv(path, index=False)
        return path
