# rebalance/utils/__init__.py

from .charts import Chart, align_charts, start_end_date
from .data_loader import BaseDataLoader, CsvChartLoader, read_csv_from_str
from .date import Date, Interval, months_between
from .logger import setup_logger

__all__ = [
    "BaseDataLoader",
    "Chart",
    "CsvChartLoader",
    "Date",
    "Interval",
    "align_charts",
    "months_between",
    "read_csv_from_str",
    "setup_logger",
    "start_end_date",
]
