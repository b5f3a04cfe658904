# rebalance/utils/logger.py

import logging
import os
from datetime import datetime


def setup_logger(name="rebalance", log_dir="logs", console_level=logging.INFO, capture=()):
    """Logger writing DEBUG to a timestamped file and ``console_level`` to stderr.

    ``capture`` names further loggers (e.g. ``"rebalance"``) whose debug
    messages go to the same file, so a run's log also holds what the
    simulator, the trigger search and the stats recorded.
    """
    os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger(name)

    # handlers are only added once per logger name
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)

    log_filename = os.path.join(
        log_dir, f"{name}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
    )

    fh = logging.FileHandler(log_filename)
    fh.setLevel(logging.DEBUG)

    ch = logging.StreamHandler()
    ch.setLevel(console_level)

    formatter = logging.Formatter("%(name)s - %(levelname)s - %(message)s")
    fh.setFormatter(formatter)
    ch.setFormatter(formatter)

    logger.addHandler(fh)
    logger.addHandler(ch)

    for captured in capture:
        captured_logger = logging.getLogger(captured)
        captured_logger.setLevel(logging.DEBUG)
        captured_logger.addHandler(fh)

    return logger
