"""Tests for the logging set-up."""

import logging

from rebalance.utils.logger import setup_logger


class TestSetupLogger:
    def test_file_and_console_handlers(self, tmp_path):
        log_dir = tmp_path / "logs"
        logger = setup_logger("rebalance_test_handlers", str(log_dir))
        assert logger.level == logging.DEBUG
        levels = sorted(h.level for h in logger.handlers)
        assert levels == [logging.DEBUG, logging.INFO]
        assert len(list(log_dir.glob("rebalance_test_handlers_*.log"))) == 1

    def test_no_duplicate_handlers(self, tmp_path):
        first = setup_logger("rebalance_test_dupes", str(tmp_path))
        second = setup_logger("rebalance_test_dupes", str(tmp_path))
        assert first is second
        assert len(second.handlers) == 2

    def test_messages_reach_the_file(self, tmp_path):
        logger = setup_logger("rebalance_test_file", str(tmp_path))
        logger.debug("simulated 12 months")
        for handler in logger.handlers:
            handler.flush()
        (log_file,) = tmp_path.glob("rebalance_test_file_*.log")
        assert "rebalance_test_file - DEBUG - simulated 12 months" in log_file.read_text()

    def test_console_level(self, tmp_path):
        logger = setup_logger("rebalance_test_console", str(tmp_path), console_level=logging.WARNING)
        levels = sorted(h.level for h in logger.handlers)
        assert levels == [logging.DEBUG, logging.WARNING]

    def test_captured_library_messages_reach_the_file(self, tmp_path):
        logger = setup_logger("rebalance_test_capture", str(tmp_path), capture=("rebalance_lib",))
        library_logger = logging.getLogger("rebalance_lib")
        try:
            logging.getLogger("rebalance_lib.search").debug("searched 42 triggers")
            for handler in logger.handlers:
                handler.flush()
            (log_file,) = tmp_path.glob("rebalance_test_capture_*.log")
            assert "rebalance_lib.search - DEBUG - searched 42 triggers" in log_file.read_text()
        finally:
            for handler in list(library_logger.handlers):
                library_logger.removeHandler(handler)
