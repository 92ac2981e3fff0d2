import logging
import tempfile
import unittest
from logging.handlers import RotatingFileHandler
from pathlib import Path
from unittest.mock import patch

from callbridge.config.logging_config import configure_logging, resolve_log_level


class TestLoggingConfig(unittest.TestCase):
    def test_configure_logging(self):
        with patch.dict("os.environ", {"LOG_LEVEL": "INFO", "DEBUG": ""}):
            logger = configure_logging()
        self.assertIsInstance(logger, logging.Logger)

        self.assertEqual(logger.name, "callbridge")
        self.assertEqual(logger.level, logging.INFO)
        self.assertFalse(logger.propagate)

        self.assertGreaterEqual(len(logger.handlers), 1)  # At least one handler (console)
        handler = logger.handlers[0]
        self.assertIsInstance(handler, logging.StreamHandler)
        formatter = handler.formatter
        self.assertEqual(formatter._fmt, "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    def test_reconfigure_does_not_duplicate_handlers(self):
        first = len(configure_logging().handlers)
        second = len(configure_logging().handlers)
        self.assertEqual(first, second)

    def test_debug_toggle_forces_debug_level(self):
        with patch.dict("os.environ", {"LOG_LEVEL": "WARNING", "DEBUG": "true"}):
            self.assertEqual(resolve_log_level(), logging.DEBUG)

    def test_log_level_from_environment(self):
        with patch.dict("os.environ", {"LOG_LEVEL": "warning", "DEBUG": "0"}):
            self.assertEqual(resolve_log_level(), logging.WARNING)

    def test_unknown_log_level_falls_back_to_info(self):
        with patch.dict("os.environ", {"LOG_LEVEL": "chatty", "DEBUG": ""}):
            self.assertEqual(resolve_log_level(), logging.INFO)

    def test_explicit_level_wins_over_environment(self):
        with patch.dict("os.environ", {"LOG_LEVEL": "ERROR", "DEBUG": "true"}):
            self.assertEqual(resolve_log_level("warning"), logging.WARNING)
            logger = configure_logging("ERROR", log_dir=None)
        self.assertEqual(logger.level, logging.ERROR)

    def test_console_only_when_no_log_dir(self):
        logger = configure_logging(log_dir=None)
        self.assertEqual(len(logger.handlers), 1)

    def test_rotating_file_written_under_log_dir(self):
        with tempfile.TemporaryDirectory() as tmp:
            log_dir = Path(tmp) / "nested" / "logs"
            logger = configure_logging("INFO", log_dir=log_dir)
            file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
            self.assertEqual(len(file_handlers), 1)
            self.assertTrue((log_dir / "callbridge.log").exists())
            # Release the file before the directory is removed
            configure_logging(log_dir=None)


if __name__ == "__main__":
    unittest.main()
