# ABOUTME: Tests for logging setup
"""Tests for logging configuration"""

import logging
import logging.handlers
import sys

import pytest

from voyant_export.logging_config import setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    logger = logging.getLogger("voyant_export")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.NOTSET)
    sys.excepthook = sys.__excepthook__


class TestSetupLogging:
    def test_console_only(self):
        setup_logging("WARNING")
        logger = logging.getLogger("voyant_export")

        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.StreamHandler)

    def test_rotating_file(self, tmp_path):
        setup_logging("DEBUG", log_file="export.log", log_dir=str(tmp_path / "logs"))
        logger = logging.getLogger("voyant_export")

        file_handlers = [
            h for h in logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 10 * 1024 * 1024
        assert file_handlers[0].backupCount == 5

        logging.getLogger("voyant_export.exporter").info("hello from the exporter")
        file_handlers[0].flush()
        assert "hello from the exporter" in (tmp_path / "logs" / "export.log").read_text()

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logging("INFO")
        setup_logging("INFO")
        assert len(logging.getLogger("voyant_export").handlers) == 1

    def test_debug_console_is_detailed(self):
        logger = setup_logging("DEBUG")
        assert logger.handlers[0].formatter._fmt.startswith("%(asctime)s")

    def test_uncaught_exceptions_are_logged(self, caplog):
        setup_logging("INFO")
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            sys.excepthook(*sys.exc_info())
        assert "Uncaught exception" in caplog.text
