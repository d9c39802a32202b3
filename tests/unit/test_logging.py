"""
Unit tests for logging setup.
"""

import logging
from datetime import datetime

import pytest

from bulkshot.core.logging import dated_log_path, get_logger, init_cli_logging, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_dated_log_file(self, tmp_path, restore_root_logger):
        """Test that the default log file is named by date."""
        setup_logging(level="DEBUG", console=False, log_dir=tmp_path)
        get_logger("bulkshot.test").info("capture run started")
        for handler in logging.getLogger().handlers:
            handler.flush()

        path = tmp_path / f"bulkshot_{datetime.now().strftime('%Y%m%d')}.log"
        text = path.read_text("utf-8")
        assert "bulkshot.test - INFO - capture run started" in text

    def test_explicit_file_and_level(self, tmp_path, restore_root_logger):
        """Test an explicit log file and level filtering."""
        log_file = tmp_path / "nested" / "run.log"
        root = setup_logging(level="warning", log_file=str(log_file), console=False)
        assert root.level == logging.WARNING
        get_logger("bulkshot.test").info("hidden")
        get_logger("bulkshot.test").warning("shown")
        for handler in root.handlers:
            handler.flush()
        text = log_file.read_text("utf-8")
        assert "shown" in text
        assert "hidden" not in text

    def test_no_duplicate_handlers(self, tmp_path, restore_root_logger):
        """Test that calling setup twice does not stack handlers."""
        setup_logging(console=True, log_dir=tmp_path)
        setup_logging(console=True, log_dir=tmp_path)
        assert len(logging.getLogger().handlers) == 2


class TestHelpers:
    """Tests for dated_log_path and init_cli_logging."""

    def test_dated_log_path(self, tmp_path):
        """Test the dated file name."""
        assert dated_log_path(tmp_path, datetime(2024, 1, 1)) == tmp_path / "bulkshot_20240101.log"

    def test_cli_level_from_config(self, tmp_path, restore_root_logger):
        """Test that the configured level is used without --verbose."""
        assert init_cli_logging(log_dir=tmp_path, level="ERROR").level == logging.ERROR

    def test_cli_verbose_wins(self, tmp_path, restore_root_logger):
        """Test that --verbose forces DEBUG."""
        assert init_cli_logging(verbose=True, log_dir=tmp_path, level="ERROR").level == logging.DEBUG
