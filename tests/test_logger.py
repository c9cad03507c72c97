"""
Tests for logger functionality.
"""

import pytest

from recruittracker import logger as logger_module
from recruittracker.logger import StructuredLogger, get_logger, reset_logger


class TestStructuredLogger:
    """Test structured logging functionality."""

    def test_logger_creation(self, tmp_path):
        """Logger should be created with default settings."""
        logger = StructuredLogger(
            name="test",
            level="INFO",
            log_dir=tmp_path,
            enable_console=False,
        )

        assert logger.logger.name == "test"
        assert logger.metrics["imports_run"] == 0
        assert logger.logger.propagate is False

    def test_log_methods(self, tmp_path):
        """All log level methods should work."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_console=False,
        )

        # Should not raise exceptions
        logger.debug("Debug message")
        logger.info("Info message")
        logger.warning("Warning message")
        logger.error("Error message")
        logger.critical("Critical message")

    def test_log_with_context(self, tmp_path):
        """Context should be appended as JSON."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_console=False,
        )

        logger.info("Import finished", imported=3, delimiter=";")

        log_content = next(tmp_path.glob("*.log")).read_text()
        assert 'Import finished | Context: {"imported": 3, "delimiter": ";"}' in log_content

    def test_import_metrics(self, tmp_path):
        """Import counters should accumulate across runs."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_console=False,
        )

        logger.record_import(rows_read=10, imported=7, skipped=3, duplicates=2)
        logger.record_import(rows_read=5, imported=5, skipped=0, duplicates=0)
        logger.record_error("MissingRequiredField")
        logger.record_error("MissingRequiredField")
        logger.record_save_failure()

        metrics = logger.get_metrics()

        assert metrics["imports_run"] == 2
        assert metrics["rows_read"] == 15
        assert metrics["rows_imported"] == 12
        assert metrics["rows_skipped"] == 3
        assert metrics["duplicates_skipped"] == 2
        assert metrics["saves_failed"] == 1
        assert metrics["errors_by_type"] == {"MissingRequiredField": 2, "PersistenceError": 1}
        assert metrics["import_rate"] == pytest.approx(0.8)

    def test_no_import_rate_without_rows(self, tmp_path):
        logger = StructuredLogger(name="test", log_dir=tmp_path, enable_console=False)

        assert "import_rate" not in logger.get_metrics()

    def test_export_metrics(self, tmp_path):
        logger = StructuredLogger(name="test", log_dir=tmp_path, enable_console=False)

        logger.record_export("CSV", 4)
        logger.record_export("CSV", 6)
        logger.record_export("JSON", 1)

        exports = logger.get_metrics()["exports_by_format"]
        assert exports["CSV"] == {"runs": 2, "records": 10}
        assert exports["JSON"] == {"runs": 1, "records": 1}

    def test_metrics_summary(self, tmp_path):
        """Summary should write counts to the log."""
        logger = StructuredLogger(name="test", log_dir=tmp_path, enable_console=False)
        logger.record_import(rows_read=4, imported=3, skipped=1, duplicates=1)
        logger.record_export("Text", 3)

        logger.log_metrics_summary()

        log_content = next(tmp_path.glob("*.log")).read_text()
        assert "3/4 rows imported" in log_content
        assert "Text: 3 records in 1 run(s)" in log_content

    def test_log_file_creation(self, tmp_path):
        """Log file should be created in specified directory."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_console=False,
        )

        logger.info("Test message")

        # Check that a log file was created
        log_files = list(tmp_path.glob("recruittracker_*.log"))
        assert len(log_files) == 1

        # Check that message was written
        log_content = log_files[0].read_text()
        assert "Test message" in log_content

    def test_level_filters_file_and_console(self, tmp_path, capsys):
        """Messages below the configured level are dropped."""
        logger = StructuredLogger(name="test", level="WARNING", log_dir=tmp_path)

        logger.info("quiet")
        logger.warning("loud")

        err = capsys.readouterr().err
        assert "loud" in err
        assert "quiet" not in err

    def test_configure_replaces_handlers(self, tmp_path):
        logger = StructuredLogger(name="test", log_dir=tmp_path, enable_console=False)

        logger.configure(enable_file=False, enable_console=False)

        assert logger.logger.handlers == []


class TestGlobalLogger:
    """Test global logger singleton."""

    @pytest.fixture(autouse=True)
    def isolated_global(self, monkeypatch):
        """Keep the package-wide instance intact for other tests."""
        monkeypatch.setattr(logger_module, "_global_logger", None)

    def test_get_logger_singleton(self, tmp_path):
        """get_logger should return same instance."""
        logger1 = get_logger(name="test-global", log_dir=tmp_path, enable_console=False)
        logger2 = get_logger()

        assert logger1 is logger2

    def test_reset_logger(self, tmp_path):
        """reset_logger should create new instance."""
        logger1 = get_logger(name="test-global", log_dir=tmp_path, enable_console=False)
        logger1.record_error("Boom")

        reset_logger()

        logger2 = get_logger(name="test-global", log_dir=tmp_path, enable_console=False)

        # Should be different instance with fresh metrics
        assert logger2 is not logger1
        assert logger2.metrics["errors_by_type"] == {}
