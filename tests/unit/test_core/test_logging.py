"""Unit tests for logging configuration."""

from pathlib import Path

from loguru import logger

from geoaddress.core.logging import setup_logging


class TestLogging:
    """Tests for Loguru logging setup."""

    def test_setup_logging_does_not_raise(self) -> None:
        """setup_logging with valid log level does not raise."""
        setup_logging("DEBUG")
        setup_logging("INFO")
        setup_logging("WARNING")

    def test_setup_logging_case_insensitive(self) -> None:
        """setup_logging accepts case-insensitive log levels."""
        setup_logging("info")
        setup_logging("debug")

    def test_log_dir_creates_file(self, tmp_path: Path) -> None:
        """A log_dir adds a file sink inside the directory."""
        log_dir = tmp_path / "logs"
        setup_logging("INFO", log_dir=str(log_dir))
        logger.info("written to file")
        logger.complete()
        setup_logging("INFO")

        log_file = log_dir / "geoaddress.log"
        assert log_file.exists()
        assert "written to file" in log_file.read_text()
