"""Unit tests for settings and logging configuration.

Tests cover:
- Defaults and environment variable parsing
- Rejection of unknown log formats
- Handler installation and the two log formats
"""

import json
import logging

import pytest

from submission_request.config import Settings
from submission_request.logging_config import JSONFormatter, ReadableFormatter, configure_logging


def make_record(message="Saved section %s", args=("A",), **extra):
    record = logging.LogRecord(
        name="submission_request.store",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestSettings:
    """Test Settings construction."""

    def test_defaults(self):
        """Should log readable INFO lines and pre-fill by default."""
        settings = Settings()
        assert settings.log_level == "INFO"
        assert settings.log_format == "readable"
        assert settings.prefill_enabled is True

    def test_from_empty_env(self):
        """Should fall back to the defaults."""
        assert Settings.from_env({}) == Settings()

    def test_from_env(self):
        """Should read and normalize every variable."""
        settings = Settings.from_env({
            "SUBMISSION_REQUEST_LOG_LEVEL": "debug",
            "SUBMISSION_REQUEST_LOG_FORMAT": "JSON",
            "SUBMISSION_REQUEST_PREFILL": "no",
        })
        assert settings.log_level == "DEBUG"
        assert settings.log_format == "json"
        assert settings.prefill_enabled is False

    @pytest.mark.parametrize("value", ["1", "true", "Yes", " on "])
    def test_truthy_prefill(self, value):
        """Should accept the usual spellings of true."""
        assert Settings.from_env({"SUBMISSION_REQUEST_PREFILL": value}).prefill_enabled is True

    def test_invalid_format(self):
        """Should reject unknown log formats."""
        with pytest.raises(ValueError, match="log_format"):
            Settings(log_format="xml")


class TestLogging:
    """Test the logging setup."""

    def teardown_method(self):
        package_logger = logging.getLogger("submission_request")
        package_logger.handlers.clear()
        package_logger.setLevel(logging.NOTSET)

    def test_single_handler(self):
        """Should replace the handler instead of stacking them."""
        configure_logging(Settings())
        package_logger = configure_logging(Settings(log_level="WARNING"))

        assert package_logger.name == "submission_request"
        assert len(package_logger.handlers) == 1
        assert package_logger.level == logging.WARNING

    def test_formatter_choice(self):
        """Should pick the formatter from the settings."""
        package_logger = configure_logging(Settings(log_format="json"))
        assert isinstance(package_logger.handlers[0].formatter, JSONFormatter)

        package_logger = configure_logging(Settings(log_format="readable"))
        assert isinstance(package_logger.handlers[0].formatter, ReadableFormatter)

    def test_unknown_level_falls_back(self):
        """Should fall back to INFO for an unknown level name."""
        package_logger = configure_logging(Settings(log_level="CHATTY"))
        assert package_logger.level == logging.INFO

    def test_json_format(self):
        """Should emit one JSON object including the context fields."""
        line = JSONFormatter().format(make_record(document_id="app_001", section_id="A"))
        entry = json.loads(line)
        assert entry["message"] == "Saved section A"
        assert entry["level"] == "INFO"
        assert entry["document_id"] == "app_001"
        assert entry["section_id"] == "A"
        assert "transition" not in entry

    def test_readable_format(self):
        """Should include the level, logger name and message."""
        line = ReadableFormatter().format(make_record())
        assert "INFO" in line
        assert "submission_request.store: Saved section A" in line


class TestPackageApi:
    """Test the names exported by the package root."""

    def test_exports(self):
        """Should expose settings, logging setup and section validation."""
        import submission_request

        assert submission_request.configure_logging is configure_logging
        assert submission_request.Settings is Settings
        result = submission_request.validate_section(
            submission_request.DocumentStore(submission_request.InMemoryGateway()).registry,
            "D",
            {"dataTypes": ["genomics"]},
        )
        assert result.is_valid is True
