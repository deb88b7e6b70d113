"""
Unit tests for application settings
"""
import pytest
from pydantic import ValidationError

from evehistory.core.config import Settings


class TestSettingsDefaults:
    """Defaults used when no environment is set"""

    def test_history_defaults(self, monkeypatch):
        monkeypatch.delenv("HISTORY_MAX_ENTRIES", raising=False)
        config = Settings(_env_file=None)

        assert config.HISTORY_MAX_ENTRIES == 16384
        assert config.EVE_LEAK_TEST_RESET_SECONDS == 5
        assert config.EVE_DIAGNOSTIC_LOG_SIZE == 100

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("HISTORY_MAX_ENTRIES", "500")
        monkeypatch.setenv("EVE_LEAK_TEST_RESET_SECONDS", "1")

        config = Settings(_env_file=None)

        assert config.HISTORY_MAX_ENTRIES == 500
        assert config.EVE_LEAK_TEST_RESET_SECONDS == 1


class TestSettingsValidation:
    """Field validators"""

    def test_log_level_is_upper_cased(self):
        config = Settings(_env_file=None, LOG_LEVEL="debug")
        assert config.LOG_LEVEL == "DEBUG"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, LOG_LEVEL="verbose")

    def test_negative_history_size_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, HISTORY_MAX_ENTRIES=-1)

    def test_zero_history_size_allowed(self):
        """0 makes the history unbounded"""
        config = Settings(_env_file=None, HISTORY_MAX_ENTRIES=0)
        assert config.HISTORY_MAX_ENTRIES == 0

    def test_negative_leak_reset_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, EVE_LEAK_TEST_RESET_SECONDS=-5)
