"""
Unit tests for logging configuration
"""
import json
import logging
import os
import pytest

from evehistory.core.logging_config import (
    setup_logging,
    set_accessory_id,
    get_accessory_id,
    clear_accessory_id,
    accessory_context,
    CustomJsonFormatter,
    AccessoryIdFilter,
    SanitizingFilter,
)


def make_record(msg="Test message", args=(), name="test"):
    return logging.LogRecord(
        name=name,
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None
    )


class TestAccessoryIdContext:
    """Test accessory ID context variable functionality"""

    def test_set_and_get_accessory_id(self):
        token = set_accessory_id("Front Door")

        assert get_accessory_id() == "Front Door"

        clear_accessory_id(token)

    def test_get_accessory_id_returns_none_when_not_set(self):
        assert get_accessory_id() is None

    def test_clear_accessory_id_resets_context(self):
        """clear_accessory_id should reset to previous value"""
        token1 = set_accessory_id("Outer")
        token2 = set_accessory_id("Inner")
        assert get_accessory_id() == "Inner"

        clear_accessory_id(token2)
        assert get_accessory_id() == "Outer"

        clear_accessory_id(token1)

    def test_accessory_context_restores_on_exception(self):
        with pytest.raises(RuntimeError):
            with accessory_context("Kitchen Leak Sensor"):
                assert get_accessory_id() == "Kitchen Leak Sensor"
                raise RuntimeError("boom")

        assert get_accessory_id() is None


class TestAccessoryIdFilter:
    """Test accessory ID logging filter"""

    def test_filter_adds_accessory_id_to_record(self):
        record = make_record()

        with accessory_context("Thermostat"):
            result = AccessoryIdFilter().filter(record)

        assert result is True
        assert record.accessory_id == "Thermostat"

    def test_filter_uses_dash_when_no_accessory_id(self):
        record = make_record()

        AccessoryIdFilter().filter(record)

        assert record.accessory_id == "-"


class TestSanitizingFilter:
    """Test log injection prevention filter"""

    def test_filter_removes_newlines(self):
        record = make_record(msg="Line 1\nFAKE LOG ENTRY")

        SanitizingFilter().filter(record)

        assert "\n" not in record.msg

    def test_filter_sanitizes_args(self):
        record = make_record(msg="Value: %s", args=("bad\r\nvalue",))

        SanitizingFilter().filter(record)

        assert record.args == ("bad value",)


class TestCustomJsonFormatter:
    """Test custom JSON log formatter"""

    def test_formatter_produces_valid_json(self):
        formatter = CustomJsonFormatter()
        record = make_record(name="evehistory.services.eve_session")
        record.accessory_id = "Front Door"

        parsed = json.loads(formatter.format(record))

        assert "timestamp" in parsed
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Test message"
        assert parsed["logger"] == "evehistory.services.eve_session"
        assert parsed["accessory_id"] == "Front Door"

    def test_formatter_includes_extra_fields(self):
        formatter = CustomJsonFormatter()
        record = make_record(msg="Eve history request for entry 42")
        record.evetype = "door"
        record.entry = 42

        parsed = json.loads(formatter.format(record))

        assert parsed.get("evetype") == "door"
        assert parsed.get("entry") == 42
        assert parsed["accessory_id"] == "-"


class TestSetupLogging:
    """Test logging setup function"""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers = list(root.handlers)
        level = root.level
        yield
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_setup_logging_creates_log_files(self, tmp_path):
        setup_logging(log_level="INFO", log_dir=str(tmp_path))

        logging.getLogger("evehistory.test").error("Something failed")

        assert os.path.exists(tmp_path / "history.log")
        assert os.path.exists(tmp_path / "error.log")

    def test_setup_logging_respects_log_level(self, tmp_path):
        logger = setup_logging(log_level="WARNING", log_dir=str(tmp_path))

        assert isinstance(logger, logging.Logger)
        assert logging.getLogger().level == logging.WARNING

    def test_setup_logging_quiets_hap_python(self, tmp_path):
        setup_logging(log_level="DEBUG", log_dir=str(tmp_path))

        assert logging.getLogger("pyhap").level == logging.WARNING
