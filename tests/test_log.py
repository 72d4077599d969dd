import json
import logging
import sys

from notification_core.log import JsonFormatter, setup_logging


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        "notification_core.test", logging.INFO, __file__, 1, "hello %s", ("world",), None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    def test_basic_fields(self):
        entry = json.loads(JsonFormatter().format(_record()))

        assert entry["message"] == "hello world"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "notification_core.test"
        assert "timestamp" in entry

    def test_extra_fields_included(self):
        entry = json.loads(JsonFormatter().format(_record(channel="sms", attempt=2)))

        assert entry["channel"] == "sms"
        assert entry["attempt"] == 2

    def test_secret_extras_redacted(self):
        entry = json.loads(
            JsonFormatter().format(_record(smtp_password="hunter2", fcm_server_key="abc"))
        )

        assert entry["smtp_password"] == "***"
        assert entry["fcm_server_key"] == "***"

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()
        entry = json.loads(JsonFormatter().format(record))

        assert "ValueError: boom" in entry["exception"]


class TestSetupLogging:
    def test_configures_root_and_suppresses(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging("DEBUG", suppress=("httpx",))

            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JsonFormatter)
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
