import json
import logging

import pytest

from lexiweave import logging_manager as log_mgr
from lexiweave.observability import pipeline_stage, record_metric

pytestmark = pytest.mark.engine


def _record(**extra):
    record = logging.makeLogRecord({"name": "lexiweave.test", "msg": "hello %s", "args": ("world",), "levelname": "INFO"})
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONLogFormatter:
    def test_known_fields_and_extras(self):
        record = _record(event="engine.process.complete", language_pair="en-el", replaced=3)
        payload = json.loads(log_mgr.JSONLogFormatter().format(record))
        assert payload["message"] == "hello world"
        assert payload["event"] == "engine.process.complete"
        assert payload["language_pair"] == "en-el"
        assert payload["extra"] == {"replaced": 3}

    def test_console_suppress_is_not_serialized(self):
        record = _record(console_suppress=True)
        payload = json.loads(log_mgr.JSONLogFormatter().format(record))
        assert "extra" not in payload


class TestFilters:
    def test_console_suppress_filter(self):
        assert log_mgr.ConsoleSuppressFilter().filter(_record(console_suppress=True)) is False
        assert log_mgr.ConsoleSuppressFilter().filter(_record()) is True

    def test_log_context_is_applied_and_restored(self):
        with log_mgr.log_context(stage="tokenize", skipped=None):
            record = _record()
            log_mgr.LogContextFilter().filter(record)
            assert record.stage == "tokenize"
            assert "skipped" not in log_mgr.get_log_context()
        assert "stage" not in log_mgr.get_log_context()

    def test_handlers_carry_context_filter(self):
        handlers = [
            handler
            for handler in log_mgr.get_logger().handlers
            if isinstance(handler.formatter, log_mgr.JSONLogFormatter)
        ]
        assert handlers
        for handler in handlers:
            assert any(isinstance(f, log_mgr.LogContextFilter) for f in handler.filters)


class TestLevels:
    @pytest.mark.parametrize(
        "name,expected",
        [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("", logging.INFO), ("loud", logging.INFO)],
    )
    def test_resolve_log_level(self, name, expected):
        assert log_mgr.resolve_log_level(name) == expected

    def test_configure_logging_level(self):
        try:
            assert log_mgr.configure_logging_level(debug_enabled=True) == logging.DEBUG
            assert log_mgr.get_logger().level == logging.DEBUG
        finally:
            log_mgr.configure_logging_level()


class TestObservability:
    def test_pipeline_stage_propagates_errors(self):
        with pytest.raises(RuntimeError):
            with pipeline_stage("resolve", {"language_pair": "en-el"}):
                raise RuntimeError("boom")
        assert "stage" not in log_mgr.get_log_context()

    def test_record_metric_accepts_non_primitive_attributes(self):
        record_metric("engine.test.metric", 1.0, {"language_pair": "en-el", "words": ["a"]})
