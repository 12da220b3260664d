from __future__ import annotations

import json
import logging
import sys

from tablebase.app.core.logging import JsonFormatter, setup_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("tablebase.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_project_and_http_context():
    payload = json.loads(
        JsonFormatter().format(_record(project="p1", http_method="GET", path="/x", status_code=404))
    )
    assert payload["message"] == "hello world"
    assert payload["project"] == "p1"
    assert payload["http"] == {"method": "GET", "path": "/x", "status": 404}
    assert "error" not in payload


def test_json_formatter_includes_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("t", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
    payload = json.loads(JsonFormatter().format(record))
    assert payload["error"]["type"] == "RuntimeError"
    assert payload["error"]["message"] == "boom"


def test_setup_logging_honours_env(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "error")
    monkeypatch.setenv("LOG_FORMAT", "json")
    setup_logging()
    root = logging.getLogger()
    assert root.level == logging.ERROR
    assert any(isinstance(h.formatter, JsonFormatter) for h in root.handlers)


def test_setup_logging_explicit_arguments_win(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "error")
    setup_logging(level="debug", fmt="plain")
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert not any(isinstance(h.formatter, JsonFormatter) for h in root.handlers)


def test_project_filter_defaults_missing_project():
    from tablebase.app.core.logging import ProjectFilter

    record = _record()
    assert ProjectFilter().filter(record)
    assert record.project == "-"
    assert "project" not in json.loads(JsonFormatter().format(record))
