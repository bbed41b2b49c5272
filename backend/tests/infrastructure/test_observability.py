"""Structured Logging — JSON formatter surfaces engine identifiers."""

import json
import logging
from uuid import uuid4

from housing_draw.infrastructure.observability import JSONFormatter, setup_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "housing_draw.test", logging.INFO, __file__, 1, "Membership created", None, None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_base_fields():
    payload = json.loads(JSONFormatter().format(_record()))
    assert payload["level"] == "INFO"
    assert payload["logger"] == "housing_draw.test"
    assert payload["message"] == "Membership created"
    assert "timestamp" in payload


def test_json_formatter_stringifies_ids():
    group_id = uuid4()
    payload = json.loads(JSONFormatter().format(_record(group_id=group_id, attempt=2)))
    assert payload["group_id"] == str(group_id)
    assert payload["attempt"] == 2


def test_json_formatter_keeps_error_lists():
    payload = json.loads(JSONFormatter().format(_record(errors=["Cannot edit locked membership"])))
    assert payload["errors"] == ["Cannot edit locked membership"]


def test_json_formatter_skips_absent_extras():
    payload = json.loads(JSONFormatter().format(_record()))
    assert "membership_id" not in payload


def test_text_format_prefixes_logger_name():
    handlers, level = list(logging.root.handlers), logging.root.level
    try:
        setup_logging("debug", "text")
        handler = logging.root.handlers[-1]
        line = handler.format(_record())
    finally:
        logging.root.handlers[:] = handlers
        logging.root.setLevel(level)
    assert line.endswith("INFO housing_draw.test: Membership created")
