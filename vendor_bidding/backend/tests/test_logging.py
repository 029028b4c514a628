# backend/tests/test_logging.py
from __future__ import annotations

import json
import logging

from app.logging_config import JsonFormatter


class _Collect(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def _line(record: logging.LogRecord) -> dict:
    return json.loads(JsonFormatter().format(record))


def test_structured_extras_are_flat_scalars():
    record = logging.LogRecord("bidding.bids", logging.INFO, __file__, 1, "bid accepted", None, None)
    record.user_id = 7
    record.bid_id = 3
    record.event = "auto_rejected=2"
    record.channel = ["not", "scalar"]

    line = _line(record)
    assert line["message"] == "bid accepted"
    assert line["user_id"] == 7
    assert line["bid_id"] == 3
    assert line["event"] == "auto_rejected=2"
    assert line["channel"] == "['not', 'scalar']"
    assert "project_id" not in line


def test_access_log_line_shape(client):
    collect = _Collect()
    access = logging.getLogger("bidding.request")
    access.addHandler(collect)
    try:
        client.get("/api/health", headers={"X-Request-ID": "req-42"})
    finally:
        access.removeHandler(collect)

    records = [r for r in collect.records if r.getMessage() == "http_request"]
    assert records

    line = _line(records[-1])
    assert line["event"] == "http_request"
    assert line["request_id"] == "req-42"
    assert line["method"] == "GET"
    assert line["path"] == "/api/health"
    assert line["status_code"] == 200
    assert isinstance(line["latency_ms"], int)
    assert "user_id" not in line
