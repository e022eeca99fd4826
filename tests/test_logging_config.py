"""
Tests: logging formatters and the request context filter.
"""

import json
import logging

from tracker.middleware.logging_config import JSONFormatter, ReadableFormatter, RequestContextFilter


def _record(**extra):
    record = logging.LogRecord("tracker.services.distribution_service", logging.INFO,
                               __file__, 1, "Launch status set to %s", ("launched",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestReadableFormatter:
    def test_launch_scope(self):
        line = ReadableFormatter().format(_record(title="감금연휴", category="domestic-live",
                                                   platform_id="toomics", request_id="abc123"))
        assert "<감금연휴 [domestic-live] toomics> #abc123" in line
        assert line.endswith("Launch status set to launched")

    def test_no_scope(self):
        line = ReadableFormatter().format(_record())
        assert "<" not in line


class TestJSONFormatter:
    def test_extras_copied(self):
        payload = json.loads(JSONFormatter().format(_record(title="감금연휴", platform_id="toomics")))
        assert (payload["title"], payload["platform_id"]) == ("감금연휴", "toomics")
        assert payload["message"] == "Launch status set to launched"
        assert "category" not in payload


class TestRequestContextFilter:
    def test_stamps_request_id(self, app):
        with app.test_request_context("/api/v1/distribution/entries"):
            from flask import g
            g.request_id = "req-1"
            record = _record()
            assert RequestContextFilter().filter(record) is True
            assert record.request_id == "req-1"

    def test_outside_request(self):
        record = _record()
        RequestContextFilter().filter(record)
        assert getattr(record, "request_id", None) is None

    def test_explicit_id_kept(self, app):
        with app.test_request_context("/"):
            from flask import g
            g.request_id = "req-1"
            record = _record(request_id="given")
            RequestContextFilter().filter(record)
            assert record.request_id == "given"
