"""Tests for request IDs, the access log and request-aware log formatting."""

import json
import logging

from flask import g

from salesflow.middleware.logging_config import JSONFormatter, ReadableFormatter, RequestContextFilter


def _record(msg="hello", **extra):
    record = logging.LogRecord("salesflow.test", logging.INFO, __file__, 10, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# ── Middleware ───────────────────────────────────────────────────────────────


class TestRequestIds:
    def test_caller_request_id_echoed(self, client, services):
        res = client.get("/api/v1/workflows", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"
        assert float(res.headers["X-Request-Duration-Ms"]) >= 0

    def test_request_id_generated(self, client, services):
        res = client.get("/api/v1/workflows")
        assert len(res.headers["X-Request-ID"]) == 12

    def test_access_log_carries_workflow_type(self, client, services, caplog):
        caplog.set_level(logging.INFO, logger="salesflow.middleware.request_logging")
        client.get("/api/v1/submissions/DGR")
        (record,) = [r for r in caplog.records if r.name == "salesflow.middleware.request_logging"]
        assert record.workflow_type == "DGR"
        assert record.status == 200
        assert "GET /api/v1/submissions/DGR 200" in record.getMessage()

    def test_health_check_not_logged(self, client, services, caplog):
        caplog.set_level(logging.INFO, logger="salesflow.middleware.request_logging")
        client.get("/api/v1/health/ready")
        assert not [r for r in caplog.records if r.name == "salesflow.middleware.request_logging"]


# ── Formatting ───────────────────────────────────────────────────────────────


class TestFormatters:
    def test_filter_stamps_request_context(self, app):
        record = _record()
        with app.test_request_context("/api/v1/events", method="POST"):
            g.request_id = "req-1"
            RequestContextFilter().filter(record)
        assert (record.request_id, record.method, record.path) == ("req-1", "POST", "/api/v1/events")

    def test_filter_outside_request_adds_nothing(self):
        record = _record()
        assert RequestContextFilter().filter(record) is True
        assert not hasattr(record, "path")

    def test_json_includes_workflow_extras(self):
        record = _record("Created", submission_id="DGR-20250101-001", workflow_type="DGR", request_id="req-1")
        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "Created"
        assert entry["submission_id"] == "DGR-20250101-001"
        assert entry["workflow_type"] == "DGR"
        assert entry["request_id"] == "req-1"
        assert "employee_id" not in entry

    def test_readable_shows_request_and_submission(self):
        text = ReadableFormatter().format(_record(request_id="req-1", submission_id="DGR-20250101-001"))
        assert "[req-1] [DGR-20250101-001]" in text
