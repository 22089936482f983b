"""
Structured logging tests: JSON line shape, channels and request IDs.
"""
import json
import logging
from datetime import date

from social_reports.logging_config import (
    StructuredJsonFormatter,
    generate_request_id,
    get_logger,
    log_with_context,
    request_id_var,
)


def _format(record):
    return json.loads(StructuredJsonFormatter().format(record))


class TestStructuredJsonFormatter:
    def test_entry_shape(self, caplog):
        logger = get_logger("reports")
        with caplog.at_level(logging.INFO, logger=logger.name):
            log_with_context(logger, "INFO", "Relatório gerado",
                             context={"report_type": "social_needs"},
                             extra_data={"rows": 3})

        entry = _format(caplog.records[-1])
        assert entry["level"] == "INFO"
        assert entry["message"] == "Relatório gerado"
        assert entry["channel"] == "reports"
        assert entry["context"]["report_type"] == "social_needs"
        assert entry["extra"] == {"rows": 3}
        assert entry["timestamp"].endswith("Z")

    def test_request_id_is_attached(self, caplog):
        token = request_id_var.set("req-123")
        try:
            logger = get_logger("http")
            with caplog.at_level(logging.INFO, logger=logger.name):
                log_with_context(logger, "INFO", "ping")
            assert _format(caplog.records[-1])["context"]["request_id"] == "req-123"
        finally:
            request_id_var.reset(token)

    def test_non_json_values_are_stringified(self, caplog):
        logger = get_logger("db")
        with caplog.at_level(logging.WARNING, logger=logger.name):
            log_with_context(logger, "WARNING", "x", extra_data={"date_from": date(2024, 1, 1)})
        assert _format(caplog.records[-1])["extra"]["date_from"] == "2024-01-01"


class TestRequestIdMiddleware:
    def test_header_is_returned(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert len(resp.headers["x-request-id"]) == 36

    def test_ids_are_unique(self):
        assert generate_request_id() != generate_request_id()
