"""Tests for health, metrics, request IDs and JSON logging"""

import json
import logging

from observability.health import (
    ComponentHealth,
    HealthStatus,
    check_embedding_provider_config,
    get_overall_health,
)
from observability.logging_config import JSONFormatter, RequestIDFilter
from observability.request_id import resolve_request_id, request_id_var


class TestHealth:

    def test_missing_provider_key_degrades(self):
        assert check_embedding_provider_config(None).status == HealthStatus.DEGRADED
        assert check_embedding_provider_config("sk-x").status == HealthStatus.HEALTHY

    def test_overall_health(self):
        healthy = ComponentHealth(HealthStatus.HEALTHY)
        degraded = ComponentHealth(HealthStatus.DEGRADED)
        unhealthy = ComponentHealth(HealthStatus.UNHEALTHY)

        assert get_overall_health({"a": healthy, "b": healthy}) == HealthStatus.HEALTHY
        assert get_overall_health({"a": healthy, "b": degraded}) == HealthStatus.DEGRADED
        assert get_overall_health({"a": degraded, "b": unhealthy}) == HealthStatus.UNHEALTHY

    def test_health_endpoint(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["components"]["database"]["status"] == "healthy"

    def test_ready_endpoint(self, client):
        assert client.get("/ready").json() == {"status": "ready"}


class TestMetricsEndpoint:

    def test_metrics_exposed(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "ledgerflow_match_suggestions_total" in response.text


class TestRequestId:

    def test_incoming_id_kept(self):
        assert resolve_request_id("abc-123") == "abc-123"

    def test_invalid_id_replaced(self):
        resolved = resolve_request_id("bad id\nwith newline")
        assert resolved != "bad id\nwith newline"
        assert resolved

    def test_response_header(self, client):
        response = client.get("/ready", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"


class TestJSONFormatter:

    def test_context_fields_and_request_id(self):
        token = request_id_var.set("req-1")
        try:
            record = logging.LogRecord("matching", logging.INFO, __file__, 1, "Match recorded", None, None)
            record.tenant_id = "t-1"
            RequestIDFilter().filter(record)
            data = json.loads(JSONFormatter().format(record))
        finally:
            request_id_var.reset(token)

        assert data["message"] == "Match recorded"
        assert data["level"] == "INFO"
        assert data["tenant_id"] == "t-1"
        assert data["request_id"] == "req-1"
