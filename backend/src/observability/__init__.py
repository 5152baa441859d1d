"""Observability module for LedgerFlow.

Provides structured logging, metrics and health checks.
"""

from .logging_config import configure_logging, get_logger
from .metrics import (
    match_suggestions_total,
    match_decisions_total,
    match_confidence_histogram,
    merchant_pattern_checks_total,
    merchant_pattern_history_size,
    category_recommendations_total,
    embedding_requests_total,
    embedding_latency_seconds,
    record_embedding_request,
)
from .request_id import request_id_var, get_request_id, set_request_id, generate_request_id
from .health import HealthStatus, ComponentHealth
from .middleware import RequestIDMiddleware

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    # Metrics
    "match_suggestions_total",
    "match_decisions_total",
    "match_confidence_histogram",
    "merchant_pattern_checks_total",
    "merchant_pattern_history_size",
    "category_recommendations_total",
    "embedding_requests_total",
    "embedding_latency_seconds",
    "record_embedding_request",
    # Request ID
    "request_id_var",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    # Health
    "HealthStatus",
    "ComponentHealth",
    # Middleware
    "RequestIDMiddleware",
]
