"""Prometheus metrics for LedgerFlow matching.

Defines the operational metrics of the matching engine: suggestion
decisions, merchant pattern eligibility outcomes, category recommendations
and embedding provider calls. Exposed on /metrics.
"""

from prometheus_client import Counter, Histogram

# Match suggestion lifecycle
match_suggestions_total = Counter(
    "ledgerflow_match_suggestions_total",
    "Match suggestions proposed",
    ["match_type"]  # auto_matched|high_confidence|suggested
)

match_decisions_total = Counter(
    "ledgerflow_match_decisions_total",
    "User decisions on match suggestions",
    ["decision"]  # confirmed|declined|unmatched
)

match_confidence_histogram = Histogram(
    "ledgerflow_match_confidence",
    "Confidence score distribution of proposed suggestions",
    buckets=[0.0, 0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0]
)

# Merchant pattern analysis
merchant_pattern_checks_total = Counter(
    "ledgerflow_merchant_pattern_checks_total",
    "Merchant pattern eligibility checks",
    ["outcome"]  # eligible|ineligible|error
)

merchant_pattern_history_size = Histogram(
    "ledgerflow_merchant_pattern_history_size",
    "Number of historical suggestions found per pattern check",
    buckets=[0, 1, 2, 3, 5, 10, 20]
)

# Category recommendation
category_recommendations_total = Counter(
    "ledgerflow_category_recommendations_total",
    "Category recommendation requests",
    ["outcome"]  # recommended|no_match|no_embeddings|error
)

# Embedding provider
embedding_requests_total = Counter(
    "ledgerflow_embedding_requests_total",
    "Embedding provider calls",
    ["model", "outcome"]  # outcome: success|error
)

embedding_latency_seconds = Histogram(
    "ledgerflow_embedding_latency_seconds",
    "Embedding provider call latency in seconds",
    ["model"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)


def record_embedding_request(model: str, outcome: str, duration_seconds: float) -> None:
    embedding_requests_total.labels(model=model, outcome=outcome).inc()
    embedding_latency_seconds.labels(model=model).observe(duration_seconds)
