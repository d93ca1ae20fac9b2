"""Monitoring and metrics instrumentation for the Call Objection Analyzer.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from objection_analyzer.monitoring.metrics import (
    case_writes_total,
    catalog_sync_changes_total,
    embedding_requests_total,
    judgment_outcomes_total,
    llm_latency_seconds,
    llm_tokens_total,
    normalizer_failures_total,
    transcripts_processed_total,
)

__all__ = [
    "catalog_sync_changes_total",
    "embedding_requests_total",
    "normalizer_failures_total",
    "judgment_outcomes_total",
    "case_writes_total",
    "transcripts_processed_total",
    "llm_latency_seconds",
    "llm_tokens_total",
]
