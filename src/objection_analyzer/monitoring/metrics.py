"""Custom Prometheus metrics for the Call Objection Analyzer.

These metrics are exposed at /metrics endpoint and should be scraped by Prometheus.
Alert rules should be configured for:
- normalizer_failures_total (model drifting away from the JSON contract)
- embedding_requests_total{outcome="failure"} (catalog rows silently missing)
- case_writes_total{status="error"} (audit trail has gaps)
"""

from prometheus_client import Counter, Histogram

# === Catalog Sync Metrics ===

catalog_sync_changes_total = Counter(
    "catalog_sync_changes_total",
    "Catalog entries changed by sync runs",
    ["action"],
)
"""
Labels:
- action: insert, update, delete, reembed
"""

embedding_requests_total = Counter(
    "embedding_requests_total",
    "Embedding provider calls by outcome",
    ["outcome"],
)
"""
Labels:
- outcome: success, failure

A failed embedding leaves its catalog code unsynced until the next run.
"""

# === Judgment Metrics ===

normalizer_failures_total = Counter(
    "normalizer_failures_total",
    "Model outputs that could not be repaired into JSON",
    ["source"],
)
"""
Labels:
- source: extraction, classification, answer_validity, resolution

Alert thresholds:
- WARN: rate > 5% of judgment calls
"""

judgment_outcomes_total = Counter(
    "judgment_outcomes_total",
    "Validation verdicts by stage",
    ["stage", "verdict"],
)
"""
Labels:
- stage: answer_validity, resolution
- verdict: yes, no
"""

# === Case Store Metrics ===

case_writes_total = Counter(
    "case_writes_total",
    "Case store writes by outcome and status",
    ["outcome", "status"],
)
"""
Labels:
- outcome: success, failure
- status: ok, error
"""

transcripts_processed_total = Counter(
    "transcripts_processed_total",
    "Transcripts run through the pipeline",
    ["status"],
)
"""
Labels:
- status: completed, no_objections, classification_empty, error
"""

# === LLM Performance Metrics ===

llm_latency_seconds = Histogram(
    "llm_latency_seconds",
    "LLM generation latency in seconds",
    ["model", "success"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)
"""
Labels:
- model: Model name (e.g., qwen2.5:7b)
- success: true, false

Buckets optimized for local LLM inference (0.5s to 120s).
"""

llm_tokens_total = Counter(
    "llm_tokens_total",
    "Total tokens consumed by model and type",
    ["model", "token_type"],
)
"""
Labels:
- model: Model name
- token_type: prompt, completion
"""
