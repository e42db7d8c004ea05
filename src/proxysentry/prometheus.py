"""Prometheus metrics for proxysentry"""

from prometheus_client import Counter, Histogram

# ============================================================================
# Ingestion Metrics
# ============================================================================

# Lines seen by the per-line parse loop
lines_parsed_total = Counter(
    'proxysentry_lines_parsed_total',
    'Total number of non-blank log lines handed to a parser',
    ['status'],  # valid, invalid
)

format_detections_total = Counter(
    'proxysentry_format_detections_total',
    'Result of log format auto-detection',
    ['log_type'],  # registered log type, or "unsupported"
)


# ============================================================================
# Analysis Metrics
# ============================================================================

analyses_total = Counter(
    'proxysentry_analyses_total',
    'Total number of analysis runs',
    ['mode'],  # ai, ai_unparsed, statistical_only, no_entries
)

statistical_anomalies_total = Counter(
    'proxysentry_statistical_anomalies_total',
    'Anomalies raised by the frequency heuristics',
    ['type'],  # high_frequency_ip, unusual_status_code, suspicious_user_agent
)

inferred_anomalies_total = Counter(
    'proxysentry_inferred_anomalies_total', 'Anomalies reported by the language model reply'
)


# ============================================================================
# Model Call Metrics
# ============================================================================

model_calls_total = Counter(
    'proxysentry_model_calls_total',
    'Total number of language model calls',
    ['status'],  # success, error, timeout
)

model_call_duration_seconds = Histogram(
    'proxysentry_model_call_duration_seconds',
    'Time spent waiting for the language model reply',
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0],
    # 0.5s to 2 minutes - chat completions with a 2000 token cap
)
