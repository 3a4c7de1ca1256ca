"""Prometheus metrics for the translation pipeline."""

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

# Create a custom registry to avoid conflicts
registry = CollectorRegistry()

request_count = Counter(
    'speech_relay_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status'],
    registry=registry
)

request_duration = Histogram(
    'speech_relay_request_duration_seconds',
    'Request duration in seconds',
    ['method', 'endpoint'],
    registry=registry
)

active_requests = Gauge(
    'speech_relay_active_requests',
    'Number of active requests',
    registry=registry
)

pipeline_runs = Counter(
    'speech_relay_pipeline_runs_total',
    'Pipeline runs by entry path and outcome',
    ['entry', 'outcome'],
    registry=registry
)

active_runs = Gauge(
    'speech_relay_active_runs',
    'Pipeline runs currently in progress',
    registry=registry
)

stage_duration = Histogram(
    'speech_relay_stage_duration_seconds',
    'Duration of each pipeline stage in seconds',
    ['stage'],
    registry=registry
)

stage_failures = Counter(
    'speech_relay_stage_failures_total',
    'Pipeline failures by stage and error type',
    ['stage', 'error_type'],
    registry=registry
)

error_count = Counter(
    'speech_relay_errors_total',
    'Total number of unhandled request errors',
    ['error_type'],
    registry=registry
)
