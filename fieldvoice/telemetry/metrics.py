"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

PIPELINE_RUNS = Counter(
    "voice_pipeline_runs_total",
    "Voice command pipeline runs by terminal outcome",
    ("outcome", "error_kind"),
)

STAGE_LATENCY = Histogram(
    "voice_pipeline_stage_seconds",
    "Time spent in each voice pipeline stage",
    ("stage",),
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

UPLOAD_SIZE = Histogram(
    "http_upload_bytes",
    "Size of uploaded request bodies in bytes",
    ("route",),
    buckets=(16_384, 65_536, 262_144, 1_048_576, 4_194_304, 10_485_760, 26_214_400),
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def observe_pipeline_stage(stage: str, duration_seconds: float) -> None:
    """Record the wall time of one pipeline stage."""

    STAGE_LATENCY.labels(stage=stage).observe(max(0.0, duration_seconds))


def record_pipeline_outcome(success: bool, error_kind: str | None = None) -> None:
    """Count a terminal pipeline state."""

    PIPELINE_RUNS.labels(
        outcome="succeeded" if success else "failed",
        error_kind=error_kind or "none",
    ).inc()


def observe_upload_size(route: str, size_bytes: int) -> None:
    """Record the declared size of an uploaded body."""

    UPLOAD_SIZE.labels(route=route or "unknown").observe(size_bytes)
