"""Telemetry helpers and metrics."""

from .metrics import (
    ERROR_COUNTER,
    PIPELINE_RUNS,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    STAGE_LATENCY,
    UPLOAD_SIZE,
    observe_pipeline_stage,
    observe_request,
    observe_upload_size,
    record_pipeline_outcome,
)

__all__ = [
    "ERROR_COUNTER",
    "PIPELINE_RUNS",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "STAGE_LATENCY",
    "UPLOAD_SIZE",
    "observe_pipeline_stage",
    "observe_request",
    "observe_upload_size",
    "record_pipeline_outcome",
]
