"""Prometheus metrics and monitoring utilities."""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest

SUB_ITEMS_PROCESSED = Counter("resumable_batch_sub_items_processed_total", "Sub-items processed")
OUTER_ITEMS_COMPLETED = Counter("resumable_batch_outer_items_completed_total", "Outer items whose sub-items all ran")
CHECKPOINTS_PERSISTED = Counter("resumable_batch_checkpoints_persisted_total", "Checkpoints saved for rescheduling")
LOOP_ERRORS = Counter("resumable_batch_loop_errors_total", "Invocations stopped by a processing error")
INVOCATIONS_TOTAL = Counter("resumable_batch_invocations_total", "Invocations by outcome", ["outcome"])

metrics_router = APIRouter()


@metrics_router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "CHECKPOINTS_PERSISTED",
    "INVOCATIONS_TOTAL",
    "LOOP_ERRORS",
    "OUTER_ITEMS_COMPLETED",
    "SUB_ITEMS_PROCESSED",
    "metrics_router",
]
