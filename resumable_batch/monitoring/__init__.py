"""Monitoring helpers."""

from .metrics import (
    CHECKPOINTS_PERSISTED,
    INVOCATIONS_TOTAL,
    LOOP_ERRORS,
    OUTER_ITEMS_COMPLETED,
    SUB_ITEMS_PROCESSED,
    metrics_router,
)

__all__ = [
    "CHECKPOINTS_PERSISTED",
    "INVOCATIONS_TOTAL",
    "LOOP_ERRORS",
    "OUTER_ITEMS_COMPLETED",
    "SUB_ITEMS_PROCESSED",
    "metrics_router",
]
