"""Functions executed by RQ workers."""

from __future__ import annotations

from typing import Dict, Optional

from ..config import get_settings
from .runner import run_invocation


def run_scheduled_invocation(job_id: str, deployment_id: str, params: Optional[Dict[str, str]] = None) -> str:
    """RQ entry point for an invocation enqueued by :class:`RqScheduler`."""

    result = run_invocation(job_id, deployment_id, params=params, settings=get_settings())
    return result.outcome.value


__all__ = ["run_scheduled_invocation"]
