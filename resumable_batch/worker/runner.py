"""Single invocation entry point: wire collaborators, run the loop."""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

import httpx
from redis import Redis

from ..checkpoint.parameters import InvocationParameters, build_parameter_store
from ..checkpoint.store import CheckpointStore
from ..clients.records import RecordServiceClient
from ..config import Settings, get_settings
from ..interfaces import (
    EnablementSignal,
    ParameterStore,
    QuotaOracle,
    RecordStore,
    Scheduler,
    SubItemProcessor,
    WorkItemSource,
)
from ..jobs.enablement import RedisEnablement, StaticEnablement
from ..jobs.loop import LoopOutcome, LoopResult, ResumableLoop
from ..jobs.quota import QuotaGate, UsageMeter
from ..monitoring.metrics import CHECKPOINTS_PERSISTED, INVOCATIONS_TOTAL
from .scheduler import RqScheduler

logger = logging.getLogger(__name__)

INITIAL_STATE = {
    "outer_offset": 0,
    "outer_index": 0,
    "inner_index": 0,
    "status": "START",
}


@dataclass
class Collaborators:
    parameters: ParameterStore
    scheduler: Scheduler
    enablement: EnablementSignal
    source: WorkItemSource
    records: RecordStore
    processor: SubItemProcessor
    oracle: QuotaOracle
    close: Optional[Callable[[], None]] = None


def load_processor(path: str, client: RecordServiceClient) -> SubItemProcessor:
    """Import ``module:attr`` and call it with the record client."""

    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Processor path must look like 'package.module:factory', got {path!r}")
    factory: Any = getattr(importlib.import_module(module_name), attr)
    return factory(client)


def build_collaborators(
    settings: Settings,
    job_id: str,
    params: Optional[Mapping[str, str]] = None,
) -> Collaborators:
    redis = Redis.from_url(settings.redis_url)
    meter = UsageMeter(settings.invocation_budget)
    http = httpx.Client(base_url=settings.records_base_url, timeout=settings.records_timeout_seconds)
    client = RecordServiceClient(
        http,
        meter=meter,
        request_cost=settings.request_cost,
        max_attempts=settings.records_max_retries,
    )
    enablement: EnablementSignal
    if settings.use_enablement_flags:
        enablement = RedisEnablement(redis, job_id, prefix=settings.enablement_key_prefix)
    else:
        enablement = StaticEnablement(True)

    return Collaborators(
        parameters=InvocationParameters(params, build_parameter_store(settings)),
        scheduler=RqScheduler.from_url(settings.redis_url, settings.queue_name),
        enablement=enablement,
        source=client,
        records=client,
        processor=load_processor(settings.processor, client),
        oracle=meter,
        close=http.close,
    )


def run_invocation(
    job_id: str,
    deployment_id: str = "default",
    params: Optional[Mapping[str, str]] = None,
    settings: Optional[Settings] = None,
    collaborators: Optional[Collaborators] = None,
) -> LoopResult:
    settings = settings or get_settings()
    parts = collaborators or build_collaborators(settings, job_id, params)

    try:
        store = CheckpointStore(parts.parameters, parts.scheduler, job_id, deployment_id)
        store.initialize(INITIAL_STATE, settings.persistence_key(job_id))
        logger.info("State when invocation starts", extra={"job_id": job_id, "state": store.current().to_dict()})

        gate = QuotaGate(store, parts.oracle, threshold=settings.suspend_threshold)
        loop = ResumableLoop(
            store,
            gate,
            parts.source,
            parts.records,
            parts.processor,
            parts.enablement,
            page_size=settings.page_size,
        )
        result = loop.run()

        if result.outcome == LoopOutcome.COMPLETED:
            store.clear()
        elif result.outcome == LoopOutcome.SUSPENDED:
            CHECKPOINTS_PERSISTED.inc()
    finally:
        if parts.close is not None:
            parts.close()

    INVOCATIONS_TOTAL.labels(outcome=result.outcome.value).inc()
    logger.info(
        "Invocation finished",
        extra={
            "job_id": job_id,
            "outcome": result.outcome.value,
            "resumed": result.resumed,
            "outer_items": result.outer_items,
            "sub_items": result.sub_items,
            "state": store.current().to_dict(),
        },
    )
    return result


__all__ = ["Collaborators", "INITIAL_STATE", "build_collaborators", "load_processor", "run_invocation"]
