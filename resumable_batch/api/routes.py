"""FastAPI routes for inspecting and triggering resumable jobs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from redis import Redis

from ..checkpoint.state import CheckpointState
from ..config import Settings, get_settings
from ..errors import CheckpointError
from ..interfaces import ParameterStore, Scheduler
from ..jobs.enablement import RedisEnablement
from ..security.api_keys import JobOperation, Role, allows
from .deps import get_parameter_store, get_redis, get_scheduler

router = APIRouter()


class CheckpointResponse(BaseModel):
    job_id: str
    persistence_key: str
    checkpoint: Optional[Dict[str, Any]] = None


@router.get("/jobs/{job_id}/checkpoint", response_model=CheckpointResponse)
def get_checkpoint(
    job_id: str,
    settings: Settings = Depends(get_settings),
    parameters: ParameterStore = Depends(get_parameter_store),
    _: Role = Depends(allows(JobOperation.READ_CHECKPOINT)),
) -> CheckpointResponse:
    key = settings.persistence_key(job_id)
    raw = parameters.load(key)
    if not raw:
        return CheckpointResponse(job_id=job_id, persistence_key=key)
    try:
        state = CheckpointState.from_json(raw)
    except CheckpointError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return CheckpointResponse(job_id=job_id, persistence_key=key, checkpoint=state.to_dict())


@router.delete("/jobs/{job_id}/checkpoint", status_code=204)
def reset_checkpoint(
    job_id: str,
    settings: Settings = Depends(get_settings),
    parameters: ParameterStore = Depends(get_parameter_store),
    _: Role = Depends(allows(JobOperation.RESET_CHECKPOINT)),
) -> Response:
    parameters.delete(settings.persistence_key(job_id))
    return Response(status_code=204)


class RunRequest(BaseModel):
    deployment_id: str = Field("default", description="Deployment the invocation runs under")


class RunResponse(BaseModel):
    job_id: str
    deployment_id: str
    status: str


@router.post("/jobs/{job_id}/runs", response_model=RunResponse, status_code=202)
def trigger_run(
    job_id: str,
    payload: RunRequest,
    scheduler: Scheduler = Depends(get_scheduler),
    _: Role = Depends(allows(JobOperation.TRIGGER_RUN)),
) -> RunResponse:
    status = scheduler.schedule_retry(job_id, payload.deployment_id, {})
    return RunResponse(job_id=job_id, deployment_id=payload.deployment_id, status=status)


class EnabledRequest(BaseModel):
    enabled: bool


class EnabledResponse(BaseModel):
    job_id: str
    enabled: bool


@router.put("/jobs/{job_id}/enabled", response_model=EnabledResponse)
def set_enabled(
    job_id: str,
    payload: EnabledRequest,
    settings: Settings = Depends(get_settings),
    redis: Redis = Depends(get_redis),
    _: Role = Depends(allows(JobOperation.TOGGLE_ENABLED)),
) -> EnabledResponse:
    flag = RedisEnablement(redis, job_id, prefix=settings.enablement_key_prefix)
    flag.set_enabled(payload.enabled)
    return EnabledResponse(job_id=job_id, enabled=flag.is_enabled())


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: datetime


@router.get("/health", response_model=HealthResponse, include_in_schema=False)
def health_check() -> HealthResponse:
    return HealthResponse(timestamp=datetime.now(timezone.utc))
