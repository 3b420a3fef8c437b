"""Shared dependencies for the operator API."""

from __future__ import annotations

from typing import Optional

from redis import Redis

from ..checkpoint.parameters import build_parameter_store
from ..config import get_settings
from ..interfaces import ParameterStore, Scheduler
from ..worker.scheduler import RqScheduler

_parameter_store: Optional[ParameterStore] = None
_scheduler: Optional[Scheduler] = None
_redis: Optional[Redis] = None


def get_parameter_store() -> ParameterStore:
    global _parameter_store
    if _parameter_store is None:
        _parameter_store = build_parameter_store(get_settings())
    return _parameter_store


def get_scheduler() -> Scheduler:
    global _scheduler
    if _scheduler is None:
        settings = get_settings()
        _scheduler = RqScheduler.from_url(settings.redis_url, settings.queue_name)
    return _scheduler


def get_redis() -> Redis:
    global _redis
    if _redis is None:
        _redis = Redis.from_url(get_settings().redis_url)
    return _redis


__all__ = ["get_parameter_store", "get_redis", "get_scheduler"]
