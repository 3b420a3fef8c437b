"""RQ worker helpers for distributed processing."""

from __future__ import annotations

from redis import Redis
from rq import Queue, Worker

from ..config import Settings


def run_rq_worker(settings: Settings, queue_name: str = "", burst: bool = False) -> bool:
    redis = Redis.from_url(settings.redis_url)
    queue = Queue(queue_name or settings.queue_name, connection=redis)
    worker = Worker([queue], connection=redis)
    return worker.work(burst=burst)


__all__ = ["run_rq_worker"]
