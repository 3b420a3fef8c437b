"""RQ backed scheduler for follow-up invocations."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from redis import Redis
from rq import Queue

logger = logging.getLogger(__name__)

INVOCATION_FUNC = "resumable_batch.worker.tasks.run_scheduled_invocation"


class RqScheduler:
    """Enqueue an invocation of a job carrying its checkpoint parameters."""

    def __init__(self, queue: Queue) -> None:
        self.queue = queue

    @classmethod
    def from_url(cls, redis_url: str, queue_name: str) -> "RqScheduler":
        return cls(Queue(queue_name, connection=Redis.from_url(redis_url)))

    def schedule_retry(
        self,
        job_id: str,
        deployment_id: str,
        params: Optional[Mapping[str, str]] = None,
    ) -> str:
        rq_job = self.queue.enqueue(
            INVOCATION_FUNC,
            job_id,
            deployment_id,
            dict(params or {}),
            description=f"resumable batch {job_id} ({deployment_id})",
        )
        status = rq_job.get_status()
        status_value = getattr(status, "value", status)
        logger.info(
            "Enqueued invocation",
            extra={"job_id": job_id, "deployment_id": deployment_id, "rq_job_id": rq_job.id, "status": status_value},
        )
        return str(status_value)


__all__ = ["INVOCATION_FUNC", "RqScheduler"]
