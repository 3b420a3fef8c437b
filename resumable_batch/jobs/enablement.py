"""Signals telling the loop whether a job may keep running."""

from __future__ import annotations

from redis import Redis

DISABLED_VALUES = {"0", "false", "no", "off"}


class StaticEnablement:
    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def is_enabled(self) -> bool:
        return self.enabled


class RedisEnablement:
    """Per-job enable flag kept in Redis; a missing key means enabled."""

    def __init__(self, redis: Redis, job_id: str, prefix: str = "resumable_batch:jobs") -> None:
        self.redis = redis
        self.job_id = job_id
        self.key = f"{prefix}:{job_id}:enabled"

    def is_enabled(self) -> bool:
        value = self.redis.get(self.key)
        if value is None:
            return True
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value.strip().lower() not in DISABLED_VALUES

    def set_enabled(self, enabled: bool) -> None:
        self.redis.set(self.key, "1" if enabled else "0")


__all__ = ["DISABLED_VALUES", "RedisEnablement", "StaticEnablement"]
