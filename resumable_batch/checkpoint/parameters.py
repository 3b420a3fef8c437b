"""Parameter stores holding serialized checkpoints between invocations."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional

from redis import Redis
from sqlalchemy.orm import Session, sessionmaker

from ..config import Settings
from ..db.models import JobParameter
from ..db.session import get_sessionmaker, session_scope
from ..interfaces import ParameterStore

logger = logging.getLogger(__name__)


class JsonFileParameterStore:
    """Persist parameters to a single JSON file on disk."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self.path.write_text("{}", encoding="utf-8")

    def read(self) -> Dict[str, str]:
        return json.loads(self.path.read_text(encoding="utf-8"))

    def write(self, data: Dict[str, str]) -> None:
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self.path)

    def load(self, key: str) -> Optional[str]:
        return self.read().get(key)

    def save(self, key: str, value: str) -> None:
        data = self.read()
        data[key] = value
        self.write(data)

    def delete(self, key: str) -> None:
        data = self.read()
        if key in data:
            data.pop(key)
            self.write(data)


class SqlParameterStore:
    """Persist parameters as rows of the ``job_parameters`` table."""

    def __init__(self, factory: Optional[sessionmaker[Session]] = None) -> None:
        self.factory = factory or get_sessionmaker()

    def load(self, key: str) -> Optional[str]:
        with session_scope(self.factory) as session:
            row = session.get(JobParameter, key)
            return row.value if row else None

    def save(self, key: str, value: str) -> None:
        with session_scope(self.factory) as session:
            row = session.get(JobParameter, key)
            if row is None:
                session.add(JobParameter(key=key, value=value))
            else:
                row.value = value

    def delete(self, key: str) -> None:
        with session_scope(self.factory) as session:
            row = session.get(JobParameter, key)
            if row is not None:
                session.delete(row)


class RedisParameterStore:
    def __init__(self, redis: Redis, prefix: str = "resumable_batch:params") -> None:
        self.redis = redis
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def load(self, key: str) -> Optional[str]:
        value = self.redis.get(self._key(key))
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def save(self, key: str, value: str) -> None:
        self.redis.set(self._key(key), value)

    def delete(self, key: str) -> None:
        self.redis.delete(self._key(key))


class InvocationParameters:
    """Parameters passed to a scheduled invocation, backed by a durable store.

    Reads prefer the values the invocation was scheduled with; writes and
    deletes go to the durable store and drop the carried value.
    """

    def __init__(self, params: Optional[Mapping[str, str]], backend: ParameterStore) -> None:
        self.params = dict(params or {})
        self.backend = backend

    def load(self, key: str) -> Optional[str]:
        if self.params.get(key):
            logger.debug("Using scheduled parameter", extra={"key": key})
            return self.params[key]
        return self.backend.load(key)

    def save(self, key: str, value: str) -> None:
        self.params.pop(key, None)
        self.backend.save(key, value)

    def delete(self, key: str) -> None:
        self.params.pop(key, None)
        self.backend.delete(key)


def build_parameter_store(settings: Settings) -> ParameterStore:
    if settings.parameter_backend == "sql":
        return SqlParameterStore()
    if settings.parameter_backend == "redis":
        return RedisParameterStore(Redis.from_url(settings.redis_url))
    return JsonFileParameterStore(settings.data_dir / "checkpoints.json")


__all__ = [
    "InvocationParameters",
    "JsonFileParameterStore",
    "RedisParameterStore",
    "SqlParameterStore",
    "build_parameter_store",
]
