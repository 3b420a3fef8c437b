"""Serializable progress record for a resumable job."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Mapping

from ..errors import CheckpointError


class Status(str, Enum):
    """Lifecycle marker stored alongside the counters."""

    START = "START"
    RUNNING = "RUNNING"
    SUSPENDED = "SUSPENDED"


STATE_KEY_FIELD = "script_param_for_state"


@dataclass(frozen=True)
class CheckpointState:
    """Outer/inner position of a job lineage.

    ``outer_index`` and ``outer_offset`` advance together once an outer item
    is finished. ``inner_index`` counts completed sub-items of the outer item
    currently being worked on and is zero between items.
    """

    outer_index: int = 0
    outer_offset: int = 0
    inner_index: int = 0
    status: Status = Status.START
    resumed: bool = False
    persistence_key: str = ""

    @property
    def is_suspended(self) -> bool:
        return self.status == Status.SUSPENDED

    def merge(self, partial: Mapping[str, Any]) -> "CheckpointState":
        """Return a copy with the known keys of ``partial`` overwritten."""

        known = field_names()
        updates = {key: value for key, value in partial.items() if key in known}
        if "status" in updates:
            updates["status"] = Status(updates["status"])
        return replace(self, **updates)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        data[STATE_KEY_FIELD] = self.persistence_key
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CheckpointState":
        if not isinstance(data, Mapping):
            raise CheckpointError(f"Checkpoint snapshot must be an object, got {type(data).__name__}")
        payload = dict(data)
        if not payload.get("persistence_key") and payload.get(STATE_KEY_FIELD):
            payload["persistence_key"] = payload[STATE_KEY_FIELD]
        _validate(payload)
        return cls().merge(payload)

    @classmethod
    def from_json(cls, raw: str) -> "CheckpointState":
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CheckpointError(f"Checkpoint snapshot is not valid JSON: {exc}") from exc
        return cls.from_dict(data)


COUNTER_FIELDS = ("outer_index", "outer_offset", "inner_index")


def _validate(payload: Mapping[str, Any]) -> None:
    for name in COUNTER_FIELDS:
        if name not in payload:
            continue
        value = payload[name]
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise CheckpointError(f"{name} must be a non-negative integer, got {value!r}")
    if "status" in payload:
        try:
            Status(payload["status"])
        except ValueError as exc:
            raise CheckpointError(f"Unknown checkpoint status {payload['status']!r}") from exc
    if "resumed" in payload and not isinstance(payload["resumed"], bool):
        raise CheckpointError(f"resumed must be a boolean, got {payload['resumed']!r}")
    if "persistence_key" in payload and not isinstance(payload["persistence_key"], str):
        raise CheckpointError(f"persistence_key must be a string, got {payload['persistence_key']!r}")


def field_names() -> frozenset:
    return frozenset(f.name for f in fields(CheckpointState))


__all__ = ["CheckpointState", "Status", "STATE_KEY_FIELD", "field_names"]
