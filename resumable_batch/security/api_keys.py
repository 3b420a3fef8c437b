"""API key roles for the job endpoints.

Operators can read checkpoints and queue invocations. Resetting a
checkpoint or flipping a job's enable flag changes what the next
invocation does, so those are admin only.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Optional

from fastapi import Depends, HTTPException, Security
from fastapi.security import APIKeyHeader

from ..config import Settings, get_settings


class Role(str, Enum):
    ADMIN = "admin"
    OPERATOR = "operator"


class JobOperation(str, Enum):
    READ_CHECKPOINT = "read_checkpoint"
    TRIGGER_RUN = "trigger_run"
    RESET_CHECKPOINT = "reset_checkpoint"
    TOGGLE_ENABLED = "toggle_enabled"


ROLE_OPERATIONS: Dict[Role, FrozenSet[JobOperation]] = {
    Role.OPERATOR: frozenset({JobOperation.READ_CHECKPOINT, JobOperation.TRIGGER_RUN}),
    Role.ADMIN: frozenset(JobOperation),
}

_api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def role_for_key(settings: Settings, api_key: str) -> Optional[Role]:
    """Admin keys win when a key is configured under both roles."""

    if api_key in settings.admin_api_keys:
        return Role.ADMIN
    if api_key in settings.operator_api_keys:
        return Role.OPERATOR
    return None


def get_current_role(
    api_key: Optional[str] = Security(_api_key_header),
    settings: Settings = Depends(get_settings),
) -> Role:
    if not api_key:
        raise HTTPException(status_code=401, detail="Missing API key")
    role = role_for_key(settings, api_key)
    if role is None:
        raise HTTPException(status_code=403, detail="Invalid API key")
    return role


def allows(operation: JobOperation):
    """Dependency rejecting callers whose role may not perform ``operation``."""

    def _dependency(role: Role = Depends(get_current_role)) -> Role:
        if operation not in ROLE_OPERATIONS[role]:
            raise HTTPException(status_code=403, detail=f"Role {role.value} may not {operation.value}")
        return role

    return _dependency


__all__ = ["JobOperation", "ROLE_OPERATIONS", "Role", "allows", "get_current_role", "role_for_key"]
