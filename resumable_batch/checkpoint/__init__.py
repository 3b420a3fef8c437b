"""Checkpoint state, reducer and store."""

from .actions import Action, ActionKind, ActionReducer, DispatchResult
from .state import CheckpointState, Status
from .store import CheckpointStore

__all__ = [
    "Action",
    "ActionKind",
    "ActionReducer",
    "CheckpointState",
    "CheckpointStore",
    "DispatchResult",
    "Status",
]
