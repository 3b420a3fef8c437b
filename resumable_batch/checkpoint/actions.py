"""Action kinds and the reducer that applies them to checkpoint state."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Union

from ..errors import DuplicateOrInvalidHandler
from .state import CheckpointState, Status

logger = logging.getLogger(__name__)

Partial = Mapping[str, Any]


class ActionKind(str, Enum):
    INITIALIZE = "INITIALIZE"
    SUSPEND_REQUESTED = "SUSPEND_REQUESTED"
    ADVANCE_OUTER = "ADVANCE_OUTER"
    ADVANCE_INNER = "ADVANCE_INNER"
    RESET_INNER = "RESET_INNER"


RESERVED_KINDS = frozenset({ActionKind.INITIALIZE.value, ActionKind.SUSPEND_REQUESTED.value})


@dataclass(frozen=True)
class Action:
    kind: Union[ActionKind, str]
    payload: Mapping[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.kind.value if isinstance(self.kind, ActionKind) else str(self.kind)


@dataclass(frozen=True)
class DispatchResult:
    state: CheckpointState
    applied: bool = True


class ActionHandler(Protocol):
    """Pure transition: computes the fields to overwrite, never mutates."""

    def apply(self, state: CheckpointState, payload: Mapping[str, Any]) -> Partial:
        ...


class AdvanceOuter:
    """Move to the next outer item unless a suspension interrupted one mid-way.

    While suspended, a zero ``inner_index`` means the current item finished
    and the next invocation starts on the following one. A non-zero
    ``inner_index`` means sub-items remain, so the counters stay put and the
    next invocation reloads the same outer item.
    """

    def apply(self, state: CheckpointState, payload: Mapping[str, Any]) -> Partial:
        if state.is_suspended and state.inner_index > 0:
            return {"outer_index": state.outer_index, "outer_offset": state.outer_offset}
        return {"outer_index": state.outer_index + 1, "outer_offset": state.outer_offset + 1}


class AdvanceInner:
    def apply(self, state: CheckpointState, payload: Mapping[str, Any]) -> Partial:
        return {"inner_index": state.inner_index + 1}


class ResetInner:
    def apply(self, state: CheckpointState, payload: Mapping[str, Any]) -> Partial:
        return {"inner_index": 0}


class _CallableHandler:
    def __init__(self, fn: Callable[[CheckpointState, Mapping[str, Any]], Partial]) -> None:
        self._fn = fn

    def apply(self, state: CheckpointState, payload: Mapping[str, Any]) -> Partial:
        return self._fn(state, payload)


def default_handlers() -> Dict[str, ActionHandler]:
    return {
        ActionKind.ADVANCE_OUTER.value: AdvanceOuter(),
        ActionKind.ADVANCE_INNER.value: AdvanceInner(),
        ActionKind.RESET_INNER.value: ResetInner(),
    }


class ActionReducer:
    """Routes actions to handlers and shallow-merges their results."""

    def __init__(self, handlers: Optional[Mapping[str, Any]] = None) -> None:
        self._handlers: Dict[str, ActionHandler] = {}
        for name, handler in (handlers if handlers is not None else default_handlers()).items():
            self.register(name, handler)

    def register(self, name: Union[ActionKind, str], handler: Any) -> None:
        key = name.value if isinstance(name, ActionKind) else str(name)
        if not key:
            raise DuplicateOrInvalidHandler("Action name must not be empty")
        if key in RESERVED_KINDS:
            raise DuplicateOrInvalidHandler(f"{key} is a built-in action and cannot be replaced")
        apply = getattr(handler, "apply", None)
        if callable(apply):
            self._handlers[key] = handler
        elif callable(handler):
            self._handlers[key] = _CallableHandler(handler)
        else:
            raise DuplicateOrInvalidHandler(f"The handler for {key} is not callable")

    def is_registered(self, name: Union[ActionKind, str]) -> bool:
        key = name.value if isinstance(name, ActionKind) else str(name)
        return key in RESERVED_KINDS or key in self._handlers

    def dispatch(self, state: CheckpointState, action: Action) -> DispatchResult:
        name = action.name
        if name == ActionKind.INITIALIZE.value:
            return DispatchResult(self._initialize(state, action.payload))
        if name == ActionKind.SUSPEND_REQUESTED.value:
            return DispatchResult(state.merge({"status": Status.SUSPENDED}))

        handler = self._handlers.get(name)
        if handler is None:
            logger.warning("Ignoring unregistered action %s", name, extra={"payload": dict(action.payload)})
            return DispatchResult(state, applied=False)

        partial = handler.apply(state, action.payload)
        logger.debug("Applied action %s", name, extra={"partial": dict(partial)})
        return DispatchResult(state.merge(partial))

    @staticmethod
    def _initialize(state: CheckpointState, payload: Mapping[str, Any]) -> CheckpointState:
        snapshot = CheckpointState.from_dict(payload)
        resumed = snapshot.status == Status.SUSPENDED
        merged = state.merge({key: value for key, value in payload.items() if key != "resumed"})
        return merged.merge(
            {
                "persistence_key": snapshot.persistence_key or state.persistence_key,
                "status": Status.RUNNING,
                "resumed": resumed,
            }
        )


def initialize(payload: Mapping[str, Any]) -> Action:
    return Action(ActionKind.INITIALIZE, payload)


SUSPEND = Action(ActionKind.SUSPEND_REQUESTED)
ADVANCE_OUTER = Action(ActionKind.ADVANCE_OUTER)
ADVANCE_INNER = Action(ActionKind.ADVANCE_INNER)
RESET_INNER = Action(ActionKind.RESET_INNER)


__all__ = [
    "Action",
    "ActionHandler",
    "ActionKind",
    "ActionReducer",
    "AdvanceInner",
    "AdvanceOuter",
    "DispatchResult",
    "ResetInner",
    "RESERVED_KINDS",
    "SUSPEND",
    "ADVANCE_OUTER",
    "ADVANCE_INNER",
    "RESET_INNER",
    "default_handlers",
    "initialize",
]
