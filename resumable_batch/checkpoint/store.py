"""Owner of the live checkpoint state for one invocation."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..errors import CheckpointError, NotInitialized
from ..interfaces import ParameterStore, Scheduler
from .actions import Action, ActionReducer, initialize
from .state import CheckpointState

logger = logging.getLogger(__name__)


class CheckpointStore:
    """Holds the single live :class:`CheckpointState` of a job lineage.

    The state is created by :meth:`initialize`, changed only through
    :meth:`dispatch`, and handed to the scheduler by :meth:`persist` when the
    invocation suspends.
    """

    def __init__(
        self,
        parameters: ParameterStore,
        scheduler: Scheduler,
        job_id: str,
        deployment_id: str = "default",
        reducer: Optional[ActionReducer] = None,
    ) -> None:
        self.parameters = parameters
        self.scheduler = scheduler
        self.job_id = job_id
        self.deployment_id = deployment_id
        self.reducer = reducer or ActionReducer()
        self._state: Optional[CheckpointState] = None
        self._persisted = False

    @property
    def initialized(self) -> bool:
        return self._state is not None

    def initialize(self, defaults: Mapping[str, Any], persistence_key: str) -> CheckpointState:
        base = CheckpointState(persistence_key=persistence_key)
        raw = self.parameters.load(persistence_key)
        logger.info(
            "Loaded checkpoint parameter",
            extra={"job_id": self.job_id, "persistence_key": persistence_key, "value": raw},
        )
        if raw:
            payload = CheckpointState.from_json(raw).to_dict()
        else:
            payload = dict(defaults)
        payload["persistence_key"] = persistence_key

        self._state = self.reducer.dispatch(base, initialize(payload)).state
        self._persisted = False
        return self._state

    def current(self) -> CheckpointState:
        if self._state is None:
            raise NotInitialized()
        return self._state

    def dispatch(self, action: Action) -> bool:
        """Apply ``action`` and report whether a suspension is now in effect."""

        result = self.reducer.dispatch(self.current(), action)
        self._state = result.state
        return result.state.is_suspended

    def persist(self) -> str:
        state = self.current()
        if self._persisted:
            raise CheckpointError("Checkpoint already persisted during this invocation")

        serialized = state.to_json()
        self.parameters.save(state.persistence_key, serialized)
        status = self.scheduler.schedule_retry(
            self.job_id,
            self.deployment_id,
            {state.persistence_key: serialized},
        )
        self._persisted = True
        logger.info(
            "Rescheduled job",
            extra={"job_id": self.job_id, "schedule_status": status, "state": serialized},
        )
        return status

    def clear(self) -> None:
        state = self.current()
        self.parameters.delete(state.persistence_key)
        logger.info("Cleared checkpoint", extra={"job_id": self.job_id, "persistence_key": state.persistence_key})


__all__ = ["CheckpointStore"]
