"""Budget tracking and the suspension decision."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..checkpoint.actions import SUSPEND
from ..checkpoint.store import CheckpointStore
from ..interfaces import QuotaOracle

logger = logging.getLogger(__name__)

DEFAULT_SUSPEND_THRESHOLD = 900.0


@dataclass(frozen=True)
class SuspendDecision:
    suspend: bool
    remaining: float
    threshold: float


class QuotaGate:
    """Decides when an invocation must stop and records that in the store."""

    def __init__(
        self,
        store: CheckpointStore,
        oracle: QuotaOracle,
        threshold: float = DEFAULT_SUSPEND_THRESHOLD,
    ) -> None:
        self.store = store
        self.oracle = oracle
        self.threshold = threshold

    def decide(self, remaining: float) -> SuspendDecision:
        return SuspendDecision(suspend=remaining < self.threshold, remaining=remaining, threshold=self.threshold)

    def apply_decision(self, decision: SuspendDecision) -> bool:
        """Record a suspend decision; once suspended, stays suspended."""

        already_suspended = self.store.current().is_suspended
        if decision.suspend:
            if not already_suspended:
                logger.info(
                    "Budget below threshold, suspending",
                    extra={"remaining": decision.remaining, "threshold": decision.threshold},
                )
            self.store.dispatch(SUSPEND)
        return decision.suspend or already_suspended

    def must_suspend(self) -> bool:
        return self.apply_decision(self.decide(self.oracle.remaining_budget()))


class UsageMeter:
    """Per-invocation unit budget charged by metered collaborators."""

    def __init__(self, limit: float) -> None:
        self.limit = limit
        self.used = 0.0

    def charge(self, units: float) -> None:
        self.used += units

    def remaining_budget(self) -> float:
        return self.limit - self.used


__all__ = ["DEFAULT_SUSPEND_THRESHOLD", "QuotaGate", "SuspendDecision", "UsageMeter"]
