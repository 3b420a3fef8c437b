"""Resumable loop and quota gate."""

from .loop import LoopOutcome, LoopResult, ResumableLoop
from .quota import QuotaGate, SuspendDecision, UsageMeter

__all__ = ["LoopOutcome", "LoopResult", "QuotaGate", "ResumableLoop", "SuspendDecision", "UsageMeter"]
