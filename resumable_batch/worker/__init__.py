"""Worker utilities for running and rescheduling invocations."""

from .runner import Collaborators, build_collaborators, run_invocation
from .scheduler import RqScheduler

__all__ = ["Collaborators", "RqScheduler", "build_collaborators", "run_invocation"]
