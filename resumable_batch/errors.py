"""Exception hierarchy for the resumable batch processor."""

from __future__ import annotations


class ResumableBatchError(Exception):
    """Base class for all errors raised by this package."""


class CheckpointError(ResumableBatchError):
    """Checkpoint state was used incorrectly."""


class NotInitialized(CheckpointError):
    """The checkpoint store was read or mutated before ``initialize``."""

    def __init__(self) -> None:
        super().__init__("The checkpoint store must be initialized before it can be used")


class DuplicateOrInvalidHandler(CheckpointError):
    """A reducer handler could not be registered."""


class RecordError(ResumableBatchError):
    """An external record could not be fetched."""

    def __init__(self, message: str, ref: object = None) -> None:
        super().__init__(message)
        self.ref = ref


class NotFound(RecordError):
    pass


class LoadError(RecordError):
    pass


__all__ = [
    "ResumableBatchError",
    "CheckpointError",
    "NotInitialized",
    "DuplicateOrInvalidHandler",
    "RecordError",
    "NotFound",
    "LoadError",
]
