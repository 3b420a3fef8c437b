"""Checkpointed, quota-bounded resumable batch processing."""

__all__ = [
    "checkpoint",
    "clients",
    "config",
    "errors",
    "jobs",
    "logging_utils",
    "worker",
]

__version__ = "0.1.0"
