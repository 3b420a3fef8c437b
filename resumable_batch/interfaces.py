"""Collaborator contracts the checkpoint core depends on."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence


class ParameterStore(Protocol):
    def load(self, key: str) -> Optional[str]:
        ...

    def save(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class Scheduler(Protocol):
    def schedule_retry(self, job_id: str, deployment_id: str, params: Mapping[str, str]) -> str:
        ...


class WorkItemSource(Protocol):
    def fetch_page(self, offset: int, page_size: int) -> Sequence[Any]:
        ...


class RecordStore(Protocol):
    """Loads outer items and addresses their sub-items.

    ``load_outer`` raises :class:`~resumable_batch.errors.NotFound` or
    :class:`~resumable_batch.errors.LoadError`.
    """

    def load_outer(self, ref: Any) -> Any:
        ...

    def sub_item_count(self, item: Any) -> int:
        ...

    def load_sub_item_ref(self, item: Any, index: int) -> Any:
        ...


class SubItemProcessor(Protocol):
    def process(self, item: Any, sub_item_ref: Any) -> None:
        ...


class QuotaOracle(Protocol):
    def remaining_budget(self) -> float:
        ...


class EnablementSignal(Protocol):
    def is_enabled(self) -> bool:
        ...


__all__ = [
    "EnablementSignal",
    "ParameterStore",
    "QuotaOracle",
    "RecordStore",
    "Scheduler",
    "SubItemProcessor",
    "WorkItemSource",
]
