from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from resumable_batch.checkpoint.store import CheckpointStore
from resumable_batch.config import get_settings
from resumable_batch.errors import LoadError
from resumable_batch.interfaces import QuotaOracle
from resumable_batch.jobs.loop import LoopResult, ResumableLoop
from resumable_batch.jobs.quota import QuotaGate, UsageMeter
from resumable_batch.worker.runner import INITIAL_STATE


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'parameters.db'}")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class MemoryParameterStore:
    def __init__(self, data: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(data or {})
        self.saves: List[Tuple[str, str]] = []

    def load(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def save(self, key: str, value: str) -> None:
        self.saves.append((key, value))
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class RecordingScheduler:
    def __init__(self) -> None:
        self.calls: List[Tuple[str, str, Dict[str, str]]] = []

    def schedule_retry(self, job_id: str, deployment_id: str, params) -> str:
        self.calls.append((job_id, deployment_id, dict(params)))
        return "queued"


class ListSource:
    def __init__(self, refs: Sequence[str]) -> None:
        self.refs = list(refs)
        self.fetches: List[Tuple[int, int]] = []

    def fetch_page(self, offset: int, page_size: int) -> List[str]:
        self.fetches.append((offset, page_size))
        return self.refs[offset:offset + page_size]


class NestedRecords:
    """Outer items are their refs; sub-item refs are ``(ref, index)`` pairs."""

    def __init__(self, counts: Dict[str, int], missing: Sequence[str] = ()) -> None:
        self.counts = counts
        self.missing = set(missing)
        self.loaded: List[str] = []

    def load_outer(self, ref: str) -> str:
        if ref in self.missing:
            raise LoadError(f"cannot load {ref}", ref=ref)
        self.loaded.append(ref)
        return ref

    def sub_item_count(self, item: str) -> int:
        return self.counts[item]

    def load_sub_item_ref(self, item: str, index: int) -> Tuple[str, int]:
        return (item, index)


class RecordingProcessor:
    def __init__(self, fail_on: Sequence[Tuple[str, int]] = ()) -> None:
        self.processed: List[Tuple[str, int]] = []
        self.fail_on = set(fail_on)
        self.meter: Optional[UsageMeter] = None

    def process(self, item: str, sub_item_ref: Tuple[str, int]) -> None:
        if sub_item_ref in self.fail_on:
            raise RuntimeError(f"cannot process {sub_item_ref}")
        self.processed.append(sub_item_ref)
        if self.meter is not None:
            self.meter.charge(1)


class ToggleEnablement:
    def __init__(self, disable_at_call: Optional[int] = None) -> None:
        self.disable_at_call = disable_at_call
        self.calls = 0

    def is_enabled(self) -> bool:
        self.calls += 1
        return self.disable_at_call is None or self.calls < self.disable_at_call


@dataclass
class Harness:
    """Shared collaborators; each :meth:`invoke` is a fresh invocation."""

    counts: Dict[str, int]
    parameters: MemoryParameterStore = field(default_factory=MemoryParameterStore)
    scheduler: RecordingScheduler = field(default_factory=RecordingScheduler)
    processor: RecordingProcessor = field(default_factory=RecordingProcessor)
    enablement: ToggleEnablement = field(default_factory=ToggleEnablement)
    missing: Sequence[str] = ()
    key: str = "state:job-1"

    def __post_init__(self) -> None:
        self.source = ListSource(list(self.counts))
        self.records = NestedRecords(self.counts, missing=self.missing)

    def invoke(
        self,
        budget: float = 1_000_000,
        page_size: int = 1000,
        oracle: Optional[QuotaOracle] = None,
    ) -> Tuple[LoopResult, CheckpointStore]:
        meter = UsageMeter(budget)
        self.processor.meter = meter
        store = CheckpointStore(self.parameters, self.scheduler, "job-1", "deploy-1")
        store.initialize(INITIAL_STATE, self.key)
        gate = QuotaGate(store, oracle or meter, threshold=1)
        loop = ResumableLoop(
            store,
            gate,
            self.source,
            self.records,
            self.processor,
            self.enablement,
            page_size=page_size,
        )
        return loop.run(), store


@pytest.fixture
def memory_parameters() -> MemoryParameterStore:
    return MemoryParameterStore()


@pytest.fixture
def recording_scheduler() -> RecordingScheduler:
    return RecordingScheduler()


class FakeRedis:
    def __init__(self) -> None:
        self.values: Dict[str, bytes] = {}

    def get(self, key: str) -> Optional[bytes]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value.encode("utf-8")

    def delete(self, key: str) -> None:
        self.values.pop(key, None)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
