import json

import pytest

from conftest import Harness, MemoryParameterStore, RecordingProcessor, RecordingScheduler, ToggleEnablement
from resumable_batch.checkpoint.parameters import InvocationParameters
from resumable_batch.checkpoint.state import CheckpointState, Status
from resumable_batch.clients.records import LoadSubItemProcessor
from resumable_batch.config import Settings
from resumable_batch.jobs.enablement import RedisEnablement, StaticEnablement
from resumable_batch.jobs.loop import LoopOutcome
from resumable_batch.jobs.quota import UsageMeter
from resumable_batch.worker.runner import Collaborators, load_processor, run_invocation
from resumable_batch.worker.scheduler import INVOCATION_FUNC, RqScheduler


class MeteredProcessor(RecordingProcessor):
    def __init__(self, meter):
        super().__init__()
        self.meter = meter


def make_collaborators(counts, parameters, scheduler=None, budget=1_000_000, enablement=None):
    harness = Harness(counts)
    meter = UsageMeter(budget)
    processor = MeteredProcessor(meter)
    collaborators = Collaborators(
        parameters=parameters,
        scheduler=scheduler or RecordingScheduler(),
        enablement=enablement or StaticEnablement(True),
        source=harness.source,
        records=harness.records,
        processor=processor,
        oracle=meter,
    )
    return collaborators, processor


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path, suspend_threshold=1, page_size=10, state_param_name="state")


def test_run_invocation_suspends_and_then_completes(settings):
    parameters = MemoryParameterStore()
    scheduler = RecordingScheduler()

    parts, processor = make_collaborators({"A": 2, "B": 2}, parameters, scheduler, budget=3)
    first = run_invocation("job-7", "deploy-1", settings=settings, collaborators=parts)

    assert first.outcome is LoopOutcome.SUSPENDED
    assert processor.processed == [("A", 0), ("A", 1), ("B", 0)]
    job_id, deployment_id, params = scheduler.calls[0]
    assert (job_id, deployment_id) == ("job-7", "deploy-1")
    snapshot = CheckpointState.from_json(params["state:job-7"])
    assert (snapshot.outer_index, snapshot.inner_index, snapshot.status) == (1, 1, Status.SUSPENDED)

    scheduled = InvocationParameters(params, MemoryParameterStore())
    parts, processor = make_collaborators({"A": 2, "B": 2}, scheduled, scheduler)
    second = run_invocation("job-7", "deploy-1", params=params, settings=settings, collaborators=parts)

    assert second.outcome is LoopOutcome.COMPLETED
    assert processor.processed == [("B", 1)]
    assert scheduled.load("state:job-7") is None


def test_completed_run_clears_durable_checkpoint(settings):
    parameters = MemoryParameterStore(
        {"state:job-7": CheckpointState(outer_index=1, outer_offset=1, status=Status.SUSPENDED).to_json()}
    )
    parts, processor = make_collaborators({"A": 1, "B": 1}, parameters)

    result = run_invocation("job-7", settings=settings, collaborators=parts)

    assert result.outcome is LoopOutcome.COMPLETED
    assert processor.processed == [("B", 0)]
    assert "state:job-7" not in parameters.data


def test_aborted_run_keeps_durable_checkpoint(settings):
    stored = CheckpointState(outer_index=1, outer_offset=1, status=Status.SUSPENDED).to_json()
    parameters = MemoryParameterStore({"state:job-7": stored})
    parts, processor = make_collaborators(
        {"A": 1, "B": 1}, parameters, enablement=ToggleEnablement(disable_at_call=1)
    )

    result = run_invocation("job-7", settings=settings, collaborators=parts)

    assert result.outcome is LoopOutcome.ABORTED
    assert processor.processed == []
    assert parameters.data["state:job-7"] == stored


def test_close_hook_runs_after_invocation(settings):
    closed = []
    parts, _ = make_collaborators({"A": 1}, MemoryParameterStore())
    parts.close = lambda: closed.append(True)

    run_invocation("job-7", settings=settings, collaborators=parts)

    assert closed == [True]


def test_load_processor_imports_factory():
    client = object()
    processor = load_processor("resumable_batch.clients.records:LoadSubItemProcessor", client)
    assert isinstance(processor, LoadSubItemProcessor)
    assert processor.client is client


def test_load_processor_rejects_malformed_path():
    with pytest.raises(ValueError):
        load_processor("resumable_batch.clients.records", object())


def test_redis_enablement_flags(fake_redis):
    flag = RedisEnablement(fake_redis, "job-7", prefix="rb:jobs")
    assert flag.is_enabled() is True

    flag.set_enabled(False)
    assert fake_redis.values["rb:jobs:job-7:enabled"] == b"0"
    assert flag.is_enabled() is False

    fake_redis.set("rb:jobs:job-7:enabled", "off")
    assert flag.is_enabled() is False
    fake_redis.set("rb:jobs:job-7:enabled", "yes")
    assert flag.is_enabled() is True


class FakeRqJob:
    id = "rq-1"

    def get_status(self):
        return "queued"


class FakeQueue:
    def __init__(self):
        self.enqueued = []

    def enqueue(self, func, *args, **kwargs):
        self.enqueued.append((func, args, kwargs))
        return FakeRqJob()


def test_rq_scheduler_enqueues_invocation_with_params():
    queue = FakeQueue()
    scheduler = RqScheduler(queue)

    status = scheduler.schedule_retry("job-7", "deploy-1", {"state:job-7": json.dumps({"inner_index": 1})})

    assert status == "queued"
    func, args, kwargs = queue.enqueued[0]
    assert func == INVOCATION_FUNC
    assert args == ("job-7", "deploy-1", {"state:job-7": '{"inner_index": 1}'})
    assert "job-7" in kwargs["description"]
