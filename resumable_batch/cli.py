"""CLI entrypoint for the resumable batch processor."""

from __future__ import annotations

import json
from typing import Optional

import typer
from redis import Redis

from .checkpoint.parameters import build_parameter_store
from .checkpoint.state import CheckpointState
from .config import get_settings
from .errors import CheckpointError
from .jobs.enablement import RedisEnablement
from .logging_utils import configure_logging
from .worker.rq_worker import run_rq_worker
from .worker.runner import run_invocation
from .worker.scheduler import RqScheduler

app = typer.Typer(help="Resumable batch processor command line interface")


@app.command()
def show_config() -> None:
    """Print the active configuration."""

    settings = get_settings()
    typer.echo(settings.model_dump_json(indent=2))


@app.command()
def run(
    job_id: str,
    deployment_id: str = typer.Option("default", help="Deployment the invocation runs under"),
    params: Optional[str] = typer.Option(None, help="Scheduled parameters as a JSON object"),
) -> None:
    """Run one invocation in the foreground."""

    settings = get_settings()
    configure_logging(settings.log_file, settings.log_level)
    payload = json.loads(params) if params else None
    result = run_invocation(job_id, deployment_id, params=payload, settings=settings)
    origin = "resumed from checkpoint" if result.resumed else "fresh start"
    typer.echo(
        f"Job {job_id} {result.outcome.value} ({origin}): "
        f"{result.outer_items} outer items, {result.sub_items} sub-items"
    )
    if result.error:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(code=1)


@app.command()
def enqueue(
    job_id: str,
    deployment_id: str = typer.Option("default", help="Deployment the invocation runs under"),
) -> None:
    """Queue an invocation for an RQ worker."""

    settings = get_settings()
    scheduler = RqScheduler.from_url(settings.redis_url, settings.queue_name)
    status = scheduler.schedule_retry(job_id, deployment_id, {})
    typer.echo(f"Enqueued {job_id} on {settings.queue_name}: {status}")


@app.command()
def show_checkpoint(job_id: str) -> None:
    """Print the persisted checkpoint of a job."""

    settings = get_settings()
    raw = build_parameter_store(settings).load(settings.persistence_key(job_id))
    if not raw:
        typer.echo(f"No checkpoint stored for {job_id}")
        return
    try:
        state = CheckpointState.from_json(raw)
    except CheckpointError as exc:
        typer.echo(f"Stored checkpoint for {job_id} is invalid: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(json.dumps(state.to_dict(), indent=2, sort_keys=True))


@app.command()
def reset(job_id: str) -> None:
    """Delete the persisted checkpoint so the next run starts from scratch."""

    settings = get_settings()
    build_parameter_store(settings).delete(settings.persistence_key(job_id))
    typer.echo(f"Checkpoint for {job_id} removed")


def _set_enabled(job_id: str, enabled: bool) -> None:
    settings = get_settings()
    flag = RedisEnablement(Redis.from_url(settings.redis_url), job_id, prefix=settings.enablement_key_prefix)
    flag.set_enabled(enabled)
    typer.echo(f"Job {job_id} {'enabled' if enabled else 'disabled'}")


@app.command()
def enable(job_id: str) -> None:
    """Allow a job to keep processing."""

    _set_enabled(job_id, True)


@app.command()
def disable(job_id: str) -> None:
    """Stop a job at its next outer item without saving a checkpoint."""

    _set_enabled(job_id, False)


@app.command()
def worker(
    queue: str = typer.Option("", help="Queue name, defaults to the configured queue"),
    burst: bool = typer.Option(False, help="Exit once the queue is empty"),
) -> None:
    """Run an RQ worker processing scheduled invocations."""

    settings = get_settings()
    configure_logging(settings.log_file, settings.log_level)
    run_rq_worker(settings, queue_name=queue, burst=burst)


if __name__ == "__main__":
    app()
