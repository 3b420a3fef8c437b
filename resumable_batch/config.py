"""Configuration management for the resumable batch processor."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings using environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Core service
    environment: str = Field("development", description="Deployment environment name")
    log_level: str = Field("INFO", description="Python logging level")
    log_file: Optional[Path] = Field(None, description="Optional rotating log file")
    data_dir: Path = Field(Path("./data"), description="Directory for file based checkpoints")

    # Checkpoint persistence
    parameter_backend: Literal["file", "sql", "redis"] = Field(
        "file", description="Where checkpoint snapshots are stored between invocations"
    )
    database_url: str = Field("sqlite:///./data/parameters.db", description="SQLAlchemy DSN for the sql backend")
    state_param_name: str = Field("resumable_batch_state", description="Parameter name holding the checkpoint")

    # Redis / queue
    redis_url: str = Field("redis://localhost:6379/0", description="Redis connection URI")
    queue_name: str = Field("resumable_batch", description="RQ queue for rescheduled invocations")
    enablement_key_prefix: str = Field("resumable_batch:jobs", description="Redis key prefix for enable flags")
    use_enablement_flags: bool = Field(True, description="Check Redis enable flags between outer items")

    # Record service
    records_base_url: str = Field("http://localhost:8080", description="Base URL of the record service")
    records_timeout_seconds: float = Field(20.0, gt=0, description="HTTP request timeout")
    records_max_retries: int = Field(3, ge=1, description="Attempts per record request")
    processor: str = Field(
        "resumable_batch.clients.records:LoadSubItemProcessor",
        description="Dotted path of the sub-item processor factory",
    )

    # Loop and budget
    page_size: int = Field(1000, ge=1, description="Outer items fetched per page")
    suspend_threshold: float = Field(900.0, ge=0, description="Suspend when remaining budget drops below this")
    invocation_budget: float = Field(10000.0, gt=0, description="Usage units available to one invocation")
    request_cost: float = Field(10.0, ge=0, description="Usage units charged per record request")

    # Security
    admin_api_keys: Annotated[List[str], NoDecode] = Field(default_factory=list, description="Admin level API keys")
    operator_api_keys: Annotated[List[str], NoDecode] = Field(
        default_factory=list, description="Operator level API keys"
    )

    # Monitoring
    enable_metrics: bool = Field(True, description="Whether to expose Prometheus metrics")

    @field_validator("admin_api_keys", "operator_api_keys", mode="before")
    @classmethod
    def _split_api_keys(cls, value: Optional[str]):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value or []

    def persistence_key(self, job_id: str) -> str:
        return f"{self.state_param_name}:{job_id}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""

    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return settings


__all__ = ["Settings", "get_settings"]
