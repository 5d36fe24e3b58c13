"""Harness settings — Pydantic BaseSettings for configuration from env and .env."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

from harvest_e2e.domain.errors import ConfigurationError
from harvest_e2e.domain.models import HarnessConfig, JobRequest, PollerConfig, RunConfig


class HarnessSettings(BaseSettings):
    """Harness configuration loaded from ``HARVEST_E2E_*`` environment variables and .env.

    CLI flags and YAML job files override these per run.
    """

    # Service
    api_base: str = Field(default="http://localhost:4000", description="Base URL of the harvester service")
    http_timeout_seconds: float = Field(default=30.0, gt=0, description="Per-request HTTP timeout")

    # Job
    roll: str = Field(default="2301230095", description="Roll to fetch; start and end of the range")
    end_roll: str = Field(default="", description="End of the roll range. Empty = same as roll")
    semid: str = Field(default="4", description="Semester identifier")
    session: str = Field(default="Even-(2024-25)", description="Academic session label")
    marker: str = Field(default="", description="String the CSV must contain. Empty = start roll")

    # Service-side run config (milliseconds, forwarded as-is)
    concurrency: int = Field(default=1, ge=1)
    per_req_attempts: int = Field(default=3, ge=1)
    per_req_timeout_ms: int = Field(default=15000, ge=0)
    inter_request_delay_ms: int = Field(default=300, ge=0)
    cycle_backoff_base_ms: int = Field(default=2000, ge=0)
    max_cycle_backoff_ms: int = Field(default=60000, ge=0)
    max_cycles: int = Field(default=0, ge=0, description="0 = let the service decide")

    # Polling
    poll_interval_seconds: float = Field(default=2.0, gt=0, description="Fixed wait between status polls")
    timeout_seconds: float = Field(default=120.0, gt=0, description="Budget for reaching a terminal state")

    # Output
    out_dir: Path = Field(default=Path("test-output"), description="Directory for downloaded artifacts")

    model_config = {"env_prefix": "HARVEST_E2E_", "env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def run_config(self) -> RunConfig:
        try:
            return RunConfig(
                concurrency=self.concurrency,
                per_req_attempts=self.per_req_attempts,
                per_req_timeout_ms=self.per_req_timeout_ms,
                inter_request_delay_ms=self.inter_request_delay_ms,
                cycle_backoff_base_ms=self.cycle_backoff_base_ms,
                max_cycle_backoff_ms=self.max_cycle_backoff_ms,
                max_cycles=self.max_cycles,
            )
        except ValueError as exc:
            raise ConfigurationError(f"Invalid run config: {exc}") from exc

    def build_request(self) -> JobRequest:
        """Build the JobRequest described by these settings."""
        try:
            return JobRequest(
                start_roll=self.roll,
                end_roll=self.end_roll or self.roll,
                semid=self.semid,
                session=self.session,
                config=self.run_config(),
            )
        except ValueError as exc:
            raise ConfigurationError(f"Invalid job request: {exc}") from exc

    def harness_config(self) -> HarnessConfig:
        return HarnessConfig(
            out_dir=self.out_dir,
            poller=PollerConfig(poll_interval_s=self.poll_interval_seconds, timeout_s=self.timeout_seconds),
        )
