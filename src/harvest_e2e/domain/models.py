"""Domain models — frozen dataclasses for job requests, status snapshots, and verdicts."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from harvest_e2e.domain.enums import ArtifactType, HarnessStage, JobState
from harvest_e2e.domain.errors import HarvestE2EError, VerificationError
from harvest_e2e.domain.transitions import is_terminal_state
from harvest_e2e.domain.types import JobId


def _freeze_mapping(m: Mapping[str, Any]) -> MappingProxyType[str, Any]:
    """Wrap a mutable mapping in MappingProxyType for immutability."""
    if isinstance(m, MappingProxyType):
        return m
    return MappingProxyType(dict(m))


def _as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return default
    return default


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


@dataclass(frozen=True)
class RunConfig:
    """Service-side tuning forwarded verbatim in the ``config`` object of ``POST /start``.

    Durations are milliseconds, as the service expects them.
    """

    concurrency: int = 1
    per_req_attempts: int = 3
    per_req_timeout_ms: int = 15000
    inter_request_delay_ms: int = 300
    cycle_backoff_base_ms: int = 2000
    max_cycle_backoff_ms: int = 60000
    max_cycles: int = 0

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.per_req_attempts < 1:
            raise ValueError(f"per_req_attempts must be >= 1, got {self.per_req_attempts}")
        for name in (
            "per_req_timeout_ms",
            "inter_request_delay_ms",
            "cycle_backoff_base_ms",
            "max_cycle_backoff_ms",
            "max_cycles",
        ):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")
        if self.max_cycle_backoff_ms < self.cycle_backoff_base_ms:
            raise ValueError(
                f"max_cycle_backoff_ms ({self.max_cycle_backoff_ms}) must be >= "
                f"cycle_backoff_base_ms ({self.cycle_backoff_base_ms})"
            )

    def to_payload(self) -> dict[str, int]:
        """Render with the service's camelCase field names."""
        return {
            "concurrency": self.concurrency,
            "perReqAttempts": self.per_req_attempts,
            "perReqTimeout": self.per_req_timeout_ms,
            "interRequestDelay": self.inter_request_delay_ms,
            "cycleBackoffBase": self.cycle_backoff_base_ms,
            "maxCycleBackoff": self.max_cycle_backoff_ms,
            "maxCycles": self.max_cycles,
        }

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> RunConfig:
        """Build from camelCase keys; missing keys keep their defaults."""
        names = {
            "concurrency": "concurrency",
            "perReqAttempts": "per_req_attempts",
            "perReqTimeout": "per_req_timeout_ms",
            "interRequestDelay": "inter_request_delay_ms",
            "cycleBackoffBase": "cycle_backoff_base_ms",
            "maxCycleBackoff": "max_cycle_backoff_ms",
            "maxCycles": "max_cycles",
        }
        kwargs: dict[str, int] = {}
        for wire, attr in names.items():
            if wire in data:
                value = data[wire]
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ValueError(f"config.{wire} must be an integer, got {value!r}")
                kwargs[attr] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class JobRequest:
    """A unit of work to submit: a roll range plus semester context."""

    start_roll: str
    end_roll: str
    semid: str
    session: str
    config: RunConfig = field(default_factory=RunConfig)

    def __post_init__(self) -> None:
        for name in ("start_roll", "end_roll"):
            value = getattr(self, name)
            if not value or not value.isdigit():
                raise ValueError(f"{name} must be a non-empty digit string, got {value!r}")
        if len(self.start_roll) != len(self.end_roll):
            raise ValueError(
                f"start_roll and end_roll must have the same length, got {self.start_roll!r} and {self.end_roll!r}"
            )
        if int(self.start_roll) > int(self.end_roll):
            raise ValueError(f"start_roll {self.start_roll} is after end_roll {self.end_roll}")
        if not self.semid:
            raise ValueError("semid must not be empty")
        if not self.session:
            raise ValueError("session must not be empty")

    @property
    def roll_count(self) -> int:
        return int(self.end_roll) - int(self.start_roll) + 1

    @property
    def marker(self) -> str:
        """Default string the downloaded artifact must contain."""
        return self.start_roll

    def to_payload(self) -> dict[str, Any]:
        """Render the ``POST /start`` request body."""
        return {
            "startRoll": self.start_roll,
            "endRoll": self.end_roll,
            "semid": self.semid,
            "session": self.session,
            "config": self.config.to_payload(),
        }


@dataclass(frozen=True)
class JobStatus:
    """One snapshot from ``GET /status/{jobId}``; superseded by the next poll."""

    state: JobState
    raw_state: str
    done: int = 0
    total: int = 0
    percent: float = 0.0
    cycle: int = 0
    payload: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.payload, MappingProxyType):
            object.__setattr__(self, "payload", _freeze_mapping(self.payload))

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> JobStatus:
        """Parse the service JSON, tolerating missing or malformed counters."""
        raw = payload.get("state")
        raw_state = raw if isinstance(raw, str) else str(raw)
        done = _as_int(payload.get("done"))
        total = _as_int(payload.get("total"))
        percent = _as_float(payload.get("percent"))
        if percent is None:
            percent = round(done * 100.0 / total, 2) if total > 0 else 0.0
        return cls(
            state=JobState.parse(raw),
            raw_state=raw_state,
            done=done,
            total=total,
            percent=percent,
            cycle=_as_int(payload.get("cycle")),
            payload=payload,
        )

    @property
    def is_terminal(self) -> bool:
        return is_terminal_state(self.state)


@dataclass(frozen=True)
class Artifact:
    """Downloaded job output, owned by the fetcher until written to disk."""

    job_id: JobId
    content: bytes
    content_type: str = ""
    artifact_type: ArtifactType = ArtifactType.CSV

    @property
    def filename(self) -> str:
        return f"{self.job_id}{self.artifact_type.extension}"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of checking an artifact for its expected marker."""

    passed: bool
    artifact_path: Path
    marker: str
    line_count: int = 0
    excerpt: tuple[str, ...] = field(default_factory=tuple)
    error: VerificationError | None = None

    def __post_init__(self) -> None:
        if self.passed and self.error is not None:
            raise ValueError("a passing result cannot carry an error")
        if not self.passed and self.error is None:
            raise ValueError("a failing result must carry an error")


@dataclass(frozen=True)
class PollerConfig:
    """Timing for the status poll loop, in seconds."""

    poll_interval_s: float = 2.0
    timeout_s: float = 120.0

    def __post_init__(self) -> None:
        if self.poll_interval_s <= 0:
            raise ValueError(f"poll_interval_s must be positive, got {self.poll_interval_s}")
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be positive, got {self.timeout_s}")


@dataclass(frozen=True)
class HarnessConfig:
    """Everything a harness run needs besides its collaborators."""

    out_dir: Path = Path("test-output")
    poller: PollerConfig = field(default_factory=PollerConfig)
    artifact_type: ArtifactType = ArtifactType.CSV


@dataclass(frozen=True)
class HarnessVerdict:
    """Single terminal verdict of a harness run."""

    passed: bool
    job_id: JobId | None = None
    final_status: JobStatus | None = None
    artifact_path: Path | None = None
    verification: VerificationResult | None = None
    failed_stage: HarnessStage | None = None
    error: HarvestE2EError | None = None
    duration_seconds: float = 0.0

    def __post_init__(self) -> None:
        if self.duration_seconds < 0:
            raise ValueError("duration_seconds must be non-negative")
        if self.passed and self.error is not None:
            raise ValueError("a passing verdict cannot carry an error")
        if not self.passed and self.error is None:
            raise ValueError("a failing verdict must carry an error")

    @property
    def excerpt(self) -> tuple[str, ...]:
        if isinstance(self.error, VerificationError):
            return self.error.excerpt
        return ()

    def summary(self) -> str:
        if self.passed:
            return f"job {self.job_id} finished and {self.artifact_path} contains the expected content"
        stage = self.failed_stage.value if self.failed_stage is not None else "unknown"
        message = self.error.message if self.error is not None else "unknown error"
        return f"[{stage}] {message}"
