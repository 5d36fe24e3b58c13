"""Domain errors — harness exception hierarchy."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from harvest_e2e.domain.enums import HarnessStage

if TYPE_CHECKING:
    from harvest_e2e.domain.models import JobStatus

# Response bodies are echoed into messages; keep them readable on a terminal.
_BODY_EXCERPT_CHARS = 500


def _excerpt(body: str) -> str:
    if len(body) <= _BODY_EXCERPT_CHARS:
        return body
    return body[:_BODY_EXCERPT_CHARS] + "..."


class HarvestE2EError(Exception):
    """Base error for all harness operations.

    Use ``raise HarvestE2EError("msg") from cause`` for exception chaining.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(HarvestE2EError):
    """Invalid settings, job file, or job request."""


class TransportError(HarvestE2EError):
    """HTTP transport failure — connection refused, timeout, protocol error."""


class StageError(HarvestE2EError):
    """A harness stage failed; terminal to the run."""

    stage: HarnessStage | None = None


class HttpStageError(StageError):
    """Stage failure caused by the service's HTTP response (or lack of one).

    ``status`` is ``None`` when no response was received at all.
    """

    action: str = "Request"

    def __init__(self, status: int | None, body: str = "", *, reason: str = "") -> None:
        self.status = status
        self.body = body
        detail = reason or _excerpt(body)
        code = "no response" if status is None else str(status)
        super().__init__(f"{self.action} failed: {code} {detail}".rstrip())


class SubmissionError(HttpStageError):
    """``POST /start`` rejected or returned no usable job id."""

    stage = HarnessStage.SUBMIT
    action = "Start"


class PollTransportError(HttpStageError):
    """``GET /status/{jobId}`` failed at the transport level."""

    stage = HarnessStage.POLL
    action = "Status fetch"


class DownloadError(HttpStageError):
    """``GET /download/{jobId}`` failed."""

    stage = HarnessStage.DOWNLOAD
    action = "Download"


class ArtifactSaveError(StageError):
    """Downloaded artifact could not be written to the output directory."""

    stage = HarnessStage.DOWNLOAD

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"cannot save artifact to {path}: {reason}")
        self.path = path
        self.reason = reason


class JobExecutionError(StageError):
    """The service reported the job in its ``error`` state."""

    stage = HarnessStage.POLL

    def __init__(self, status: JobStatus) -> None:
        self.status = status
        super().__init__(f"Job error: {json.dumps(dict(status.payload), sort_keys=True, default=str)}")


class PollTimeoutError(StageError):
    """No terminal state observed within the polling budget."""

    stage = HarnessStage.POLL

    def __init__(self, timeout_s: float, last_status: JobStatus | None = None) -> None:
        self.timeout_s = timeout_s
        self.last_status = last_status
        last = f" (last state: {last_status.raw_state})" if last_status is not None else ""
        super().__init__(f"Timeout waiting for job to finish after {timeout_s:g}s{last}")


class VerificationError(StageError):
    """Downloaded artifact failed content verification."""

    stage = HarnessStage.VERIFY

    def __init__(self, message: str, excerpt: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.excerpt = excerpt


class EmptyArtifactError(VerificationError):
    """Artifact has no non-empty lines."""

    def __init__(self, path: str) -> None:
        super().__init__(f"CSV appears empty: {path}")
        self.path = path


class ContentMismatchError(VerificationError):
    """Artifact does not contain the expected marker string."""

    def __init__(self, marker: str, excerpt: tuple[str, ...] = ()) -> None:
        super().__init__(f"CSV does not contain roll {marker}", excerpt)
        self.marker = marker


class UnreadableArtifactError(VerificationError):
    """Artifact could not be read back from disk."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"cannot read artifact {path}: {reason}")
        self.path = path
        self.reason = reason
