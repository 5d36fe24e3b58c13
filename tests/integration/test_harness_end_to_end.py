"""End-to-end harness runs against an in-process fake of the harvester HTTP service."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import httpx

from harvest_e2e.app.bootstrap import build_harness
from harvest_e2e.app.settings import HarnessSettings
from harvest_e2e.domain.enums import HarnessStage, JobState
from harvest_e2e.domain.errors import ArtifactSaveError, ContentMismatchError, JobExecutionError, PollTimeoutError
from harvest_e2e.domain.models import HarnessVerdict, JobRequest
from harvest_e2e.infrastructure.adapters.httpx_transport import HttpxTransport

BASE = "http://harvester.test"
ROLL = "2301230095"


class FakeHarvester:
    """Minimal stand-in for the service: one job, scripted status sequence, fixed CSV."""

    def __init__(self, statuses: list[dict[str, object]], csv: bytes) -> None:
        self._statuses = list(statuses)
        self._csv = csv
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path == "/start":
            return httpx.Response(200, json={"jobId": "job-e2e"})
        if request.method == "GET" and path == "/status/job-e2e":
            status = self._statuses.pop(0) if len(self._statuses) > 1 else self._statuses[0]
            return httpx.Response(200, json=status)
        if request.method == "GET" and path == "/download/job-e2e" and request.url.params.get("type") == "csv":
            return httpx.Response(200, content=self._csv, headers={"Content-Type": "text/csv"})
        return httpx.Response(404, text=f"unexpected {request.method} {path}")

    def hits(self, prefix: str) -> int:
        return sum(1 for r in self.requests if r.url.path.startswith(prefix))


def _settings(tmp_path: Path, timeout: float = 5.0) -> HarnessSettings:
    return HarnessSettings(
        api_base=BASE,
        poll_interval_seconds=0.01,
        timeout_seconds=timeout,
        out_dir=tmp_path / "test-output",
    )


async def _run(
    tmp_path: Path,
    service: Callable[[httpx.Request], httpx.Response],
    request: JobRequest,
    timeout: float = 5.0,
) -> HarnessVerdict:
    client = httpx.AsyncClient(base_url=BASE, transport=httpx.MockTransport(service))
    async with HttpxTransport(BASE, client=client) as transport:
        harness = build_harness(_settings(tmp_path, timeout), transport)
        verdict = await harness.runner.run(request)
    await client.aclose()
    return verdict


class TestScenarioSuccess:
    async def test_queued_running_finished_then_valid_csv(self, tmp_path: Path, sample_job_request: JobRequest) -> None:
        service = FakeHarvester(
            statuses=[
                {"state": "queued"},
                {"state": "running", "done": 0, "total": 1},
                {"state": "finished", "done": 1, "total": 1, "percent": 100},
            ],
            csv=f"roll,name,sgpa\n{ROLL},A STUDENT,8.1\n".encode(),
        )
        verdict = await _run(tmp_path, service, sample_job_request)

        assert verdict.passed is True
        assert verdict.job_id == "job-e2e"
        assert verdict.final_status is not None
        assert verdict.final_status.state is JobState.FINISHED
        assert verdict.artifact_path == tmp_path / "test-output" / "job-e2e.csv"
        assert verdict.artifact_path.read_bytes().startswith(b"roll,name,sgpa")
        assert service.hits("/status/") == 3

        start = service.requests[0]
        body = json.loads(start.content)
        assert body["startRoll"] == body["endRoll"] == ROLL
        assert body["config"]["perReqTimeout"] == 15000


class TestScenarioJobError:
    async def test_error_state_fails_without_download(self, tmp_path: Path, sample_job_request: JobRequest) -> None:
        service = FakeHarvester(statuses=[{"state": "error", "message": "portal unreachable"}], csv=b"")
        verdict = await _run(tmp_path, service, sample_job_request)

        assert verdict.passed is False
        assert verdict.failed_stage is HarnessStage.POLL
        assert isinstance(verdict.error, JobExecutionError)
        assert service.hits("/download/") == 0
        assert not (tmp_path / "test-output" / "job-e2e.csv").exists()


class TestScenarioTimeout:
    async def test_never_terminal_times_out_without_download(
        self, tmp_path: Path, sample_job_request: JobRequest
    ) -> None:
        service = FakeHarvester(statuses=[{"state": "running", "done": 0, "total": 1}], csv=b"")
        verdict = await _run(tmp_path, service, sample_job_request, timeout=0.05)

        assert verdict.passed is False
        assert verdict.failed_stage is HarnessStage.POLL
        assert isinstance(verdict.error, PollTimeoutError)
        assert service.hits("/status/") >= 2
        assert service.hits("/download/") == 0


class TestScenarioUnwritableOutput:
    async def test_out_dir_blocked_by_file_fails_at_download(
        self, tmp_path: Path, sample_job_request: JobRequest
    ) -> None:
        (tmp_path / "test-output").write_text("not a directory")
        service = FakeHarvester(
            statuses=[{"state": "finished", "done": 1, "total": 1, "percent": 100}],
            csv=f"roll\n{ROLL}\n".encode(),
        )
        verdict = await _run(tmp_path, service, sample_job_request)

        assert verdict.passed is False
        assert verdict.failed_stage is HarnessStage.DOWNLOAD
        assert isinstance(verdict.error, ArtifactSaveError)
        assert verdict.final_status is not None
        assert verdict.final_status.state is JobState.FINISHED


class TestScenarioContentMismatch:
    async def test_csv_without_roll_fails_with_excerpt(self, tmp_path: Path, sample_job_request: JobRequest) -> None:
        rows = ["roll,name,sgpa"] + [f"23012300{i:02d},OTHER {i},7.0" for i in range(12)]
        service = FakeHarvester(
            statuses=[{"state": "finished", "done": 1, "total": 1, "percent": 100}],
            csv="\r\n".join(rows).encode(),
        )
        verdict = await _run(tmp_path, service, sample_job_request)

        assert verdict.passed is False
        assert verdict.failed_stage is HarnessStage.VERIFY
        assert isinstance(verdict.error, ContentMismatchError)
        assert verdict.excerpt == tuple(rows[:8])
        assert verdict.artifact_path is not None
        assert verdict.artifact_path.exists()
