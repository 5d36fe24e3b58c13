"""HarnessRunner — drive one job through submit, poll, download, and verify."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING

from harvest_e2e.domain.enums import HarnessStage
from harvest_e2e.domain.errors import StageError
from harvest_e2e.domain.models import HarnessConfig, HarnessVerdict, JobRequest, JobStatus, VerificationResult
from harvest_e2e.domain.types import JobId

if TYPE_CHECKING:
    from harvest_e2e.application.artifact_fetcher import ArtifactFetcher
    from harvest_e2e.application.job_submitter import JobSubmitter
    from harvest_e2e.application.result_verifier import ResultVerifier
    from harvest_e2e.application.status_poller import StatusPoller

logger = logging.getLogger(__name__)


class HarnessRunner:
    """Sequence the four stages and collapse them into one verdict.

    The first stage failure aborts the run; later stages never start. Errors
    that are not ``StageError`` are bugs and propagate unchanged.
    """

    def __init__(
        self,
        submitter: JobSubmitter,
        poller: StatusPoller,
        fetcher: ArtifactFetcher,
        verifier: ResultVerifier,
        config: HarnessConfig | None = None,
    ) -> None:
        self._submitter = submitter
        self._poller = poller
        self._fetcher = fetcher
        self._verifier = verifier
        self._config = config or HarnessConfig()

    async def run(self, request: JobRequest, marker: str | None = None, out_dir: Path | None = None) -> HarnessVerdict:
        """Run one full job lifecycle and return the verdict."""
        expected = marker or request.marker
        target_dir = out_dir or self._config.out_dir
        started = time.monotonic()

        job_id: JobId | None = None
        status: JobStatus | None = None
        saved: Path | None = None
        verification: VerificationResult | None = None
        stage = HarnessStage.SUBMIT

        try:
            logger.info("Stage %s", stage.value)
            job_id = await self._submitter.submit(request)

            stage = HarnessStage.POLL
            logger.info("Stage %s: job %s (timeout %gs)", stage.value, job_id, self._config.poller.timeout_s)
            status = await self._poller.wait_for_terminal(job_id, self._config.poller.timeout_s)

            stage = HarnessStage.DOWNLOAD
            logger.info("Stage %s: job %s -> %s", stage.value, job_id, target_dir)
            saved = await self._fetcher.fetch(job_id, target_dir)

            stage = HarnessStage.VERIFY
            logger.info("Stage %s: %s must contain %s", stage.value, saved, expected)
            verification = await self._verifier.verify(saved, expected)
            if verification.error is not None:
                raise verification.error
        except StageError as exc:
            failed_stage = exc.stage if exc.stage is not None else stage
            logger.error("Harness failed at %s: %s", failed_stage.value, exc.message)
            return HarnessVerdict(
                passed=False,
                job_id=job_id,
                final_status=status,
                artifact_path=saved,
                verification=verification,
                failed_stage=failed_stage,
                error=exc,
                duration_seconds=time.monotonic() - started,
            )

        verdict = HarnessVerdict(
            passed=True,
            job_id=job_id,
            final_status=status,
            artifact_path=saved,
            verification=verification,
            duration_seconds=time.monotonic() - started,
        )
        logger.info("Harness passed in %.1fs: %s", verdict.duration_seconds, verdict.summary())
        return verdict
