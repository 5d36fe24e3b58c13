"""JobSubmitter — send a JobRequest to ``POST /start`` and extract the job id."""

from __future__ import annotations

import logging

from harvest_e2e.domain.errors import SubmissionError, TransportError
from harvest_e2e.domain.models import JobRequest
from harvest_e2e.domain.ports import TransportPort
from harvest_e2e.domain.types import JobId

logger = logging.getLogger(__name__)

START_PATH = "/start"


class JobSubmitter:
    """Submit one job. Resubmitting creates a new job on the service."""

    def __init__(self, transport: TransportPort) -> None:
        self._transport = transport

    async def submit(self, request: JobRequest) -> JobId:
        """Start the job and return its id.

        Raises:
            SubmissionError: Non-2xx status, no response, or no usable ``jobId``.
        """
        logger.info(
            "Starting job for rolls %s..%s (%d roll(s), semid=%s, session=%s)",
            request.start_roll,
            request.end_roll,
            request.roll_count,
            request.semid,
            request.session,
        )
        try:
            resp = await self._transport.request("POST", START_PATH, json_body=request.to_payload())
        except TransportError as exc:
            raise SubmissionError(None, reason=exc.message) from exc

        if not resp.ok:
            raise SubmissionError(resp.status, resp.text)

        try:
            data = resp.json()
        except ValueError as exc:
            raise SubmissionError(resp.status, resp.text, reason="response is not valid JSON") from exc

        job_id = data.get("jobId") if isinstance(data, dict) else None
        if not isinstance(job_id, str) or not job_id.strip():
            raise SubmissionError(resp.status, resp.text, reason=f"response has no jobId: {resp.text[:200]}")

        logger.info("Job started: %s", job_id)
        return JobId(job_id)
