"""StatusPoller — poll ``GET /status/{jobId}`` until a terminal state or timeout."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from urllib.parse import quote

from harvest_e2e.domain.enums import PollOutcome
from harvest_e2e.domain.errors import JobExecutionError, PollTimeoutError, PollTransportError, TransportError
from harvest_e2e.domain.models import JobStatus, PollerConfig
from harvest_e2e.domain.ports import TransportPort
from harvest_e2e.domain.transitions import next_outcome
from harvest_e2e.domain.types import JobId

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]


def status_path(job_id: JobId) -> str:
    return f"/status/{quote(job_id, safe='')}"


class StatusPoller:
    """Drive the poll state machine for one job.

    Each iteration fetches a status snapshot, logs it, returns on ``finished``,
    raises on ``error``, checks the time budget, and only then waits a fixed
    interval before the next poll. Transport failures are never retried.
    """

    def __init__(
        self,
        transport: TransportPort,
        config: PollerConfig | None = None,
        *,
        sleep: Sleeper = asyncio.sleep,
        clock: Clock = time.monotonic,
    ) -> None:
        self._transport = transport
        self._config = config or PollerConfig()
        self._sleep = sleep
        self._clock = clock

    async def fetch_status(self, job_id: JobId) -> JobStatus:
        """Fetch and parse one status snapshot."""
        path = status_path(job_id)
        try:
            resp = await self._transport.request("GET", path)
        except TransportError as exc:
            raise PollTransportError(None, reason=exc.message) from exc

        if not resp.ok:
            raise PollTransportError(resp.status, resp.text)

        try:
            data = resp.json()
        except ValueError as exc:
            raise PollTransportError(resp.status, resp.text, reason="status response is not valid JSON") from exc
        if not isinstance(data, dict):
            raise PollTransportError(resp.status, resp.text, reason="status response is not a JSON object")
        return JobStatus.from_payload(data)

    async def wait_for_terminal(self, job_id: JobId, timeout_s: float | None = None) -> JobStatus:
        """Poll until the job finishes.

        Raises:
            PollTransportError: A status request failed.
            JobExecutionError: The service reported ``error``.
            PollTimeoutError: No terminal state within the budget.
        """
        budget = self._config.timeout_s if timeout_s is None else timeout_s
        interval = self._config.poll_interval_s
        start = self._clock()
        previous: JobStatus | None = None
        polls = 0

        while True:
            status = await self.fetch_status(job_id)
            polls += 1
            self._log_progress(status, previous)
            previous = status

            outcome = next_outcome(status.state)
            if outcome is PollOutcome.FINISHED:
                logger.info("Job %s finished after %d poll(s)", job_id, polls)
                return status
            if outcome is PollOutcome.FAILED:
                raise JobExecutionError(status)

            elapsed = self._clock() - start
            if elapsed > budget:
                logger.warning("Job %s still %s after %.1fs -- giving up", job_id, status.raw_state, elapsed)
                raise PollTimeoutError(budget, status)

            await self._sleep(interval)

    def _log_progress(self, status: JobStatus, previous: JobStatus | None) -> None:
        level = logging.INFO
        if previous is not None:
            if previous.raw_state != status.raw_state:
                logger.info("Job state changed: %s -> %s", previous.raw_state, status.raw_state)
            elif previous.payload == status.payload:
                level = logging.DEBUG
        logger.log(
            level,
            "[status] state=%s, done=%d/%d, percent=%s, cycle=%d",
            status.raw_state,
            status.done,
            status.total,
            f"{status.percent:g}",
            status.cycle,
        )
