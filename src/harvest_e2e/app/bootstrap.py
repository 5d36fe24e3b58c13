"""Bootstrap — composition root wiring adapters to the harness components."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from harvest_e2e.app.settings import HarnessSettings
from harvest_e2e.application.artifact_fetcher import ArtifactFetcher
from harvest_e2e.application.harness_runner import HarnessRunner
from harvest_e2e.application.job_submitter import JobSubmitter
from harvest_e2e.application.result_verifier import ResultVerifier
from harvest_e2e.application.status_poller import StatusPoller
from harvest_e2e.domain.ports import ArtifactStorePort, TransportPort
from harvest_e2e.infrastructure.adapters.file_artifact_store import FileArtifactStore
from harvest_e2e.infrastructure.adapters.httpx_transport import HttpxTransport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Harness:
    """Container for one run's wired components."""

    transport: TransportPort
    store: ArtifactStorePort
    runner: HarnessRunner


def build_harness(
    settings: HarnessSettings,
    transport: TransportPort,
    store: ArtifactStorePort | None = None,
) -> Harness:
    """Wire the four stages around an existing transport."""
    config = settings.harness_config()
    store = store or FileArtifactStore()
    runner = HarnessRunner(
        submitter=JobSubmitter(transport),
        poller=StatusPoller(transport, config.poller),
        fetcher=ArtifactFetcher(transport, store, config.artifact_type),
        verifier=ResultVerifier(store),
        config=config,
    )
    return Harness(transport=transport, store=store, runner=runner)


@asynccontextmanager
async def create_harness(settings: HarnessSettings | None = None) -> AsyncIterator[Harness]:
    """Open an HTTP transport for the configured service and yield a wired harness."""
    settings = settings or HarnessSettings()
    logger.info("Harness targeting %s", settings.api_base)
    async with HttpxTransport(settings.api_base, settings.http_timeout_seconds) as transport:
        yield build_harness(settings, transport)
