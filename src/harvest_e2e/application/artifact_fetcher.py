"""ArtifactFetcher — download a finished job's artifact and save it locally."""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import quote

from harvest_e2e.domain.enums import ArtifactType
from harvest_e2e.domain.errors import ArtifactSaveError, DownloadError, TransportError
from harvest_e2e.domain.models import Artifact
from harvest_e2e.domain.ports import ArtifactStorePort, TransportPort
from harvest_e2e.domain.types import JobId

logger = logging.getLogger(__name__)


def download_path(job_id: JobId) -> str:
    return f"/download/{quote(job_id, safe='')}"


def artifact_path(out_dir: Path, job_id: JobId, artifact_type: ArtifactType = ArtifactType.CSV) -> Path:
    """Deterministic local path for a job's artifact: ``<out_dir>/<job_id>.<ext>``."""
    return out_dir / f"{job_id}{artifact_type.extension}"


class ArtifactFetcher:
    """Fetch ``GET /download/{jobId}?type=...`` and persist the body as-is."""

    def __init__(
        self,
        transport: TransportPort,
        store: ArtifactStorePort,
        artifact_type: ArtifactType = ArtifactType.CSV,
    ) -> None:
        self._transport = transport
        self._store = store
        self._artifact_type = artifact_type

    async def download(self, job_id: JobId) -> Artifact:
        """Download the artifact into memory.

        Raises:
            DownloadError: Non-2xx status or no response.
        """
        path = download_path(job_id)
        params = {"type": self._artifact_type.value}
        logger.info("Downloading %s from %s?type=%s", self._artifact_type.value.upper(), path, params["type"])
        try:
            resp = await self._transport.request("GET", path, params=params)
        except TransportError as exc:
            raise DownloadError(None, reason=exc.message) from exc

        if not resp.ok:
            raise DownloadError(resp.status, resp.text)

        return Artifact(
            job_id=job_id,
            content=resp.body,
            content_type=resp.content_type,
            artifact_type=self._artifact_type,
        )

    async def fetch(self, job_id: JobId, out_dir: Path) -> Path:
        """Download the artifact and write it to ``<out_dir>/<job_id>.<ext>``.

        Any file already at that path is overwritten. Filesystem failures are
        reported as ``ArtifactSaveError``.
        """
        try:
            await self._store.ensure_dir(out_dir)
        except OSError as exc:
            raise ArtifactSaveError(str(out_dir), str(exc)) from exc
        artifact = await self.download(job_id)

        target = artifact_path(out_dir, job_id, self._artifact_type)
        try:
            replaced = await self._store.write_bytes(target, artifact.content)
        except OSError as exc:
            raise ArtifactSaveError(str(target), str(exc)) from exc
        if replaced:
            logger.warning("Overwrote existing artifact at %s", target)
        logger.info(
            "Saved %s to %s (%d bytes, content-type=%s)",
            self._artifact_type.value.upper(),
            target,
            len(artifact.content),
            artifact.content_type or "unknown",
        )
        return target
