"""FileArtifactStore — async local persistence for downloaded artifacts with atomic writes."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING

import aiofiles

if TYPE_CHECKING:
    from harvest_e2e.domain.ports import ArtifactStorePort

logger = logging.getLogger(__name__)


class FileArtifactStore:
    """Write artifact bytes to disk and read them back as text.

    Satisfies the ArtifactStorePort protocol.
    """

    if TYPE_CHECKING:
        _protocol_check: ArtifactStorePort

    async def ensure_dir(self, directory: Path) -> None:
        """Create *directory* and any missing parents; no-op if it exists."""
        await asyncio.to_thread(directory.mkdir, parents=True, exist_ok=True)

    async def write_bytes(self, path: Path, content: bytes) -> bool:
        """Write *content* to *path* via temp file + rename.

        An existing file is replaced entirely. Returns True if one was replaced.
        """
        replaced = await asyncio.to_thread(path.exists)
        tmp = path.with_name(path.name + ".tmp")
        try:
            async with aiofiles.open(tmp, "wb") as f:
                await f.write(content)
            await asyncio.to_thread(tmp.replace, path)
        except Exception:
            if tmp.exists():
                tmp.unlink()
            raise
        logger.debug("Wrote %d bytes to %s", len(content), path)
        return replaced

    async def read_text(self, path: Path) -> str:
        """Read *path* as UTF-8, replacing undecodable bytes."""
        async with aiofiles.open(path, encoding="utf-8", errors="replace") as f:
            return await f.read()
