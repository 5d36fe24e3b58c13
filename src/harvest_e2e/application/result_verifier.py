"""ResultVerifier — check that a saved artifact mentions the expected roll."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from harvest_e2e.domain.errors import ContentMismatchError, EmptyArtifactError, UnreadableArtifactError
from harvest_e2e.domain.models import VerificationResult
from harvest_e2e.domain.ports import ArtifactStorePort

logger = logging.getLogger(__name__)

EXCERPT_LINES = 8

_LINE_SPLIT = re.compile(r"\r?\n")


def non_empty_lines(content: str) -> list[str]:
    return [line for line in _LINE_SPLIT.split(content) if line]


class ResultVerifier:
    """Verify artifact content by raw substring containment.

    The marker may match inside any field, not just the roll column. Parse the
    CSV here if a stricter check is ever needed.
    """

    def __init__(self, store: ArtifactStorePort, excerpt_lines: int = EXCERPT_LINES) -> None:
        self._store = store
        self._excerpt_lines = excerpt_lines

    async def verify(self, path: Path, marker: str) -> VerificationResult:
        """Return a passing or failing result; never raises for content problems.

        Raises:
            UnreadableArtifactError: The artifact cannot be read.
        """
        if not marker:
            raise ValueError("marker must not be empty")

        try:
            content = await self._store.read_text(path)
        except OSError as exc:
            raise UnreadableArtifactError(str(path), str(exc)) from exc
        lines = non_empty_lines(content)

        if not lines:
            logger.error("Artifact %s is empty", path)
            return VerificationResult(
                passed=False,
                artifact_path=path,
                marker=marker,
                error=EmptyArtifactError(str(path)),
            )

        if marker not in content:
            excerpt = tuple(lines[: self._excerpt_lines])
            logger.error("Artifact %s does not contain %s; sample:\n%s", path, marker, "\n".join(excerpt))
            return VerificationResult(
                passed=False,
                artifact_path=path,
                marker=marker,
                line_count=len(lines),
                excerpt=excerpt,
                error=ContentMismatchError(marker, excerpt),
            )

        logger.info("CSV verification passed -- %s contains roll %s (%d lines)", path.name, marker, len(lines))
        return VerificationResult(passed=True, artifact_path=path, marker=marker, line_count=len(lines))
