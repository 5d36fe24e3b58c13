"""Domain ports — Protocol interfaces for hexagonal architecture boundaries."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class TransportResponse:
    """Status, headers, and raw body of one HTTP exchange."""

    status: int
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.headers, MappingProxyType):
            # Header names are case-insensitive on the wire
            object.__setattr__(self, "headers", MappingProxyType({k.lower(): v for k, v in self.headers.items()}))

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    def json(self) -> Any:
        """Decode the body as JSON. Raises ``ValueError`` on malformed content."""
        return json.loads(self.body)


@runtime_checkable
class TransportPort(Protocol):
    """Issue HTTP requests against the job service."""

    async def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Mapping[str, Any] | None = None,
        params: Mapping[str, str] | None = None,
    ) -> TransportResponse: ...


@runtime_checkable
class ArtifactStorePort(Protocol):
    """Persist downloaded artifacts and read them back."""

    async def ensure_dir(self, directory: Path) -> None: ...

    async def write_bytes(self, path: Path, content: bytes) -> bool: ...

    async def read_text(self, path: Path) -> str: ...
