"""HttpxTransport — TransportPort implementation over ``httpx.AsyncClient``."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Mapping
from types import TracebackType
from typing import TYPE_CHECKING, Any

import httpx

from harvest_e2e.domain.errors import TransportError
from harvest_e2e.domain.ports import TransportResponse

if TYPE_CHECKING:
    from harvest_e2e.domain.ports import TransportPort

logger = logging.getLogger(__name__)


class HttpxTransport:
    """Issue requests against the job service base URL.

    Use as an async context manager so the underlying client is closed::

        async with HttpxTransport("http://localhost:4000") as transport:
            resp = await transport.request("GET", "/status/abc")

    Satisfies the TransportPort protocol. Non-2xx responses are returned, not
    raised; only failures to get a response at all raise ``TransportError``.
    """

    if TYPE_CHECKING:
        _protocol_check: TransportPort

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 30.0,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url must not be empty")
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self._base_url, timeout=httpx.Timeout(timeout_s))

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Mapping[str, Any] | None = None,
        params: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        """Send one request and return status, headers, and body."""
        logger.debug("%s %s%s params=%s", method, self._base_url, path, dict(params or {}))
        try:
            resp = await self._client.request(
                method,
                path,
                json=dict(json_body) if json_body is not None else None,
                params=dict(params) if params is not None else None,
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc.__class__.__name__}: {exc}") from exc
        return TransportResponse(status=resp.status_code, body=resp.content, headers=dict(resp.headers))


class FakeJobServiceTransport:
    """In-memory fake for testing — satisfies TransportPort structurally.

    Responses are scripted per route key (``"POST /start"``, ``"GET /status"``,
    ``"GET /download"``). Each call pops the next scripted response; the last one
    repeats once the script runs out. An ``Exception`` in the script is raised.
    """

    def __init__(self, routes: Mapping[str, Iterable[TransportResponse | Exception]] | None = None) -> None:
        self._routes: dict[str, deque[TransportResponse | Exception]] = {
            key: deque(responses) for key, responses in (routes or {}).items()
        }
        self.calls: list[tuple[str, str, dict[str, Any] | None, dict[str, str] | None]] = []

    def script(self, route: str, *responses: TransportResponse | Exception) -> None:
        """Append responses for *route*."""
        self._routes.setdefault(route, deque()).extend(responses)

    def calls_to(self, route: str) -> list[tuple[str, str, dict[str, Any] | None, dict[str, str] | None]]:
        return [c for c in self.calls if self._route_key(c[0], c[1]) == route]

    @staticmethod
    def _route_key(method: str, path: str) -> str:
        segment = path.strip("/").split("/", 1)[0]
        return f"{method.upper()} /{segment}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Mapping[str, Any] | None = None,
        params: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        self.calls.append(
            (
                method.upper(),
                path,
                dict(json_body) if json_body is not None else None,
                dict(params) if params is not None else None,
            )
        )
        key = self._route_key(method, path)
        queue = self._routes.get(key)
        if not queue:
            return TransportResponse(status=404, body=f"no fake route for {key}".encode())
        item = queue.popleft() if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item
