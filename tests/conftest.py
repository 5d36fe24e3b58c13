"""Shared test fixtures for the harness test suite."""

from __future__ import annotations

import pytest

from harvest_e2e.domain.models import JobRequest, RunConfig
from harvest_e2e.infrastructure.adapters.httpx_transport import FakeJobServiceTransport


class FakeClock:
    """Monotonic clock that only moves when the poller sleeps."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def sample_job_request() -> JobRequest:
    """Single-roll request matching the service's documented defaults."""
    return JobRequest(
        start_roll="2301230095",
        end_roll="2301230095",
        semid="4",
        session="Even-(2024-25)",
        config=RunConfig(),
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_transport() -> FakeJobServiceTransport:
    return FakeJobServiceTransport()
