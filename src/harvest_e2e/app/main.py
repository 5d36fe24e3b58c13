"""Main entry point — ``python -m harvest_e2e.app.main`` / ``harvest-e2e``.

Usage::

    harvest-e2e                                   # defaults from HARVEST_E2E_* env / .env
    harvest-e2e --roll 2301230095 --timeout 300
    harvest-e2e --job-file jobs/even-2024.yaml --out-dir /tmp/harvest
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from harvest_e2e.app.bootstrap import create_harness
from harvest_e2e.app.settings import HarnessSettings
from harvest_e2e.domain.errors import ConfigurationError
from harvest_e2e.domain.models import HarnessVerdict
from harvest_e2e.infrastructure.adapters.job_file_loader import JobDefinition, load_job_file

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2

# CLI flag dest -> HarnessSettings field
_SETTINGS_OVERRIDES: dict[str, str] = {
    "roll": "roll",
    "end_roll": "end_roll",
    "semid": "semid",
    "session": "session",
    "marker": "marker",
    "api_base": "api_base",
    "out_dir": "out_dir",
    "timeout": "timeout_seconds",
    "poll_interval": "poll_interval_seconds",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="harvest-e2e",
        description="Verify the harvester service fetches real results for a roll range.",
    )
    parser.add_argument("--roll", help="Start roll (default: HARVEST_E2E_ROLL)")
    parser.add_argument("--end-roll", help="End roll (default: same as --roll)")
    parser.add_argument("--semid", help="Semester identifier")
    parser.add_argument("--session", help="Academic session label, e.g. Even-(2024-25)")
    parser.add_argument("--marker", help="String the CSV must contain (default: start roll)")
    parser.add_argument("--api-base", help="Service base URL")
    parser.add_argument("--out-dir", type=Path, help="Directory for the downloaded CSV")
    parser.add_argument("--timeout", type=float, help="Seconds to wait for a terminal job state")
    parser.add_argument("--poll-interval", type=float, help="Seconds between status polls")
    parser.add_argument("--job-file", type=Path, help="YAML job definition (overrides roll/semid/session/config)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def load_settings(args: argparse.Namespace) -> HarnessSettings:
    """Merge CLI overrides onto environment-backed settings."""
    overrides: dict[str, Any] = {}
    for dest, field_name in _SETTINGS_OVERRIDES.items():
        value = getattr(args, dest, None)
        if value is not None:
            overrides[field_name] = value
    try:
        return HarnessSettings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc


def resolve_job(args: argparse.Namespace, settings: HarnessSettings) -> JobDefinition:
    """Build the job to run from settings, optionally overlaid by a job file."""
    defaults = settings.build_request()
    if args.job_file is not None:
        definition = load_job_file(args.job_file, defaults)
        if settings.marker:
            return JobDefinition(request=definition.request, marker=settings.marker)
        return definition
    return JobDefinition(request=defaults, marker=settings.marker or defaults.marker)


def report(verdict: HarnessVerdict) -> int:
    """Print the verdict and return the process exit code."""
    if verdict.passed:
        print(f"TEST SUCCESS: server fetched data correctly ({verdict.summary()}).")
        return EXIT_SUCCESS

    print(f"TEST FAILED: {verdict.summary()}", file=sys.stderr)
    if verdict.excerpt:
        print("CSV sample:", file=sys.stderr)
        for line in verdict.excerpt:
            print(f"  {line}", file=sys.stderr)
    return EXIT_FAILURE


async def run(args: argparse.Namespace) -> int:
    """Resolve configuration, run one harness lifecycle, and report it."""
    try:
        settings = load_settings(args)
        job = resolve_job(args, settings)
    except ConfigurationError as exc:
        print(f"CONFIG ERROR: {exc.message}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    async with create_harness(settings) as harness:
        verdict = await harness.runner.run(job.request, marker=job.marker)
    return report(verdict)


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
