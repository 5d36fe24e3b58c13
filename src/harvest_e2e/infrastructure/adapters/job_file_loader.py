"""Job file loader — read a YAML job definition into a JobRequest.

Example::

    startRoll: "2301230095"
    endRoll: "2301230099"
    semid: "4"
    session: Even-(2024-25)
    marker: "2301230095"
    config:
      concurrency: 2
      perReqAttempts: 3
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from harvest_e2e.domain.errors import ConfigurationError
from harvest_e2e.domain.models import JobRequest, RunConfig

logger = logging.getLogger(__name__)

_KNOWN_KEYS = frozenset({"startRoll", "endRoll", "semid", "session", "marker", "config"})


@dataclass(frozen=True)
class JobDefinition:
    """A job request plus the marker expected in its artifact."""

    request: JobRequest
    marker: str


def _as_str(data: dict[str, Any], key: str, default: str) -> str:
    value = data.get(key, default)
    if value is None:
        return default
    # YAML reads unquoted rolls as ints
    if isinstance(value, int | str) and not isinstance(value, bool):
        return str(value)
    raise ConfigurationError(f"{key} must be a string, got {value!r}")


def parse_job_definition(data: Any, defaults: JobRequest) -> JobDefinition:
    """Overlay a parsed YAML mapping on *defaults*."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"job file must contain a mapping, got {type(data).__name__}")

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        logger.warning("Ignoring unknown job file keys: %s", ", ".join(unknown))

    start_roll = _as_str(data, "startRoll", defaults.start_roll)
    # A job file that names only a start roll means a single-roll job
    end_default = start_roll if "startRoll" in data else defaults.end_roll
    config_data = data.get("config") or {}
    if not isinstance(config_data, dict):
        raise ConfigurationError(f"config must be a mapping, got {type(config_data).__name__}")

    try:
        config = RunConfig.from_payload({**defaults.config.to_payload(), **config_data})
        request = JobRequest(
            start_roll=start_roll,
            end_roll=_as_str(data, "endRoll", end_default),
            semid=_as_str(data, "semid", defaults.semid),
            session=_as_str(data, "session", defaults.session),
            config=config,
        )
    except ValueError as exc:
        raise ConfigurationError(f"Invalid job definition: {exc}") from exc

    return JobDefinition(request=request, marker=_as_str(data, "marker", request.marker))


def load_job_file(path: Path, defaults: JobRequest) -> JobDefinition:
    """Read and parse a YAML job file."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read job file {path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in job file {path}: {exc}") from exc
    definition = parse_job_definition(data, defaults)
    logger.info(
        "Loaded job file %s: rolls %s..%s",
        path,
        definition.request.start_roll,
        definition.request.end_roll,
    )
    return definition
