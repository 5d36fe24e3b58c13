"""Tests for the YAML job file loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from harvest_e2e.domain.errors import ConfigurationError
from harvest_e2e.domain.models import JobRequest
from harvest_e2e.infrastructure.adapters.job_file_loader import load_job_file, parse_job_definition


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "job.yaml"
    path.write_text(text)
    return path


class TestLoadJobFile:
    def test_full_definition(self, tmp_path: Path, sample_job_request: JobRequest) -> None:
        path = _write(
            tmp_path,
            """
startRoll: "2301230100"
endRoll: "2301230110"
semid: "5"
session: Odd-(2025-26)
marker: "2301230105"
config:
  concurrency: 4
  maxCycles: 2
""",
        )
        definition = load_job_file(path, sample_job_request)
        assert definition.request.start_roll == "2301230100"
        assert definition.request.end_roll == "2301230110"
        assert definition.request.semid == "5"
        assert definition.request.session == "Odd-(2025-26)"
        assert definition.request.config.concurrency == 4
        assert definition.request.config.max_cycles == 2
        assert definition.request.config.per_req_attempts == 3
        assert definition.marker == "2301230105"

    def test_unquoted_rolls_read_as_strings(self, tmp_path: Path, sample_job_request: JobRequest) -> None:
        path = _write(tmp_path, "startRoll: 2301230100\nsemid: 4\n")
        definition = load_job_file(path, sample_job_request)
        assert definition.request.start_roll == "2301230100"
        assert definition.request.semid == "4"

    def test_start_roll_alone_means_single_roll(self, tmp_path: Path, sample_job_request: JobRequest) -> None:
        definition = load_job_file(_write(tmp_path, "startRoll: '2301230200'\n"), sample_job_request)
        assert definition.request.end_roll == "2301230200"
        assert definition.marker == "2301230200"

    def test_empty_file_uses_defaults(self, tmp_path: Path, sample_job_request: JobRequest) -> None:
        definition = load_job_file(_write(tmp_path, ""), sample_job_request)
        assert definition.request == sample_job_request
        assert definition.marker == sample_job_request.marker

    def test_missing_file(self, tmp_path: Path, sample_job_request: JobRequest) -> None:
        with pytest.raises(ConfigurationError, match="Cannot read job file"):
            load_job_file(tmp_path / "absent.yaml", sample_job_request)

    def test_invalid_yaml(self, tmp_path: Path, sample_job_request: JobRequest) -> None:
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_job_file(_write(tmp_path, "startRoll: [unclosed\n"), sample_job_request)


class TestParseJobDefinition:
    def test_non_mapping_rejected(self, sample_job_request: JobRequest) -> None:
        with pytest.raises(ConfigurationError, match="mapping"):
            parse_job_definition(["a"], sample_job_request)

    def test_invalid_range_rejected(self, sample_job_request: JobRequest) -> None:
        with pytest.raises(ConfigurationError, match="Invalid job definition") as exc_info:
            parse_job_definition({"startRoll": "2301230099", "endRoll": "2301230001"}, sample_job_request)
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_invalid_config_rejected(self, sample_job_request: JobRequest) -> None:
        with pytest.raises(ConfigurationError, match="concurrency"):
            parse_job_definition({"config": {"concurrency": 0}}, sample_job_request)

    def test_config_must_be_mapping(self, sample_job_request: JobRequest) -> None:
        with pytest.raises(ConfigurationError, match="config must be a mapping"):
            parse_job_definition({"config": [1, 2]}, sample_job_request)

    def test_non_scalar_field_rejected(self, sample_job_request: JobRequest) -> None:
        with pytest.raises(ConfigurationError, match="session must be a string"):
            parse_job_definition({"session": ["a"]}, sample_job_request)

    def test_unknown_keys_ignored_with_warning(
        self, sample_job_request: JobRequest, caplog: pytest.LogCaptureFixture
    ) -> None:
        definition = parse_job_definition({"color": "blue"}, sample_job_request)
        assert definition.request == sample_job_request
        assert "color" in caplog.text
