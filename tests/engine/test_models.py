"""Tests for engine data models."""

import pytest
from pydantic import ValidationError

from coderun.engine.models import (
    ExecutionOutcome,
    OutcomeKind,
    RunRequest,
    SandboxConfig,
    SuppliedFile,
    clamp_number,
)


class TestClampNumber:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (5, 5.0),
            ("7", 7.0),
            (0, 1.0),
            (100, 30.0),
            (None, 5.0),
            ("abc", 5.0),
            (float("nan"), 5.0),
            (float("inf"), 30.0),
            (True, 5.0),
            ([1], 5.0),
        ],
    )
    def test_clamp(self, value: object, expected: float) -> None:
        assert clamp_number(value, 1.0, 30.0, 5.0) == expected


class TestRunRequest:
    def test_defaults(self) -> None:
        req = RunRequest(language="python")
        assert req.time_limit == 5.0
        assert req.memory == 512.0
        assert req.cpus == 0.5
        assert req.stdin == ""
        assert req.files == ()
        assert req.workspace_id is None

    def test_limits_are_clamped(self) -> None:
        req = RunRequest(language="python", time_limit=120, memory=8, cpus=16)
        assert req.time_limit == 30.0
        assert req.memory == 64.0
        assert req.cpus == 4.0

    def test_non_numeric_limits_fall_back(self) -> None:
        req = RunRequest(language="python", time_limit="soon", memory=None, cpus="lots")
        assert (req.time_limit, req.memory, req.cpus) == (5.0, 512.0, 0.5)

    def test_non_string_stdin_is_empty(self) -> None:
        assert RunRequest(language="python", stdin=123).stdin == ""
        assert RunRequest(language="python", stdin=None).stdin == ""

    def test_files_from_dicts(self) -> None:
        req = RunRequest(
            language="python",
            files=[{"name": "a.py", "content": "print(1)"}, {"name": None, "content": None}],
        )
        assert req.files == (
            SuppliedFile(name="a.py", content="print(1)"),
            SuppliedFile(name=None, content=""),
        )

    def test_files_none(self) -> None:
        assert RunRequest(language="python", files=None).files == ()

    def test_immutable(self) -> None:
        req = RunRequest(language="python")
        with pytest.raises(ValidationError):
            req.language = "cpp"  # type: ignore[misc]

    def test_limits_property(self) -> None:
        limits = RunRequest(language="python", memory=300.7, cpus=1.5, time_limit=2).limits
        assert limits.memory_mb == 300
        assert limits.cpus == 1.5
        assert limits.time_limit == 2.0

    def test_language_required(self) -> None:
        with pytest.raises(ValidationError):
            RunRequest()  # type: ignore[call-arg]


class TestSandboxConfig:
    def test_defaults(self) -> None:
        cfg = SandboxConfig()
        assert cfg.docker_binary == "docker"
        assert cfg.workdir == "/code"
        assert cfg.max_output_bytes == 4 * 1024 * 1024
        assert cfg.read_only is True
        assert cfg.run_as_user is None

    def test_rejects_non_positive_output_cap(self) -> None:
        with pytest.raises(ValidationError):
            SandboxConfig(max_output_bytes=0)


class TestExecutionOutcome:
    def test_succeeded(self) -> None:
        assert ExecutionOutcome(kind=OutcomeKind.NORMAL, exit_code=0).succeeded
        assert not ExecutionOutcome(kind=OutcomeKind.NORMAL, exit_code=1).succeeded
        assert not ExecutionOutcome(kind=OutcomeKind.BUILD_FAILURE, exit_code=42).succeeded

    def test_engine_failure_flag(self) -> None:
        assert ExecutionOutcome(kind=OutcomeKind.HOST_ERROR, detail="no docker").is_engine_failure
        assert not ExecutionOutcome(kind=OutcomeKind.TIMEOUT).is_engine_failure

    def test_json_round_trip_keeps_tag(self) -> None:
        outcome = ExecutionOutcome(kind=OutcomeKind.TIMEOUT, stdout="partial")
        assert '"kind":"timeout"' in outcome.model_dump_json()
