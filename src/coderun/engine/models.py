"""Data models for the run orchestration engine."""

from __future__ import annotations

import math
from enum import Enum
from pathlib import Path  # noqa: TC003
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

TIME_LIMIT_RANGE = (1.0, 30.0, 5.0)
MEMORY_RANGE = (64.0, 2048.0, 512.0)
CPUS_RANGE = (0.1, 4.0, 0.5)


def clamp_number(value: Any, low: float, high: float, default: float) -> float:
    """Coerce *value* to a float inside ``[low, high]``.

    Absent, non-numeric and NaN values fall back to *default*.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return max(low, min(high, number))


class SuppliedFile(BaseModel):
    """A file shipped inline with a run request."""

    model_config = ConfigDict(frozen=True)

    name: str | None = Field(default=None, description="Requested filename; synthesized when empty.")
    content: str = Field(default="", description="File body.")

    @field_validator("content", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class RunRequest(BaseModel):
    """Everything one run needs. Immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    language: str = Field(..., description="Language identifier, e.g. 'python'.")
    workspace_id: str | None = Field(default=None, description="Workspace to copy files from.")
    files: tuple[SuppliedFile, ...] = Field(
        default=(),
        description="Inline files, written after workspace files; later entries win.",
    )
    stdin: str = Field(default="", description="Text fed to the program on standard input.")
    time_limit: float = Field(default=TIME_LIMIT_RANGE[2], description="Wall-clock seconds, clamped to [1, 30].")
    memory: float = Field(default=MEMORY_RANGE[2], description="Memory ceiling in MB, clamped to [64, 2048].")
    cpus: float = Field(default=CPUS_RANGE[2], description="CPU share in cores, clamped to [0.1, 4].")

    @field_validator("stdin", mode="before")
    @classmethod
    def _stdin_text(cls, value: Any) -> Any:
        return value if isinstance(value, str) else ""

    @field_validator("files", mode="before")
    @classmethod
    def _files_sequence(cls, value: Any) -> Any:
        return () if value is None else value

    @field_validator("time_limit", mode="before")
    @classmethod
    def _clamp_time_limit(cls, value: Any) -> float:
        return clamp_number(value, *TIME_LIMIT_RANGE)

    @field_validator("memory", mode="before")
    @classmethod
    def _clamp_memory(cls, value: Any) -> float:
        return clamp_number(value, *MEMORY_RANGE)

    @field_validator("cpus", mode="before")
    @classmethod
    def _clamp_cpus(cls, value: Any) -> float:
        return clamp_number(value, *CPUS_RANGE)

    @property
    def limits(self) -> ResourceLimits:
        return ResourceLimits(time_limit=self.time_limit, memory_mb=int(self.memory), cpus=self.cpus)


class ResourceLimits(BaseModel):
    """Already-clamped resource ceilings applied to one sandboxed run."""

    model_config = ConfigDict(frozen=True)

    time_limit: float
    memory_mb: int
    cpus: float


class SandboxConfig(BaseModel):
    """Host-side settings for a sandbox executor."""

    docker_binary: str = Field(default="docker", description="Container CLI to invoke.")
    workdir: str = Field(default="/code", description="Mount point of the run directory inside the sandbox.")
    max_output_bytes: int = Field(default=4 * 1024 * 1024, gt=0, description="Capture cap per stream.")
    pids_limit: int = Field(default=128, gt=0, description="Maximum processes inside the sandbox.")
    read_only: bool = Field(default=True, description="Mount the image root filesystem read-only.")
    tmpfs_size: str = Field(default="64m", description="Size of the writable /tmp when read_only is set.")
    run_as_user: str | None = Field(default=None, description="Optional 'uid:gid' for --user.")
    env: dict[str, str] = Field(default_factory=dict, description="Environment variables for every run.")


class ExecutionRequest(BaseModel):
    """A resolved command, ready for a sandbox to execute."""

    run_id: str = Field(..., description="Unique id of the run; also names the container.")
    run_dir: Path = Field(..., description="Host directory exposed to the sandbox.")
    image: str = Field(..., description="Sandbox image identifier.")
    command: list[str] = Field(..., description="Command and arguments run inside the sandbox.")
    limits: ResourceLimits
    watchdog_timeout: float = Field(..., description="Host-side deadline for the whole invocation.")
    env: dict[str, str] = Field(default_factory=dict, description="Extra env vars for the sandbox.")


class SandboxResult(BaseModel):
    """Raw result of one sandbox invocation, before classification."""

    exit_code: int | None = Field(default=None, description="Process exit code; None when killed.")
    stdout: str = Field(default="", description="Captured stdout.")
    stderr: str = Field(default="", description="Captured stderr.")
    timed_out: bool = Field(default=False, description="Whether the host watchdog fired.")
    truncated: bool = Field(default=False, description="Whether either stream hit the capture cap.")
    duration: float = Field(default=0.0, description="Wall-clock seconds spent in the sandbox.")


class OutcomeKind(str, Enum):
    """How a run ended."""

    NORMAL = "normal"
    BUILD_FAILURE = "build_failure"
    TIMEOUT = "timeout"
    HOST_ERROR = "host_error"


class ExecutionOutcome(BaseModel):
    """The structured result handed back to the caller for every valid request."""

    model_config = ConfigDict(frozen=True)

    kind: OutcomeKind
    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None
    detail: str | None = Field(default=None, description="Human-readable detail, set for host errors.")
    truncated: bool = False
    duration: float = 0.0
    run_id: str = ""

    @property
    def succeeded(self) -> bool:
        """True for a normal exit with status 0."""
        return self.kind == OutcomeKind.NORMAL and self.exit_code == 0

    @property
    def is_engine_failure(self) -> bool:
        """True when the sandbox itself, not the user program, failed."""
        return self.kind == OutcomeKind.HOST_ERROR
