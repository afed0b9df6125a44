"""Engine settings and the YAML loader behind ``--config``."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from coderun.engine.errors import ConfigError
from coderun.engine.models import SandboxConfig

CONFIG_ENV_VAR = "CODERUN_CONFIG"


def _default_root(name: str) -> Path:
    return Path(tempfile.gettempdir()) / name


class TelemetrySettings(BaseModel):
    """Optional telemetry configuration."""

    enabled: bool = False
    otlp_endpoint: str | None = None


class EngineSettings(BaseModel):
    """Everything needed to wire a :class:`~coderun.engine.engine.RunEngine`."""

    execution_root: Path = Field(
        default_factory=lambda: _default_root("coderun_runs"),
        description="Parent of every run directory.",
    )
    workspace_root: Path = Field(
        default_factory=lambda: _default_root("coderun_workspaces"),
        description="Where the filesystem workspace store keeps workspaces.",
    )
    watchdog_margin: float = Field(default=10.0, ge=0, description="Seconds the host watchdog adds to the time limit.")
    max_concurrent_runs: int = Field(default=4, ge=0, description="Admission gate size; 0 disables the gate.")
    images: dict[str, str] = Field(default_factory=dict, description="Per-language image overrides.")
    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)


def load_settings(path: str | Path | None = None) -> EngineSettings:
    """Read settings from a YAML file; no path means defaults.

    Environment variables in the form ``${VAR}`` or ``$VAR`` are expanded
    using :func:`os.path.expandvars` before YAML parsing.

    Raises:
        ConfigError: On read errors, YAML parse errors or validation failures.
    """
    if path is None:
        return EngineSettings()

    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read {config_path}: {exc}") from exc

    expanded = os.path.expandvars(raw)

    try:
        data: Any = yaml.safe_load(expanded)
    except yaml.YAMLError as exc:
        raise ConfigError(f"YAML parse error: {exc}") from exc

    if data is None:
        return EngineSettings()
    if not isinstance(data, dict):
        raise ConfigError("Settings YAML must be a mapping")

    try:
        return EngineSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
