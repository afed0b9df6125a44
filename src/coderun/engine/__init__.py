"""Run orchestration engine — isolated, resource-bounded program runs."""

from coderun.engine.admission import AdmissionGate
from coderun.engine.docker_sandbox import DockerSandbox
from coderun.engine.engine import RunEngine, classify
from coderun.engine.errors import (
    CodeRunError,
    ConfigError,
    EngineError,
    HostExecutionError,
    InvalidPathError,
    UnsupportedLanguageError,
    WorkspaceNotFoundError,
)
from coderun.engine.executor import SandboxExecutor
from coderun.engine.languages import BUILTIN_PROFILES, CommandPlan, LanguageProfile, ProfileRegistry
from coderun.engine.local_sandbox import LocalSandbox
from coderun.engine.models import (
    ExecutionOutcome,
    ExecutionRequest,
    OutcomeKind,
    ResourceLimits,
    RunRequest,
    SandboxConfig,
    SandboxResult,
    SuppliedFile,
)
from coderun.engine.paths import resolve_within, safe_name
from coderun.engine.rundir import RunDirectory, RunDirectoryBuilder

__all__ = [
    "BUILTIN_PROFILES",
    "AdmissionGate",
    "CodeRunError",
    "CommandPlan",
    "ConfigError",
    "DockerSandbox",
    "EngineError",
    "ExecutionOutcome",
    "ExecutionRequest",
    "HostExecutionError",
    "InvalidPathError",
    "LanguageProfile",
    "LocalSandbox",
    "OutcomeKind",
    "ProfileRegistry",
    "ResourceLimits",
    "RunDirectory",
    "RunDirectoryBuilder",
    "RunEngine",
    "RunRequest",
    "SandboxConfig",
    "SandboxExecutor",
    "SandboxResult",
    "SuppliedFile",
    "UnsupportedLanguageError",
    "WorkspaceNotFoundError",
    "classify",
    "resolve_within",
    "safe_name",
]
