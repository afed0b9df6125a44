"""Shared error types for the run orchestration engine."""

from __future__ import annotations

from collections.abc import Iterable


class CodeRunError(Exception):
    """Base error for all coderun failures."""


class EngineError(CodeRunError):
    """The engine refused or could not carry out a run.

    User-program misbehaviour (non-zero exit, crash, timeout) is never an
    ``EngineError``; it is reported through
    :class:`~coderun.engine.models.ExecutionOutcome`.
    """

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__("Engine error" + (f": {detail}" if detail else ""))


class InvalidPathError(EngineError):
    """A user-supplied name would resolve outside its expected root."""

    def __init__(self, name: str, reason: str = "") -> None:
        self.name = name
        self.reason = reason
        msg = f"Invalid path: {name!r}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class UnsupportedLanguageError(EngineError):
    """The requested language has no profile."""

    def __init__(self, language: str, supported: Iterable[str] = ()) -> None:
        self.language = language
        self.supported = tuple(sorted(supported))
        msg = f"Unsupported language: {language!r}"
        if self.supported:
            msg += f" (supported: {', '.join(self.supported)})"
        super().__init__(msg)


class HostExecutionError(EngineError):
    """The isolation technology is unavailable or failed to launch the run."""


class WorkspaceNotFoundError(EngineError):
    """The referenced workspace does not exist in the store."""

    def __init__(self, workspace_id: str) -> None:
        self.workspace_id = workspace_id
        super().__init__(f"Workspace not found: {workspace_id}")


class ConfigError(CodeRunError):
    """Raised when a settings file fails parsing or validation."""
