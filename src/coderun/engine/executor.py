"""The interface RunEngine needs from an isolation backend."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from coderun.engine.models import ExecutionRequest, SandboxResult


@runtime_checkable
class SandboxExecutor(Protocol):
    """Executes a resolved command against one run directory.

    ``execute()`` returns a :class:`SandboxResult` for anything the user
    program does, including running past the watchdog, and raises
    :class:`~coderun.engine.errors.HostExecutionError` only when the
    isolation technology itself cannot launch the run.  ``cleanup()``
    releases anything still held (e.g. containers).
    """

    async def execute(self, request: ExecutionRequest) -> SandboxResult:
        """Run the request and return the raw result."""
        ...

    async def cleanup(self) -> None:
        """Release any resources held by this executor."""
        ...
