"""LocalSandbox — executes runs on the host with loud warnings.

This is a development/fallback executor that runs commands directly on the
host machine, inside the run directory.  It is **not** sandboxed: no
network, memory or CPU limits are applied, and it emits prominent warnings
every time it is instantiated or used.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
import warnings

from coderun.engine.capture import supervise
from coderun.engine.errors import HostExecutionError
from coderun.engine.models import ExecutionRequest, SandboxConfig, SandboxResult

logger = logging.getLogger(__name__)

_WARNING_MSG = (
    "LocalSandbox executes programs directly on the host with NO isolation. "
    "Use DockerSandbox for untrusted code."
)


class LocalSandbox:
    """Host-local executor (no isolation).

    Satisfies the :class:`~coderun.engine.executor.SandboxExecutor`
    protocol but provides **zero** sandboxing.  Each run gets its own
    process group so the watchdog can kill the whole tree.
    """

    def __init__(self, config: SandboxConfig | None = None) -> None:
        self._config = config or SandboxConfig()
        warnings.warn(_WARNING_MSG, stacklevel=2)
        logger.warning(_WARNING_MSG)

    async def execute(self, request: ExecutionRequest) -> SandboxResult:
        """Run the command on the host, with the run directory as cwd."""
        logger.warning("LocalSandbox: executing run %s on host (UNSANDBOXED)", request.run_id)

        env = {**os.environ, **self._config.env, **request.env}
        try:
            proc = await asyncio.create_subprocess_exec(
                *request.command,
                cwd=request.run_dir,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                start_new_session=True,
            )
        except OSError as exc:
            raise HostExecutionError(str(exc)) from exc

        async def kill_group() -> None:
            _kill_process_group(proc.pid)

        try:
            run = await supervise(
                proc,
                timeout=request.watchdog_timeout,
                max_output_bytes=self._config.max_output_bytes,
                on_timeout=kill_group,
            )
        finally:
            # Stray background children must not outlive the run.
            _kill_process_group(proc.pid)

        return SandboxResult(
            exit_code=run.exit_code,
            stdout=run.stdout.text(),
            stderr=run.stderr.text(),
            timed_out=run.timed_out,
            truncated=run.truncated,
            duration=run.duration,
        )

    async def cleanup(self) -> None:
        """No-op — nothing to clean up for host execution."""


def _kill_process_group(pgid: int) -> None:
    with contextlib.suppress(ProcessLookupError, PermissionError):
        os.killpg(pgid, signal.SIGKILL)
