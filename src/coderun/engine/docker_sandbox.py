"""DockerSandbox — executes runs in ephemeral Docker containers.

Uses the ``docker`` CLI via subprocess (no docker-py dependency).
"""

from __future__ import annotations

import asyncio
import logging

from coderun.engine.capture import supervise
from coderun.engine.errors import HostExecutionError
from coderun.engine.models import ExecutionRequest, SandboxConfig, SandboxResult

logger = logging.getLogger(__name__)

# ``docker run`` exits 125 when the daemon cannot create or start the container.
DOCKER_LAUNCH_FAILURE = 125


class DockerSandbox:
    """Ephemeral Docker container sandbox.

    Satisfies the :class:`~coderun.engine.executor.SandboxExecutor`
    protocol.

    Each ``execute()`` call:
    1. ``docker run --rm`` a named container with resource limits, no
       network and the run directory as its only mount.
    2. Streams stdout/stderr into bounded buffers under the host watchdog.
    3. On watchdog expiry, ``docker kill`` the container (its whole process
       tree) before killing the CLI client.
    4. ``docker rm -f`` in a ``finally`` block.
    """

    def __init__(self, config: SandboxConfig | None = None) -> None:
        self._config = config or SandboxConfig()
        self._active_containers: set[str] = set()

    @property
    def config(self) -> SandboxConfig:
        return self._config

    async def execute(self, request: ExecutionRequest) -> SandboxResult:
        """Run a request inside an ephemeral container."""
        container_name = f"coderun-{request.run_id}"
        cmd = self._build_run_command(container_name, request)
        logger.debug("Starting container %s (image=%s)", container_name, request.image)

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise HostExecutionError(f"Failed to run docker: {exc}") from exc

        self._active_containers.add(container_name)
        try:
            run = await supervise(
                proc,
                timeout=request.watchdog_timeout,
                max_output_bytes=self._config.max_output_bytes,
                on_timeout=lambda: self._kill_container(container_name),
            )
        finally:
            await self._remove_container(container_name)

        stderr = run.stderr.text()
        if not run.timed_out and _is_launch_failure(run.exit_code, stderr):
            raise HostExecutionError(
                f"docker could not start the container (rc={run.exit_code}): {stderr.strip()}"
            )

        return SandboxResult(
            exit_code=run.exit_code,
            stdout=run.stdout.text(),
            stderr=stderr,
            timed_out=run.timed_out,
            truncated=run.truncated,
            duration=run.duration,
        )

    async def cleanup(self) -> None:
        """Remove all tracked containers."""
        containers = list(self._active_containers)
        for name in containers:
            await self._remove_container(name)

    def _build_run_command(
        self,
        container_name: str,
        request: ExecutionRequest,
    ) -> list[str]:
        """Build the ``docker run`` command with resource limits."""
        cfg = self._config
        limits = request.limits
        memory = f"{limits.memory_mb}m"
        cmd: list[str] = [
            cfg.docker_binary, "run",
            "--rm",
            "--name", container_name,
            "--network", "none",
            "--memory", memory,
            "--memory-swap", memory,
            "--cpus", f"{limits.cpus:g}",
            "--pids-limit", str(cfg.pids_limit),
            "--cap-drop", "ALL",
            "--security-opt", "no-new-privileges",
        ]

        if cfg.read_only:
            cmd.append("--read-only")
            # Compilers and the JVM still need a scratch /tmp
            cmd.extend(["--tmpfs", f"/tmp:rw,noexec,nosuid,size={cfg.tmpfs_size}"])

        if cfg.run_as_user:
            cmd.extend(["--user", cfg.run_as_user])

        cmd.extend(["--volume", f"{request.run_dir}:{cfg.workdir}"])
        cmd.extend(["--workdir", cfg.workdir])

        merged_env = {**cfg.env, **request.env}
        for key, value in merged_env.items():
            cmd.extend(["-e", f"{key}={value}"])

        cmd.append(request.image)
        cmd.extend(request.command)

        return cmd

    async def _kill_container(self, name: str) -> None:
        error = await self._run_docker([self._config.docker_binary, "kill", name])
        if error is not None:
            logger.warning("Could not kill container %s: %s", name, error)

    async def _remove_container(self, name: str) -> None:
        """Force-remove a container, swallowing errors."""
        error = await self._run_docker([self._config.docker_binary, "rm", "-f", name])
        if error is not None:
            logger.debug("Could not remove container %s: %s", name, error)
        self._active_containers.discard(name)

    @staticmethod
    async def _run_docker(cmd: list[str]) -> str | None:
        """Run a short, best-effort docker CLI command.

        Returns ``None`` on success, otherwise the error text.
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout_bytes, stderr_bytes = await proc.communicate()
        except OSError as exc:
            return str(exc)

        if proc.returncode == 0:
            return None
        output = (stderr_bytes or stdout_bytes or b"").decode(errors="replace").strip()
        return f"rc={proc.returncode}: {output}"


def _is_launch_failure(exit_code: int | None, stderr: str) -> bool:
    """Tell docker's own 125 apart from a user program that happens to exit 125."""
    if exit_code != DOCKER_LAUNCH_FAILURE:
        return False
    head = stderr.lstrip()
    return head.startswith("docker:") or "Error response from daemon" in head or "Unable to find image" in head

