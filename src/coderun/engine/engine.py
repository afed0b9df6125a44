"""RunEngine — turns a RunRequest into exactly one ExecutionOutcome.

Control flow per run:
1. Resolve the language profile (fails fast, nothing touched on disk).
2. Build a fresh run directory (inline names validated before creation).
3. Pick the entry file and render the sandbox command.
4. Execute under the admission gate and the host watchdog.
5. Classify the raw result.
6. Delete the run directory, whatever happened.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from coderun.engine.admission import AdmissionGate
from coderun.engine.errors import HostExecutionError
from coderun.engine.languages import (
    BUILD_FAILURE_EXIT_CODE,
    INNER_KILL_EXIT_CODES,
    INNER_TIMEOUT_EXIT_CODE,
    ProfileRegistry,
    sandbox_command,
)
from coderun.engine.models import (
    ExecutionOutcome,
    ExecutionRequest,
    OutcomeKind,
    RunRequest,
    SandboxResult,
)
from coderun.engine.rundir import RunDirectoryBuilder
from coderun.utils.telemetry import (
    ATTR_ENTRY_FILE,
    ATTR_RUN_ID,
    ATTR_SKIPPED_FILES,
    EVENT_CLEANUP_FAILED,
    EVENT_COPY_FAILED,
    RUN_SPAN_NAME,
    annotate_outcome,
    annotate_request,
    get_tracer,
)

if TYPE_CHECKING:
    from coderun.config import EngineSettings
    from coderun.engine.executor import SandboxExecutor
    from coderun.workspace.store import WorkspaceStore

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

DEFAULT_WATCHDOG_MARGIN = 10.0


def classify(
    result: SandboxResult,
    *,
    has_build_stage: bool,
    time_limit: float | None = None,
    run_id: str = "",
) -> ExecutionOutcome:
    """Map a raw sandbox result onto an outcome tag.

    Priority: host watchdog, then the build-failure sentinel (only meaningful
    when the plan had a build stage), then the inner ``timeout`` status,
    then a normal exit carrying the program's own exit code.

    With *time_limit* given, the inner ``timeout`` statuses only count once
    the run lasted at least that long, so a program that exits 124 itself,
    or is OOM-killed early, keeps a normal outcome.  SIGKILL statuses need
    *time_limit*; without it only 124 is recognised.
    """
    fields = {
        "stdout": result.stdout,
        "stderr": result.stderr,
        "truncated": result.truncated,
        "duration": result.duration,
        "run_id": run_id,
    }
    if result.timed_out:
        return ExecutionOutcome(
            kind=OutcomeKind.TIMEOUT,
            detail="Execution timed out or was killed",
            **fields,
        )
    if has_build_stage and result.exit_code == BUILD_FAILURE_EXIT_CODE:
        return ExecutionOutcome(kind=OutcomeKind.BUILD_FAILURE, exit_code=result.exit_code, **fields)
    if _inner_timeout_fired(result, time_limit):
        return ExecutionOutcome(
            kind=OutcomeKind.TIMEOUT,
            exit_code=result.exit_code,
            detail="Time limit exceeded",
            **fields,
        )
    return ExecutionOutcome(kind=OutcomeKind.NORMAL, exit_code=result.exit_code, **fields)


def _inner_timeout_fired(result: SandboxResult, time_limit: float | None) -> bool:
    if result.exit_code == INNER_TIMEOUT_EXIT_CODE:
        return time_limit is None or result.duration >= time_limit
    if result.exit_code in INNER_KILL_EXIT_CODES:
        return time_limit is not None and result.duration >= time_limit
    return False


class RunEngine:
    """The run orchestration surface: ``await engine.run(request)``.

    Concurrent calls are independent; each owns its run directory.  Only
    :class:`~coderun.engine.errors.InvalidPathError` and
    :class:`~coderun.engine.errors.UnsupportedLanguageError` escape
    ``run()``; a sandbox that cannot launch yields a ``host_error`` outcome.
    """

    def __init__(
        self,
        sandbox: SandboxExecutor,
        builder: RunDirectoryBuilder,
        *,
        profiles: ProfileRegistry | None = None,
        watchdog_margin: float = DEFAULT_WATCHDOG_MARGIN,
        max_concurrent_runs: int = 0,
    ) -> None:
        self._sandbox = sandbox
        self._builder = builder
        self._profiles = profiles or ProfileRegistry()
        self._watchdog_margin = watchdog_margin
        self._gate = AdmissionGate(max_concurrent_runs)

    @classmethod
    def from_settings(
        cls,
        settings: EngineSettings,
        *,
        sandbox: SandboxExecutor | None = None,
        store: WorkspaceStore | None = None,
    ) -> RunEngine:
        """Wire an engine from :class:`~coderun.config.EngineSettings`."""
        from coderun.engine.docker_sandbox import DockerSandbox
        from coderun.workspace.store import FileWorkspaceStore

        if store is None:
            store = FileWorkspaceStore(settings.workspace_root)
        return cls(
            sandbox or DockerSandbox(settings.sandbox),
            RunDirectoryBuilder(settings.execution_root, store),
            profiles=ProfileRegistry(images=settings.images),
            watchdog_margin=settings.watchdog_margin,
            max_concurrent_runs=settings.max_concurrent_runs,
        )

    @property
    def profiles(self) -> ProfileRegistry:
        return self._profiles

    @property
    def gate(self) -> AdmissionGate:
        return self._gate

    async def run(self, request: RunRequest) -> ExecutionOutcome:
        """Execute *request* in a fresh sandbox and return its outcome."""
        profile = self._profiles.resolve(request.language)

        with _tracer.start_as_current_span(RUN_SPAN_NAME) as span:
            annotate_request(span, request, profile)

            # Blocking filesystem work runs in worker threads.
            run_dir = await asyncio.to_thread(self._builder.prepare, request)
            try:
                span.set_attribute(ATTR_RUN_ID, run_dir.run_id)
                span.set_attribute(ATTR_SKIPPED_FILES, len(run_dir.skipped_files))
                for name in run_dir.skipped_files:
                    span.add_event(EVENT_COPY_FAILED, {"filename": name})

                listing = run_dir.listing()
                entry = profile.select_entry(listing)
                plan = profile.plan(entry, listing)
                span.set_attribute(ATTR_ENTRY_FILE, entry)

                exec_request = ExecutionRequest(
                    run_id=run_dir.run_id,
                    run_dir=run_dir.path,
                    image=profile.image,
                    command=sandbox_command(plan, request.time_limit),
                    limits=request.limits,
                    watchdog_timeout=request.time_limit + self._watchdog_margin,
                    env=dict(profile.env),
                )

                try:
                    async with self._gate.slot():
                        result = await self._sandbox.execute(exec_request)
                except HostExecutionError as exc:
                    logger.error("Run %s could not be launched: %s", run_dir.run_id, exc.detail)
                    outcome = ExecutionOutcome(
                        kind=OutcomeKind.HOST_ERROR,
                        detail=exc.detail,
                        run_id=run_dir.run_id,
                    )
                else:
                    outcome = classify(
                        result,
                        has_build_stage=plan.build is not None,
                        time_limit=request.time_limit,
                        run_id=run_dir.run_id,
                    )
            finally:
                removed = await asyncio.to_thread(run_dir.remove)

            if not removed:
                span.add_event(EVENT_CLEANUP_FAILED, {"path": str(run_dir.path)})

            annotate_outcome(span, outcome)

        logger.info(
            "Run %s (%s) finished: %s exit=%s in %.2fs",
            outcome.run_id,
            profile.name,
            outcome.kind.value,
            outcome.exit_code,
            outcome.duration,
        )
        return outcome

    async def aclose(self) -> None:
        """Release sandbox resources (e.g. containers left behind by a crash)."""
        await self._sandbox.cleanup()
