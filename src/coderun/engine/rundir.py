"""Run directories — one fresh, exclusively owned directory per run.

:class:`RunDirectoryBuilder` materializes workspace files, inline files and
stdin under the execution root.  :class:`RunDirectory` is a context manager
that deletes the directory exactly once on exit, whatever happened inside.
"""

from __future__ import annotations

import logging
import shutil
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

from coderun.engine.errors import EngineError
from coderun.engine.languages import STDIN_FILE
from coderun.engine.paths import resolve_within, safe_name

if TYPE_CHECKING:
    from types import TracebackType

    from coderun.engine.models import RunRequest
    from coderun.workspace.store import WorkspaceStore

logger = logging.getLogger(__name__)

RUN_DIR_PREFIX = "run_"


class RunDirectory:
    """An ephemeral run directory. Deleted exactly once by :meth:`remove`."""

    def __init__(self, run_id: str, path: Path) -> None:
        self.run_id = run_id
        self.path = path
        self.skipped_files: list[str] = []
        self._removed = False

    @property
    def removed(self) -> bool:
        return self._removed

    def listing(self) -> list[str]:
        """Sorted names of the regular files currently in the directory."""
        return sorted(p.name for p in self.path.iterdir() if p.is_file())

    def remove(self) -> bool:
        """Delete the directory tree. Failures are logged, never raised.

        Returns ``True`` when the directory is gone afterwards.
        """
        if self._removed:
            return True
        self._removed = True
        try:
            shutil.rmtree(self.path)
        except FileNotFoundError:
            return True
        except OSError as exc:
            logger.warning(
                "Failed to remove run directory %s: %s",
                self.path,
                exc,
                extra={"run_id": self.run_id, "path": str(self.path)},
            )
            return False
        logger.debug("Removed run directory %s", self.path)
        return True

    def __enter__(self) -> RunDirectory:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.remove()


class RunDirectoryBuilder:
    """Creates run directories under a fixed execution root."""

    def __init__(self, execution_root: Path, store: WorkspaceStore | None = None) -> None:
        self._root = Path(execution_root)
        self._store = store

    @property
    def execution_root(self) -> Path:
        return self._root

    def prepare(self, request: RunRequest) -> RunDirectory:
        """Build a run directory holding every input of *request*.

        Inline filenames and the workspace reference are validated before
        anything is created, so an :class:`~coderun.engine.errors.InvalidPathError`
        leaves the filesystem untouched.
        """
        supplied = self._plan_supplied_files(request)
        workspace_id = safe_name(request.workspace_id)
        if workspace_id:
            # Sanitizing leaves "." and ".." intact; reject them like filenames.
            resolve_within(self._root, workspace_id)

        run_id = uuid.uuid4().hex
        self._root.mkdir(parents=True, exist_ok=True)
        path = resolve_within(self._root, f"{RUN_DIR_PREFIX}{run_id}")
        path.mkdir()
        run_dir = RunDirectory(run_id, path)

        try:
            if workspace_id:
                self._copy_workspace(workspace_id, run_dir)
            for name, content in supplied:
                (path / name).write_text(content, encoding="utf-8")
            (path / STDIN_FILE).write_text(request.stdin, encoding="utf-8")
        except BaseException:
            run_dir.remove()
            raise

        logger.debug(
            "Prepared run directory %s (%d inline file(s), workspace=%s)",
            path,
            len(supplied),
            workspace_id or "-",
        )
        return run_dir

    def _plan_supplied_files(self, request: RunRequest) -> list[tuple[str, str]]:
        planned: list[tuple[str, str]] = []
        for item in request.files:
            raw = item.name or f"file_{uuid.uuid4().hex}"
            name = resolve_within(self._root, raw).name
            planned.append((name, item.content))
        return planned

    def _copy_workspace(self, workspace_id: str, run_dir: RunDirectory) -> None:
        """Copy every workspace file, skipping (and logging) the ones that fail."""
        log_extra = {"run_id": run_dir.run_id, "workspace_id": workspace_id}
        if self._store is None:
            logger.warning("Run references workspace %s but no store is configured", workspace_id, extra=log_extra)
            return

        try:
            names = self._store.list(workspace_id)
        except (EngineError, OSError) as exc:
            logger.warning("Cannot list workspace %s: %s", workspace_id, exc, extra=log_extra)
            return

        for name in names:
            try:
                content = self._store.read(workspace_id, name)
                resolve_within(run_dir.path, name).write_text(content, encoding="utf-8")
            except (EngineError, OSError, UnicodeDecodeError) as exc:
                run_dir.skipped_files.append(name)
                logger.warning(
                    "Skipped workspace file %s: %s",
                    name,
                    exc,
                    extra={**log_extra, "filename": name},
                )
