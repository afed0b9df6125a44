"""Workspace storage — durable per-workspace files, CRUD only."""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Protocol, runtime_checkable

from coderun.engine.errors import WorkspaceNotFoundError
from coderun.engine.paths import resolve_within, safe_name

logger = logging.getLogger(__name__)

DEFAULT_FILES: dict[str, str] = {
    "main.py": (
        "def greet(name):\n"
        '    print(f"Hello, {name}!")\n'
        "\n"
        "if __name__ == '__main__':\n"
        "    greet('World')\n"
    ),
    "Main.java": (
        "public class Main {\n"
        "  public static void main(String[] args) {\n"
        '    System.out.println("Hello, World!");\n'
        "  }\n"
        "}\n"
    ),
    "main.cpp": (
        "#include <bits/stdc++.h>\n"
        "using namespace std;\n"
        'int main(){ cout<<"Hello, World!\\n"; return 0; }\n'
    ),
}


@runtime_checkable
class WorkspaceStore(Protocol):
    """The narrow interface the engine consumes. Names must already be sanitized."""

    def create(self) -> str: ...

    def list(self, workspace_id: str) -> list[str]: ...

    def read(self, workspace_id: str, filename: str) -> str: ...

    def write(self, workspace_id: str, filename: str, content: str) -> None: ...

    def delete(self, workspace_id: str, filename: str) -> None: ...


class FileWorkspaceStore:
    """Workspaces as directories under a single root.

    Satisfies the :class:`WorkspaceStore` protocol.
    """

    def __init__(self, root: Path, *, seed_files: dict[str, str] | None = None) -> None:
        self._root = Path(root)
        self._seed_files = DEFAULT_FILES if seed_files is None else seed_files

    @property
    def root(self) -> Path:
        return self._root

    def create(self) -> str:
        """Create a workspace seeded with hello-world sources and return its id."""
        workspace_id = uuid.uuid4().hex
        directory = self._workspace_dir(workspace_id)
        directory.mkdir(parents=True, exist_ok=True)
        for name, content in self._seed_files.items():
            resolve_within(directory, name).write_text(content, encoding="utf-8")
        logger.info("Created workspace %s", workspace_id)
        return workspace_id

    def list(self, workspace_id: str) -> list[str]:
        directory = self._existing_dir(workspace_id)
        return sorted(p.name for p in directory.iterdir() if p.is_file())

    def read(self, workspace_id: str, filename: str) -> str:
        path = resolve_within(self._existing_dir(workspace_id), filename)
        return path.read_text(encoding="utf-8")

    def write(self, workspace_id: str, filename: str, content: str) -> None:
        directory = self._workspace_dir(workspace_id)
        path = resolve_within(directory, filename)
        directory.mkdir(parents=True, exist_ok=True)
        path.write_text(content or "", encoding="utf-8")

    def delete(self, workspace_id: str, filename: str) -> None:
        path = resolve_within(self._workspace_dir(workspace_id), filename)
        path.unlink(missing_ok=True)

    def _workspace_dir(self, workspace_id: str) -> Path:
        return resolve_within(self._root, safe_name(workspace_id))

    def _existing_dir(self, workspace_id: str) -> Path:
        directory = self._workspace_dir(workspace_id)
        if not directory.is_dir():
            raise WorkspaceNotFoundError(workspace_id)
        return directory
