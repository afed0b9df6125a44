"""Workspace storage consumed by the run engine."""

from coderun.workspace.store import DEFAULT_FILES, FileWorkspaceStore, WorkspaceStore

__all__ = [
    "DEFAULT_FILES",
    "FileWorkspaceStore",
    "WorkspaceStore",
]
