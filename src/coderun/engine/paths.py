"""Name sanitization and root containment for user-supplied identifiers."""

from __future__ import annotations

import os
import re
from pathlib import Path

from coderun.engine.errors import InvalidPathError

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")
_RESERVED_NAMES = {".", ".."}


def safe_name(name: str | None) -> str:
    """Replace every character outside ``[A-Za-z0-9_.-]`` with ``_``.

    ``None`` and the empty string both yield ``""``.
    """
    if not name:
        return ""
    return _UNSAFE_CHARS.sub("_", name)


def resolve_within(root: Path, name: str | None) -> Path:
    """Return ``root / safe_name(name)`` after checking it stays inside *root*.

    Names carrying traversal markers (path separators, NUL bytes, absolute
    prefixes, ``.``/``..``) are rejected outright instead of being rewritten,
    so an encoded escape attempt surfaces as :class:`InvalidPathError` rather
    than as an oddly named file.  Nothing on disk is touched.
    """
    raw = name or ""
    if not raw:
        raise InvalidPathError(raw, "empty name")
    if "\x00" in raw:
        raise InvalidPathError(raw, "NUL byte")
    if raw.startswith(("/", "\\")) or os.path.isabs(raw) or re.match(r"^[A-Za-z]:", raw):
        raise InvalidPathError(raw, "absolute path")
    if "/" in raw or "\\" in raw:
        raise InvalidPathError(raw, "path separator")

    cleaned = safe_name(raw)
    if cleaned in _RESERVED_NAMES:
        raise InvalidPathError(raw, "reserved name")

    base = Path(os.path.abspath(root))
    candidate = Path(os.path.abspath(base / cleaned))
    if candidate.parent != base:
        raise InvalidPathError(raw, "escapes root")
    return candidate
