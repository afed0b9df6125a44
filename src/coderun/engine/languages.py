"""Language profiles — entry-file discovery and sandbox command plans.

Commands are kept as argv tuples with a small set of whole-token
placeholders (``{entry}``, ``{stem}``, ``{sources}``).  They only become a
shell script in :func:`render_script`, where every argument is quoted with
:func:`shlex.join`, so filenames and limits never reach the shell unescaped.
"""

from __future__ import annotations

import shlex
from collections.abc import Iterable, Iterator, Mapping
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field

from coderun.engine.errors import UnsupportedLanguageError

STDIN_FILE = "input.txt"
DIAGNOSTICS_FILE = "compile.txt"
BUILD_FAILURE_EXIT_CODE = 42
INNER_TIMEOUT_EXIT_CODE = 124
# After `-k` escalates to SIGKILL, timeout(1) dies by the same signal: a
# host process reports -9, docker reports 128+9.
INNER_KILL_EXIT_CODES = (128 + 9, -9)

_ENTRY = "{entry}"
_STEM = "{stem}"
_SOURCES = "{sources}"


class CommandPlan(BaseModel):
    """A concrete build/run pair for one run. ``build`` is absent for interpreted languages."""

    model_config = ConfigDict(frozen=True)

    build: tuple[str, ...] | None = None
    run: tuple[str, ...]


class LanguageProfile(BaseModel):
    """Static configuration for one supported language."""

    model_config = ConfigDict(frozen=True)

    name: str
    entry_file: str = Field(..., description="Canonical entry filename.")
    extension: str = Field(..., description="Source extension used for fallback discovery.")
    image: str = Field(..., description="Sandbox image identifier.")
    build: tuple[str, ...] | None = Field(default=None, description="Build argv template.")
    run: tuple[str, ...] = Field(..., description="Run argv template.")
    env: dict[str, str] = Field(default_factory=dict)

    def select_entry(self, listing: Iterable[str]) -> str:
        """Pick the canonical entry, else the first file with our extension, else the canonical name."""
        names = sorted(listing)
        if self.entry_file in names:
            return self.entry_file
        for name in names:
            if name.endswith(self.extension):
                return name
        return self.entry_file

    def plan(self, entry: str, listing: Iterable[str] = ()) -> CommandPlan:
        """Fill the templates for *entry* and the directory *listing*."""
        sources = sorted(n for n in listing if n.endswith(self.extension)) or [entry]
        stem = PurePosixPath(entry).stem
        build = _expand(self.build, entry, stem, sources) if self.build else None
        return CommandPlan(build=build, run=_expand(self.run, entry, stem, sources))


def _expand(template: tuple[str, ...], entry: str, stem: str, sources: list[str]) -> tuple[str, ...]:
    argv: list[str] = []
    for token in template:
        if token == _SOURCES:
            argv.extend(sources)
        else:
            argv.append(token.replace(_ENTRY, entry).replace(_STEM, stem))
    return tuple(argv)


def format_seconds(seconds: float) -> str:
    """Render a duration for ``timeout(1)``, e.g. ``5s`` or ``2.5s``."""
    return f"{seconds:g}s"


def render_script(plan: CommandPlan, time_limit: float) -> str:
    """Compose the in-sandbox shell script for *plan*.

    Build diagnostics go to ``compile.txt``; a non-zero compiler exit never
    aborts the script.  Non-empty diagnostics are echoed and the script exits
    with :data:`BUILD_FAILURE_EXIT_CODE`.  Otherwise the program runs under
    ``timeout`` with ``input.txt`` on stdin.
    """
    lines: list[str] = []
    if plan.build:
        lines.append(f"{shlex.join(plan.build)} 2> {DIAGNOSTICS_FILE} || true")
        lines.append(
            f"if [ -s {DIAGNOSTICS_FILE} ]; then cat {DIAGNOSTICS_FILE}; "
            f"exit {BUILD_FAILURE_EXIT_CODE}; fi"
        )
    runner = ("timeout", "-k", "1", format_seconds(time_limit), *plan.run)
    lines.append(f"exec {shlex.join(runner)} < {STDIN_FILE}")
    return "\n".join(lines)


def sandbox_command(plan: CommandPlan, time_limit: float) -> list[str]:
    """Return the argv that runs *plan* inside the sandbox."""
    return ["bash", "-c", render_script(plan, time_limit)]


_PYTHON_ENV = {"PYTHONDONTWRITEBYTECODE": "1", "PYTHONUNBUFFERED": "1"}

BUILTIN_PROFILES: dict[str, LanguageProfile] = {
    p.name: p
    for p in (
        LanguageProfile(
            name="python",
            entry_file="main.py",
            extension=".py",
            image="python:3.11-slim",
            run=("python3", _ENTRY),
            env=_PYTHON_ENV,
        ),
        LanguageProfile(
            name="cpp",
            entry_file="main.cpp",
            extension=".cpp",
            image="gcc:12",
            build=("g++", "-std=c++17", _ENTRY, "-O2", "-o", "a.out"),
            run=("./a.out",),
        ),
        LanguageProfile(
            name="c",
            entry_file="main.c",
            extension=".c",
            image="gcc:12",
            build=("gcc", "-std=c17", _ENTRY, "-O2", "-o", "a.out", "-lm"),
            run=("./a.out",),
        ),
        LanguageProfile(
            name="java",
            entry_file="Main.java",
            extension=".java",
            image="openjdk:17",
            build=("javac", _SOURCES),
            run=("java", "-cp", ".", _STEM),
        ),
        LanguageProfile(
            name="javascript",
            entry_file="main.js",
            extension=".js",
            image="node:18-slim",
            run=("node", _ENTRY),
        ),
    )
}


class ProfileRegistry:
    """Closed, read-only set of language profiles."""

    def __init__(
        self,
        profiles: Mapping[str, LanguageProfile] | None = None,
        *,
        images: Mapping[str, str] | None = None,
    ) -> None:
        base = dict(profiles or BUILTIN_PROFILES)
        for name, image in (images or {}).items():
            if name not in base:
                raise UnsupportedLanguageError(name, base)
            base[name] = base[name].model_copy(update={"image": image})
        self._profiles = base

    @property
    def languages(self) -> tuple[str, ...]:
        return tuple(sorted(self._profiles))

    def resolve(self, language: str) -> LanguageProfile:
        """Return the profile for *language* or raise :class:`UnsupportedLanguageError`."""
        profile = self._profiles.get(language)
        if profile is None:
            raise UnsupportedLanguageError(language, self._profiles)
        return profile

    def for_extension(self, filename: str) -> LanguageProfile | None:
        """Guess a profile from *filename*'s extension."""
        for profile in self._profiles.values():
            if filename.endswith(profile.extension):
                return profile
        return None

    def __iter__(self) -> Iterator[LanguageProfile]:
        return iter(self._profiles[name] for name in self.languages)
