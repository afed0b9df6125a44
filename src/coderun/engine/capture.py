"""Bounded output capture and the host-side watchdog shared by sandboxes."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024

KillHook = Callable[[], Awaitable[None]]


class BoundedBuffer:
    """Accumulates bytes up to ``limit``; anything beyond is dropped and flagged."""

    __slots__ = ("limit", "truncated", "_chunks", "_size")

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.truncated = False
        self._chunks: list[bytes] = []
        self._size = 0

    def feed(self, data: bytes) -> None:
        room = self.limit - self._size
        if room <= 0:
            self.truncated = self.truncated or bool(data)
            return
        if len(data) > room:
            data = data[:room]
            self.truncated = True
        self._chunks.append(data)
        self._size += len(data)

    def text(self) -> str:
        return b"".join(self._chunks).decode(errors="replace")


async def drain(stream: asyncio.StreamReader | None, buffer: BoundedBuffer) -> None:
    """Read *stream* to EOF into *buffer*, discarding overflow so the pipe never blocks."""
    if stream is None:
        return
    while True:
        chunk = await stream.read(_CHUNK_SIZE)
        if not chunk:
            return
        buffer.feed(chunk)


class SupervisedRun:
    """What :func:`supervise` observed: exit status, captured streams, watchdog flag."""

    __slots__ = ("exit_code", "stdout", "stderr", "timed_out", "duration")

    def __init__(
        self,
        exit_code: int | None,
        stdout: BoundedBuffer,
        stderr: BoundedBuffer,
        timed_out: bool,
        duration: float,
    ) -> None:
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.timed_out = timed_out
        self.duration = duration

    @property
    def truncated(self) -> bool:
        return self.stdout.truncated or self.stderr.truncated


async def supervise(
    proc: asyncio.subprocess.Process,
    *,
    timeout: float,
    max_output_bytes: int,
    on_timeout: KillHook | None = None,
) -> SupervisedRun:
    """Wait for *proc* under a watchdog, capturing both streams.

    When *timeout* elapses, *on_timeout* runs first (e.g. to kill a
    container or a process group), then the process itself is killed.
    Output read before the deadline is kept.
    """
    stdout = BoundedBuffer(max_output_bytes)
    stderr = BoundedBuffer(max_output_bytes)
    started = time.monotonic()
    readers = asyncio.gather(drain(proc.stdout, stdout), drain(proc.stderr, stderr))
    timed_out = False

    try:
        await asyncio.wait_for(asyncio.shield(readers), timeout=timeout)
        remaining = max(1.0, timeout - (time.monotonic() - started))
        await asyncio.wait_for(proc.wait(), timeout=remaining)
    except TimeoutError:
        timed_out = True
        logger.warning("Watchdog fired after %.1fs (pid=%s)", timeout, proc.pid)
        if on_timeout is not None:
            await on_timeout()
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        # Pipes close once the process is gone; keep whatever is still buffered.
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(asyncio.shield(readers), timeout=1.0)
    finally:
        if not readers.done():
            readers.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await readers

    return SupervisedRun(
        exit_code=None if timed_out else proc.returncode,
        stdout=stdout,
        stderr=stderr,
        timed_out=timed_out,
        duration=time.monotonic() - started,
    )
