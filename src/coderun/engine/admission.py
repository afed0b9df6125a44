"""AdmissionGate — bounds how many sandboxed runs execute at once."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


class AdmissionGate:
    """A counting gate in front of the sandbox.

    ``limit`` of ``0`` (or less) disables the gate: every run is admitted
    immediately.  Waiting runs are admitted in FIFO order.
    """

    def __init__(self, limit: int) -> None:
        self._limit = max(0, limit)
        self._semaphore = asyncio.Semaphore(self._limit) if self._limit else None
        self._active = 0
        self._waiting = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def active(self) -> int:
        return self._active

    @property
    def waiting(self) -> int:
        return self._waiting

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one execution slot for the duration of the block."""
        if self._semaphore is None:
            self._active += 1
            try:
                yield
            finally:
                self._active -= 1
            return

        if self._semaphore.locked():
            logger.info("Admission gate full (%d active); run is queued", self._active)
        self._waiting += 1
        try:
            await self._semaphore.acquire()
        finally:
            self._waiting -= 1
        self._active += 1
        try:
            yield
        finally:
            self._active -= 1
            self._semaphore.release()
