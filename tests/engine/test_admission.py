"""Tests for the admission gate."""

import asyncio

from coderun.engine.admission import AdmissionGate


async def _peak_concurrency(gate: AdmissionGate, runs: int) -> int:
    peak = 0

    async def one() -> None:
        nonlocal peak
        async with gate.slot():
            peak = max(peak, gate.active)
            await asyncio.sleep(0.01)

    await asyncio.gather(*(one() for _ in range(runs)))
    return peak


class TestAdmissionGate:
    async def test_bounded(self) -> None:
        gate = AdmissionGate(2)
        assert await _peak_concurrency(gate, 6) == 2
        assert gate.active == 0
        assert gate.waiting == 0

    async def test_zero_disables_gate(self) -> None:
        gate = AdmissionGate(0)
        assert await _peak_concurrency(gate, 5) == 5

    async def test_negative_limit_is_unbounded(self) -> None:
        assert AdmissionGate(-3).limit == 0

    async def test_slot_released_on_error(self) -> None:
        gate = AdmissionGate(1)
        try:
            async with gate.slot():
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        async with gate.slot():
            assert gate.active == 1

    async def test_waiting_is_counted(self) -> None:
        gate = AdmissionGate(1)
        release = asyncio.Event()

        async def holder() -> None:
            async with gate.slot():
                await release.wait()

        async def waiter() -> None:
            async with gate.slot():
                pass

        t1 = asyncio.create_task(holder())
        await asyncio.sleep(0)
        t2 = asyncio.create_task(waiter())
        await asyncio.sleep(0.01)
        assert gate.waiting == 1
        release.set()
        await asyncio.gather(t1, t2)
        assert gate.waiting == 0
