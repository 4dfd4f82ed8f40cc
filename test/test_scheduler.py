import asyncio

from dockerdash.dash.scheduler import RefreshScheduler


def test_cycles_never_overlap() -> None:
    async def main():
        running = 0
        peak = 0
        order: list[int] = []

        async def cycle():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0)
            order.append(len(order))
            running -= 1

        sched = RefreshScheduler(cycle)
        sched.request()
        sched.tick()
        sched.request()
        sched.request()
        await sched.drain()
        assert peak == 1
        assert sched.issued == 2
        assert sched.skipped == 1
        assert order == [0, 1]

    asyncio.run(main())


def test_failed_cycle_does_not_stop_scheduler() -> None:
    async def main():
        calls = 0

        async def cycle():
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("boom")

        sched = RefreshScheduler(cycle)
        sched.request()
        await sched.drain()
        sched.tick()
        await sched.drain()
        assert calls == 2
        assert sched.completed == 2

    asyncio.run(main())


def test_cancel_drops_pending() -> None:
    async def main():
        gate = asyncio.Event()

        async def cycle():
            await gate.wait()

        sched = RefreshScheduler(cycle)
        sched.request()
        sched.request()
        sched.cancel()
        assert not sched.busy
        await sched.drain()
        assert sched.issued == 1

    asyncio.run(main())
