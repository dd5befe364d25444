"""Concurrency helper tests."""

import asyncio

import pytest

from inventory_api.services.concurrency import gather_all, run_settled


def test_run_settled_keeps_order_and_isolates_failures():
    async def worker(n):
        await asyncio.sleep(0.01 * (5 - n))
        if n == 2:
            raise ValueError("bad item")
        return n * 10

    outcomes = asyncio.run(run_settled([1, 2, 3, 4], 2, worker))

    assert [o.value for o in outcomes] == [10, None, 30, 40]
    assert [o.ok for o in outcomes] == [True, False, True, True]
    assert str(outcomes[1].error) == "bad item"


def test_run_settled_respects_limit():
    running = 0
    peak = 0

    async def worker(_):
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1

    asyncio.run(run_settled(range(10), 3, worker))

    assert peak == 3


def test_gather_all_waits_for_siblings_before_raising():
    finished = []

    async def slow():
        await asyncio.sleep(0.05)
        finished.append("slow")

    async def failing():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        asyncio.run(gather_all(slow(), failing()))

    assert finished == ["slow"]
