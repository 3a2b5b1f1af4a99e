"""Tests for utils/concurrency.py."""

from __future__ import annotations

import threading
import time

import pytest

from testshard.utils.concurrency import gather_bounded


class TestGatherBounded:
    async def test_preserves_input_order(self) -> None:
        def _slow_for_small(value: int) -> int:
            time.sleep(0.01 * (5 - value))
            return value * 10

        assert await gather_bounded(_slow_for_small, range(5), max_workers=5) == [
            0,
            10,
            20,
            30,
            40,
        ]

    async def test_respects_worker_limit(self) -> None:
        lock = threading.Lock()
        active = 0
        peak = 0

        def _track(_: int) -> None:
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.02)
            with lock:
                active -= 1

        await gather_bounded(_track, range(12), max_workers=3)
        assert 1 <= peak <= 3

    async def test_empty_input(self) -> None:
        assert await gather_bounded(str, [], max_workers=2) == []

    async def test_exception_propagates(self) -> None:
        def _fail_on_two(value: int) -> int:
            if value == 2:
                msg = "boom"
                raise RuntimeError(msg)
            return value

        with pytest.raises(RuntimeError, match="boom"):
            await gather_bounded(_fail_on_two, range(4), max_workers=2)

    async def test_rejects_invalid_worker_count(self) -> None:
        with pytest.raises(ValueError, match="max_workers"):
            await gather_bounded(str, [1], max_workers=0)
