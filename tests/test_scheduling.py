import asyncio
import time

import pytest

import underbar as _
from underbar.combinators import Throttled
from underbar.errors import SchedulerUnavailableError

# Allowance for timer and clock resolution
TOLERANCE = 0.005


class TestDelay:
    """Test deferred invocation on the event loop"""

    @pytest.mark.asyncio
    async def test_runs_later_with_arguments(self, recorder):
        """delay returns immediately and calls fn(*args) after the wait"""
        result = _.delay(recorder, 20, "a", "b", sep="-")

        assert result is None, "delay is fire-and-forget"
        assert recorder.call_count == 0, "fn must not run synchronously"

        await asyncio.sleep(0.1)
        assert recorder.calls == [(("a", "b"), {"sep": "-"})], f"Unexpected calls: {recorder.calls}"

    @pytest.mark.asyncio
    async def test_wait_is_a_lower_bound(self):
        started = time.monotonic()
        fired = []

        _.delay(lambda: fired.append(time.monotonic()), 30)
        await asyncio.sleep(0.12)

        assert len(fired) == 1
        elapsed = fired[0] - started
        assert elapsed >= 0.03 - TOLERANCE, f"Ran after {elapsed:.3f}s, expected >= 0.03s"

    @pytest.mark.asyncio
    async def test_zero_wait_still_deferred(self, recorder):
        _.delay(recorder, 0)
        assert recorder.call_count == 0
        await asyncio.sleep(0.01)
        assert recorder.call_count == 1

    @pytest.mark.asyncio
    async def test_each_call_scheduled_independently(self):
        order = []
        _.delay(order.append, 40, "slow")
        _.delay(order.append, 5, "fast")
        await asyncio.sleep(0.12)
        assert sorted(order) == ["fast", "slow"]

    def test_requires_running_loop(self, recorder):
        with pytest.raises(SchedulerUnavailableError):
            _.delay(recorder, 10)

    def test_explicit_loop(self, recorder):
        loop = asyncio.new_event_loop()
        try:
            _.delay(recorder, 5, 1, loop=loop)
            loop.run_until_complete(asyncio.sleep(0.05))
        finally:
            loop.close()
        assert recorder.calls == [((1,), {})]

    def test_negative_wait_rejected(self, recorder):
        with pytest.raises(ValueError):
            _.delay(recorder, -1)


class TestThrottleSync:
    """Throttle behaviour that needs no event loop"""

    def test_leading_call_runs_immediately(self, make_recorder):
        fn = make_recorder(side_effect=lambda x: x * 2)
        throttled = _.throttle(fn, 1000)

        assert throttled(21) == 42
        assert fn.calls == [((21,), {})]

    def test_calls_inside_window_dropped_without_trailing(self, make_recorder):
        fn = make_recorder(side_effect=lambda x: x)
        throttled = _.throttle(fn, 1000, trailing=False)

        results = [throttled(1), throttled(2), throttled(3)]

        assert fn.call_count == 1, f"Expected 1 execution, got {fn.call_count}"
        assert results == [1, 1, 1], "Coalesced calls return the last result"

    def test_window_expiry_with_fake_clock(self, make_recorder):
        now = {"t": 100.0}
        fn = make_recorder(side_effect=lambda x: x)
        throttled = Throttled(fn, 500, trailing=False, clock=lambda: now["t"])

        throttled(1)
        now["t"] += 0.25
        throttled(2)
        now["t"] += 0.25
        throttled(3)

        assert [args for args, _kw in fn.calls] == [(1,), (3,)]

    def test_trailing_needs_loop(self, recorder):
        throttled = _.throttle(recorder, 1000)
        throttled()
        with pytest.raises(SchedulerUnavailableError):
            throttled()

    def test_invalid_configuration(self, recorder):
        with pytest.raises(ValueError):
            _.throttle(recorder, 100, leading=False, trailing=False)
        with pytest.raises(ValueError):
            _.throttle(recorder, -5)

    def test_method_binds_instance_with_own_window(self):
        def record_reading(self, value):
            self.readings.append(value)
            return f"{self.name}:{value}"

        class Sensor:
            def __init__(self, name):
                self.name = name
                self.readings = []

            read = _.throttle(record_reading, 1000, trailing=False)

        left, right = Sensor("left"), Sensor("right")

        assert left.read(1) == "left:1"
        assert left.read(2) == "left:1", "Second call is inside the window"
        assert right.read(3) == "right:3", "Each instance has its own window"
        assert left.readings == [1]
        assert right.readings == [3]
        assert left.read is left.read
        assert left.read.__name__ == "record_reading"

    def test_keeps_function_metadata(self):
        def handler():
            """Handle an event."""

        throttled = _.throttle(handler, 10)
        assert throttled.__name__ == "handler"
        assert throttled.__doc__ == "Handle an event."


class TestThrottleAsync:
    """Throttle coalescing on a running event loop"""

    @pytest.mark.asyncio
    async def test_leading_and_trailing(self):
        """Burst of calls: one immediate run, one trailing run with the latest args"""
        runs = []
        throttled = _.throttle(lambda x: runs.append((x, time.monotonic())), 50)

        throttled(1)
        throttled(2)
        throttled(3)
        assert [x for x, _t in runs] == [1]
        assert throttled.pending

        await asyncio.sleep(0.15)
        assert [x for x, _t in runs] == [1, 3], f"Unexpected runs: {runs}"
        assert not throttled.pending

        gap = runs[1][1] - runs[0][1]
        assert gap >= 0.05 - TOLERANCE, f"Executions only {gap:.3f}s apart"

    @pytest.mark.asyncio
    async def test_executions_never_closer_than_wait(self):
        stamps = []
        throttled = _.throttle(lambda: stamps.append(time.monotonic()), 30)

        for _i in range(12):
            throttled()
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.1)

        assert len(stamps) >= 2
        gaps = [b - a for a, b in zip(stamps, stamps[1:])]
        assert all(g >= 0.03 - TOLERANCE for g in gaps), f"Gaps too small: {gaps}"

    @pytest.mark.asyncio
    async def test_leading_false_defers_first_call(self, recorder):
        throttled = _.throttle(recorder, 30, leading=False)

        throttled("a")
        throttled("b")
        assert recorder.call_count == 0

        await asyncio.sleep(0.1)
        assert recorder.calls == [(("b",), {})]

    @pytest.mark.asyncio
    async def test_leading_false_defers_after_idle_window(self, recorder):
        """Once the window has passed, the next call is again trailing-only"""
        throttled = _.throttle(recorder, 30, leading=False)

        throttled("a")
        await asyncio.sleep(0.1)
        assert recorder.calls == [(("a",), {})]

        throttled("b")
        assert recorder.call_count == 1, f"Ran immediately: {recorder.calls}"
        assert throttled.pending

        await asyncio.sleep(0.1)
        assert recorder.calls == [(("a",), {}), (("b",), {})]

    @pytest.mark.asyncio
    async def test_returns_latest_result(self):
        throttled = _.throttle(lambda x: x * 10, 30)

        assert throttled(1) == 10
        assert throttled(2) == 10, "Coalesced call returns the previous result"
        await asyncio.sleep(0.1)
        assert throttled(3) == 30, "Window has expired, so the call runs immediately"

    @pytest.mark.asyncio
    async def test_cancel_drops_trailing_call(self, recorder):
        throttled = _.throttle(recorder, 30)

        throttled(1)
        throttled(2)
        throttled.cancel()
        assert not throttled.pending

        await asyncio.sleep(0.08)
        assert recorder.calls == [((1,), {})]

        throttled(3)
        assert recorder.calls[-1] == ((3,), {}), "After cancel the next call runs immediately"
