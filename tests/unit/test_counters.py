"""Tests for session counters, formatting and the duration ticker."""

import asyncio

import pytest

from pedometer.counters import (
    DurationTicker,
    SessionCounters,
    format_distance,
    format_duration,
)


class TestFormatting:
    """Test display formatting helpers."""

    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (0, "00:00:00"),
            (59, "00:00:59"),
            (61, "00:01:01"),
            (3661, "01:01:01"),
            (360000, "100:00:00"),
        ],
    )
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected

    def test_format_distance(self):
        assert format_distance(0.0) == "0.00"
        assert format_distance(0.0038) == "0.00"
        assert format_distance(0.76) == "0.76"
        assert format_distance(1.2345) == "1.23"


class TestSessionCounters:
    """Test step and duration counters."""

    def test_initial_values(self):
        counters = SessionCounters()
        assert counters.step_count == 0
        assert counters.duration_seconds == 0
        assert counters.distance_km == 0.0

    def test_distance_follows_steps(self):
        counters = SessionCounters(step_length_m=0.76)
        for expected in range(1, 2001):
            assert counters.record_step() == expected
            assert counters.distance_km == expected * 0.76 / 1000

    def test_tick(self):
        counters = SessionCounters()
        assert counters.tick() == 1
        assert counters.tick() == 2
        assert counters.duration_seconds == 2

    def test_reset(self):
        counters = SessionCounters()
        counters.record_step()
        counters.tick()

        counters.reset()
        assert counters.step_count == 0
        assert counters.duration_seconds == 0
        assert counters.distance_km == 0.0


class TestDurationTicker:
    """Test the interval ticker."""

    @pytest.mark.asyncio()
    async def test_ticks_while_running(self):
        ticks = []
        ticker = DurationTicker(lambda: ticks.append(1), interval=0.01)

        ticker.start()
        assert ticker.running is True
        await asyncio.sleep(0.1)
        ticker.stop()

        assert ticker.running is False
        assert len(ticks) >= 1

    @pytest.mark.asyncio()
    async def test_no_ticks_after_stop(self):
        ticks = []
        ticker = DurationTicker(lambda: ticks.append(1), interval=0.01)

        ticker.start()
        await asyncio.sleep(0.05)
        ticker.stop()
        await asyncio.sleep(0)
        frozen = len(ticks)

        await asyncio.sleep(0.05)
        assert len(ticks) == frozen

    @pytest.mark.asyncio()
    async def test_double_start_keeps_single_ticker(self):
        ticker = DurationTicker(lambda: None, interval=10)

        ticker.start()
        task = ticker._task
        ticker.start()

        assert ticker._task is task
        ticker.stop()

    @pytest.mark.asyncio()
    async def test_stop_without_start(self):
        ticker = DurationTicker(lambda: None)
        ticker.stop()
        assert ticker.running is False
