"""Tests for elapsed-time accounting and the ticker."""

import asyncio

import pytest

from therapy_session.engine.clock import ElapsedClock, Ticker


class TestElapsedClock:
    """Test timestamp-based elapsed time."""

    def test_zero_before_start(self, clock, fake_time):
        """Nothing elapses before start."""
        fake_time.advance(100)
        assert clock.elapsed_seconds() == 0

    def test_counts_while_running(self, clock, fake_time):
        """Elapsed follows wall time while running, floored."""
        clock.start()
        fake_time.advance(12.7)
        assert clock.elapsed_seconds() == 12

    def test_frozen_while_paused(self, clock, fake_time):
        """Paused intervals do not count."""
        clock.start()
        fake_time.advance(10)
        clock.pause()
        fake_time.advance(5)
        assert clock.elapsed_seconds() == 10
        clock.resume()
        fake_time.advance(5)
        assert clock.elapsed_seconds() == 15

    def test_repeated_pause_cycles(self, clock, fake_time):
        """Several pause cycles accumulate correctly."""
        clock.start()
        for _ in range(3):
            fake_time.advance(4)
            clock.pause()
            fake_time.advance(100)
            clock.resume()
        assert clock.elapsed_seconds() == 12

    def test_stop_while_running(self, clock, fake_time):
        """Stopping freezes elapsed for good."""
        clock.start()
        fake_time.advance(30)
        clock.stop()
        fake_time.advance(30)
        assert clock.elapsed_seconds() == 30

    def test_stop_while_paused(self, clock, fake_time):
        """Stopping a paused clock keeps the paused value."""
        clock.start()
        fake_time.advance(8)
        clock.pause()
        fake_time.advance(50)
        clock.stop()
        assert clock.elapsed_seconds() == 8

    def test_missed_readings_do_not_drift(self, clock, fake_time):
        """Reading rarely gives the same answer as reading every second."""
        clock.start()
        fake_time.advance(3600)
        assert clock.elapsed_seconds() == 3600

    def test_never_decreases(self, fake_time):
        """A time source stepping backwards cannot reduce elapsed time."""
        clock = ElapsedClock(time_source=fake_time)
        clock.start()
        fake_time.advance(20)
        assert clock.elapsed_seconds() == 20
        fake_time.advance(-5)
        assert clock.elapsed_seconds() == 20

    def test_pause_and_resume_are_idempotent(self, clock, fake_time):
        """Double pause or resume does not double count."""
        clock.start()
        fake_time.advance(5)
        clock.pause()
        clock.pause()
        fake_time.advance(5)
        clock.resume()
        clock.resume()
        fake_time.advance(5)
        assert clock.elapsed_seconds() == 10


class TestTicker:
    """Test the asyncio tick source."""

    def test_interval_must_be_positive(self):
        """Zero or negative intervals are rejected."""
        with pytest.raises(ValueError):
            Ticker(0)

    def test_start_requires_running_loop(self):
        """Ticking needs the host's event loop."""
        ticker = Ticker(1.0)
        with pytest.raises(RuntimeError):
            ticker.start()
        assert not ticker.running

    @pytest.mark.asyncio
    async def test_ticks_until_stopped(self):
        """Callbacks fire repeatedly and stop after stop()."""
        ticks = []
        ticker = Ticker(0.01, on_tick=lambda: ticks.append(1))
        ticker.start()
        assert ticker.running
        await asyncio.sleep(0.08)
        ticker.stop()
        count = len(ticks)
        assert count >= 2
        await asyncio.sleep(0.03)
        assert len(ticks) == count
        assert not ticker.running

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self):
        """Starting twice keeps a single task."""
        ticks = []
        ticker = Ticker(0.01, on_tick=lambda: ticks.append(1))
        ticker.start()
        task = ticker._task
        ticker.start()
        assert ticker._task is task
        ticker.stop()

    @pytest.mark.asyncio
    async def test_failing_callback_keeps_ticking(self):
        """A raising callback is logged and the ticker keeps going."""
        calls = []

        def explode():
            calls.append(1)
            raise RuntimeError("boom")

        ticker = Ticker(0.01, on_tick=explode)
        ticker.start()
        await asyncio.sleep(0.06)
        ticker.stop()
        assert len(calls) >= 2
