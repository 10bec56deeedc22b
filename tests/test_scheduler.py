"""Tests for frame-coalescing schedulers."""

from PyQt6.QtTest import QTest

from mothra_annotator.core.scheduler import FrameScheduler, LatestValueLatch


class TestFrameScheduler:
    """Tests for FrameScheduler."""

    def test_burst_runs_once(self, qapp):
        """Test many requests in one frame run the callback once."""
        calls = []
        scheduler = FrameScheduler(lambda: calls.append(1))

        for _ in range(10):
            scheduler.request()

        QTest.qWait(60)

        assert calls == [1]
        assert not scheduler.pending

    def test_request_after_tick_runs_again(self, qapp):
        """Test a new request after a tick schedules another run."""
        calls = []
        scheduler = FrameScheduler(lambda: calls.append(1))

        scheduler.request()
        scheduler.flush()
        scheduler.request()
        scheduler.flush()

        assert calls == [1, 1]

    def test_cancel(self, qapp):
        """Test a cancelled request never runs."""
        calls = []
        scheduler = FrameScheduler(lambda: calls.append(1))

        scheduler.request()
        scheduler.cancel()
        QTest.qWait(60)

        assert calls == []

    def test_flush_without_request(self, qapp):
        """Test flushing with nothing pending does nothing."""
        calls = []
        scheduler = FrameScheduler(lambda: calls.append(1))

        scheduler.flush()

        assert calls == []


class TestLatestValueLatch:
    """Tests for LatestValueLatch."""

    def test_only_latest_delivered(self, qapp):
        """Test intermediate values are dropped."""
        seen = []
        latch = LatestValueLatch(seen.append)

        latch.push(1)
        latch.push(2)
        latch.push(3)
        QTest.qWait(60)

        assert seen == [3]

    def test_none_is_a_value(self, qapp):
        """Test None can be pushed and delivered."""
        seen = []
        latch = LatestValueLatch(seen.append)

        latch.push("x")
        latch.push(None)
        latch.flush()

        assert seen == [None]

    def test_cancel_discards(self, qapp):
        """Test a cancelled value is never delivered."""
        seen = []
        latch = LatestValueLatch(seen.append)

        latch.push(1)
        latch.cancel()
        latch.flush()

        assert seen == []
        assert not latch.pending


class TestRestart:
    """Tests for FrameScheduler.restart."""

    def test_restart_postpones_tick(self, qapp):
        """Test restarting pushes the callback a full interval later."""
        calls = []
        scheduler = FrameScheduler(lambda: calls.append(1), interval_ms=200)

        scheduler.request()
        QTest.qWait(120)
        scheduler.restart()
        QTest.qWait(120)

        assert calls == []
        assert scheduler.pending

        QTest.qWait(250)

        assert calls == [1]

    def test_restart_then_flush(self, qapp):
        """Test a restarted callback can still be flushed."""
        calls = []
        scheduler = FrameScheduler(lambda: calls.append(1), interval_ms=1000)

        scheduler.restart()
        scheduler.restart()
        scheduler.flush()

        assert calls == [1]
