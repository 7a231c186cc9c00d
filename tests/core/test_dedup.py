"""Unit tests for watermark deduplication."""

from datetime import datetime, timedelta, timezone

from shakewatch.core.dedup import advance_watermark, is_after_watermark


T = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestIsAfterWatermark:
    """Tests for is_after_watermark()."""

    def test_no_watermark_accepts_anything(self):
        """A subscriber never notified accepts any event."""
        assert is_after_watermark(T, None)

    def test_newer_event_accepted(self):
        assert is_after_watermark(T + timedelta(seconds=1), T)

    def test_equal_time_rejected(self):
        """Comparison is strict: the same instant is a repeat."""
        assert not is_after_watermark(T, T)

    def test_older_event_rejected(self):
        assert not is_after_watermark(T - timedelta(minutes=5), T)


class TestAdvanceWatermark:
    """Tests for advance_watermark()."""

    def test_first_notification_sets_watermark(self):
        assert advance_watermark(None, T) == T

    def test_moves_forward(self):
        later = T + timedelta(minutes=1)
        assert advance_watermark(T, later) == later

    def test_never_moves_backwards(self):
        assert advance_watermark(T, T - timedelta(hours=1)) == T
