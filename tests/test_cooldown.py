"""
Tests for the CooldownCache.
"""

import threading
from datetime import datetime, timedelta

from drivetemp.detection.cooldown import CooldownCache, build_cooldown_key
from drivetemp.models.alerts import AlertType

NOW = datetime(2025, 1, 15, 12, 0, 0)
WINDOW = timedelta(minutes=60)
KEY = ("nas01", "WD-1", "warning")


class TestCooldownCache:
    """Test CooldownCache acquire, release and clearing."""

    def test_key_format(self):
        assert build_cooldown_key("nas01", "WD-1", AlertType.CRITICAL) == ("nas01", "WD-1", "critical")

    def test_first_acquire_succeeds(self):
        cache = CooldownCache()
        key = build_cooldown_key("nas01", "WD-1", AlertType.WARNING)

        assert cache.try_acquire(key, NOW, WINDOW) == (True, None)
        assert key in cache
        assert cache.get(key) == NOW

    def test_within_window_suppressed(self):
        cache = CooldownCache()
        cache.try_acquire(KEY, NOW, WINDOW)

        acquired, previous = cache.try_acquire(KEY, NOW + timedelta(minutes=59), WINDOW)

        assert not acquired
        assert previous == NOW
        assert cache.get(KEY) == NOW

    def test_after_window_acquired(self):
        cache = CooldownCache()
        cache.try_acquire(KEY, NOW, WINDOW)

        acquired, previous = cache.try_acquire(KEY, NOW + WINDOW, WINDOW)

        assert acquired
        assert previous == NOW

    def test_release_restores_previous(self):
        cache = CooldownCache()
        cache.try_acquire(KEY, NOW, WINDOW)
        later = NOW + timedelta(hours=2)
        _, previous = cache.try_acquire(KEY, later, WINDOW)

        cache.release(KEY, later, previous)

        assert cache.get(KEY) == NOW

    def test_release_removes_new_entry(self):
        cache = CooldownCache()
        _, previous = cache.try_acquire(KEY, NOW, WINDOW)

        cache.release(KEY, NOW, previous)

        assert KEY not in cache

    def test_release_ignores_newer_reservation(self):
        cache = CooldownCache()
        cache.try_acquire(KEY, NOW, WINDOW)
        newer = NOW + timedelta(hours=3)
        cache.try_acquire(KEY, newer, WINDOW)

        cache.release(KEY, NOW, None)

        assert cache.get(KEY) == newer

    def test_clear_drive_only_touches_that_drive(self):
        cache = CooldownCache()
        for alert_type in (AlertType.WARNING, AlertType.CRITICAL):
            cache.try_acquire(build_cooldown_key("nas01", "A", alert_type), NOW, WINDOW)
        cache.try_acquire(build_cooldown_key("nas01", "B", AlertType.WARNING), NOW, WINDOW)

        assert cache.clear_drive("nas01", "A") == 2
        assert len(cache) == 1

    def test_clear_drive_with_colon_in_serial(self):
        cache = CooldownCache()
        cache.try_acquire(build_cooldown_key("nas", "WD", AlertType.WARNING), NOW, WINDOW)
        kept = build_cooldown_key("nas", "WD:2", AlertType.WARNING)
        cache.try_acquire(kept, NOW, WINDOW)

        assert cache.clear_drive("nas", "WD") == 1
        assert kept in cache

    def test_reset(self):
        cache = CooldownCache()
        cache.try_acquire(("nas01", "a", "warning"), NOW, WINDOW)
        cache.try_acquire(("nas01", "b", "warning"), NOW, WINDOW)

        cache.reset()

        assert len(cache) == 0

    def test_concurrent_acquire_single_winner(self):
        """Only one of many threads racing for a key acquires it."""
        cache = CooldownCache()
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(cache.try_acquire(KEY, NOW, WINDOW)[0])

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(True) == 1


class TestRecoveryClaim:
    """Test the per-drive recovery claim."""

    def test_second_claim_refused_until_released(self):
        cache = CooldownCache()

        assert cache.try_claim_recovery("nas01", "WD-1") is True
        assert cache.try_claim_recovery("nas01", "WD-1") is False
        assert cache.try_claim_recovery("nas01", "WD-2") is True

        cache.release_recovery("nas01", "WD-1")
        assert cache.try_claim_recovery("nas01", "WD-1") is True

    def test_release_without_claim_is_harmless(self):
        cache = CooldownCache()

        cache.release_recovery("nas01", "WD-1")

        assert cache.try_claim_recovery("nas01", "WD-1") is True
