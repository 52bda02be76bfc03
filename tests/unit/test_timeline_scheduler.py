"""Unit tests for TimelineScheduler"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from advice_widget.config import DEFAULT_SNAPSHOT_ADVICE
from advice_widget.models.advice import AdviceFetchResult, AdvicePayload
from advice_widget.services.advice_cache import AdviceCache
from advice_widget.services.timeline_scheduler import TimelineScheduler

FIFTEEN_MINUTES = timedelta(minutes=15)


def ok(slip_id: int, advice: str) -> AdviceFetchResult:
    return AdviceFetchResult(
        success=True,
        slip=AdvicePayload(id=slip_id, advice=advice),
        status=200,
        fetch_duration_ms=1.0,
    )


def failed() -> AdviceFetchResult:
    return AdviceFetchResult(
        success=False, status=None, error_message="ConnectError", fetch_duration_ms=1.0
    )


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 28, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


class TestTimelineScheduler:
    """Test cache/refresh/timeline behavior"""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def fetcher(self):
        return MagicMock()

    @pytest.fixture
    def cache(self, clock):
        return AdviceCache(clock=clock)

    @pytest.fixture
    def scheduler(self, fetcher, cache, clock):
        return TimelineScheduler(
            fetcher=fetcher, cache=cache, clock=clock, refresh_interval=FIFTEEN_MINUTES
        )

    def test_cache_hit_skips_fetch(self, scheduler, fetcher, cache):
        cache.store("X", cache.begin())

        decision = scheduler.schedule()

        assert len(decision.entries) == 1
        assert decision.entries[0].advice == "X"
        assert decision.cache_hit is True
        fetcher.fetch.assert_not_called()

    def test_cache_miss_fetches_and_caches(self, scheduler, fetcher, cache):
        fetcher.fetch.return_value = ok(1, "Y")

        first = scheduler.schedule()
        second = scheduler.schedule()

        assert first.entries[0].advice == "Y"
        assert first.cache_hit is False
        assert second.entries[0].advice == "Y"
        assert second.cache_hit is True
        assert cache.get() == "Y"
        fetcher.fetch.assert_called_once()

    def test_fetch_failure_renders_placeholder_and_retries(self, scheduler, fetcher, cache):
        fetcher.fetch.return_value = failed()

        decision = scheduler.schedule()

        assert [e.advice for e in decision.entries] == ["..."]
        assert cache.get() is None

        fetcher.fetch.return_value = ok(2, "Z")
        decision = scheduler.schedule()

        assert decision.entries[0].advice == "Z"
        assert fetcher.fetch.call_count == 2

    def test_invalidate_forces_new_fetch(self, scheduler, fetcher, cache):
        cache.store("Old", cache.begin())
        fetcher.fetch.return_value = ok(3, "New")

        ack = scheduler.invalidate()
        decision = scheduler.schedule()

        assert ack.invalidated is True
        assert decision.entries[0].advice == "New"
        assert cache.get() == "New"

    def test_invalidate_does_not_fetch(self, scheduler, fetcher):
        scheduler.invalidate()

        fetcher.fetch.assert_not_called()

    def test_next_refresh_is_entry_time_plus_interval(self, scheduler, fetcher, clock):
        fetcher.fetch.return_value = ok(1, "Y")

        decision = scheduler.schedule()

        assert decision.entries[0].timestamp == clock.now
        assert decision.next_refresh_at == clock.now + FIFTEEN_MINUTES

    def test_next_refresh_for_placeholder_entry(self, scheduler, fetcher, clock):
        fetcher.fetch.return_value = failed()

        decision = scheduler.schedule()

        assert decision.next_refresh_at == decision.entries[-1].timestamp + FIFTEEN_MINUTES

    def test_entry_timestamps_do_not_go_backwards(self, scheduler, fetcher, clock):
        fetcher.fetch.return_value = ok(1, "Y")

        first = scheduler.schedule()
        clock.now += timedelta(minutes=15)
        second = scheduler.schedule()

        assert second.entries[0].timestamp >= first.entries[0].timestamp

    @pytest.mark.parametrize("cached", [None, "X"])
    def test_snapshot_is_pure(self, scheduler, fetcher, cache, clock, cached):
        if cached is not None:
            cache.store(cached, cache.begin())
        generation = cache.generation

        entry = scheduler.snapshot()

        assert entry.advice == DEFAULT_SNAPSHOT_ADVICE
        assert entry.timestamp == clock.now
        assert cache.get() == cached
        assert cache.generation == generation
        fetcher.fetch.assert_not_called()

    def test_placeholder_matches_snapshot(self, scheduler):
        assert scheduler.placeholder() == scheduler.snapshot()

    def test_invalidate_during_fetch_is_not_lost(self, scheduler, fetcher, cache):
        """A refresh racing an in-flight fetch still forces the next fetch"""

        def fetch_racing_refresh():
            scheduler.invalidate()
            return ok(4, "Fetched mid-refresh")

        fetcher.fetch.side_effect = fetch_racing_refresh

        decision = scheduler.schedule()

        assert decision.entries[0].advice == "Fetched mid-refresh"
        assert cache.get() is None

        fetcher.fetch.side_effect = None
        fetcher.fetch.return_value = ok(5, "After refresh")

        assert scheduler.schedule().entries[0].advice == "After refresh"

    def test_max_age_expiry_refetches(self, fetcher, clock):
        cache = AdviceCache(max_age=timedelta(minutes=15), clock=clock)
        scheduler = TimelineScheduler(
            fetcher=fetcher, cache=cache, clock=clock, refresh_interval=FIFTEEN_MINUTES
        )
        fetcher.fetch.return_value = ok(1, "First")
        scheduler.schedule()

        clock.now += timedelta(minutes=15)
        fetcher.fetch.return_value = ok(2, "Second")

        assert scheduler.schedule().entries[0].advice == "Second"

    def test_end_to_end_refresh_cycle(self, scheduler, fetcher, clock):
        """Empty cache, fetch, manual refresh, fetch again"""
        fetcher.fetch.return_value = ok(7, "Eat well.")
        t1 = clock.now

        decision = scheduler.schedule()

        assert [(e.advice, e.timestamp) for e in decision.entries] == [("Eat well.", t1)]
        assert decision.next_refresh_at == t1 + FIFTEEN_MINUTES

        scheduler.invalidate()
        clock.now += timedelta(minutes=3)
        t2 = clock.now
        fetcher.fetch.return_value = ok(8, "Sleep more.")

        decision = scheduler.schedule()

        assert [(e.advice, e.timestamp) for e in decision.entries] == [("Sleep more.", t2)]
        assert decision.next_refresh_at == t2 + FIFTEEN_MINUTES
