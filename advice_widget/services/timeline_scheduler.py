"""Decides what the widget shows and when the host should ask again"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from advice_widget.config import config
from advice_widget.models.timeline import RefreshAck, RenderEntry, ScheduleDecision
from advice_widget.services.advice_cache import AdviceCache, utc_now
from advice_widget.services.advice_fetcher import AdviceFetcher

logger = logging.getLogger(__name__)


class TimelineScheduler:
    """Owns the advice cache and produces render entries for the host"""

    def __init__(
        self,
        fetcher: AdviceFetcher | None = None,
        cache: AdviceCache | None = None,
        clock: Callable[[], datetime] = utc_now,
        refresh_interval: timedelta | None = None,
    ) -> None:
        """
        Initialize scheduler

        Args:
            fetcher: Advice fetcher (created from config if None)
            cache: Cache to own (a fresh one from config if None)
            clock: Source of the current time
            refresh_interval: Offset of next_refresh_at (config value if None)
        """
        self.fetcher = fetcher or AdviceFetcher()
        if cache is None:
            max_age = (
                timedelta(minutes=config.cache_max_age_minutes)
                if config.cache_max_age_minutes
                else None
            )
            cache = AdviceCache(max_age=max_age, clock=clock)
        self.cache = cache
        self.clock = clock
        self.refresh_interval = refresh_interval or timedelta(
            minutes=config.refresh_interval_minutes
        )

    def invalidate(self) -> RefreshAck:
        """Clear the cache so the next schedule() fetches. Does not fetch."""
        self.cache.invalidate()
        logger.info("Advice cache invalidated")
        return RefreshAck(requested_at=self.clock())

    def snapshot(self) -> RenderEntry:
        """Fixed preview entry. Never touches the cache or the network."""
        return RenderEntry(timestamp=self.clock(), advice=config.snapshot_advice)

    def placeholder(self) -> RenderEntry:
        """Entry shown before the host has any timeline"""
        return self.snapshot()

    def schedule(self) -> ScheduleDecision:
        """
        Produce the current timeline

        Fetches only when the cache is empty. Fetch failures degrade to the
        placeholder text and leave the cache empty, so the next call retries.

        Returns:
            ScheduleDecision: One entry and the next refresh instant
        """
        advice = self.cache.get()
        cache_hit = advice is not None

        if advice is None:
            generation = self.cache.begin()
            result = self.fetcher.fetch()
            if result.success and result.slip is not None:
                advice = result.slip.advice
                self.cache.store(advice, generation)
            else:
                logger.warning(f"Rendering placeholder, fetch failed: {result.error_message}")

        now = self.clock()
        entry = RenderEntry(timestamp=now, advice=advice or config.placeholder_advice)

        return ScheduleDecision(
            entries=[entry],
            next_refresh_at=now + self.refresh_interval,
            cache_hit=cache_hit,
        )
