"""In-memory cache for the last fetched advice text"""

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AdviceCache:
    """
    Holds at most one advice text

    Writes are atomic replaces. Every invalidate() bumps a generation counter;
    a fetch records the generation with begin() before it starts and only
    stores its result if the generation is unchanged, so a refresh that lands
    mid-fetch is never overwritten.
    """

    def __init__(
        self,
        max_age: timedelta | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Args:
            max_age: Optional age after which the value reads as empty
            clock: Source of the current time
        """
        self.max_age = max_age
        self._clock = clock
        self._lock = threading.Lock()
        self._value: str | None = None
        self._stored_at: datetime | None = None
        self._generation = 0

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def stored_at(self) -> datetime | None:
        with self._lock:
            return self._stored_at

    def get(self) -> str | None:
        """Return the cached text, or None if empty or expired"""
        with self._lock:
            if self._value is None:
                return None
            if self.max_age is not None and self._stored_at is not None:
                if self._clock() - self._stored_at >= self.max_age:
                    logger.info("Cached advice expired")
                    return None
            return self._value

    def begin(self) -> int:
        """Generation to pass to store() once a fetch completes"""
        return self.generation

    def store(self, text: str, generation: int) -> bool:
        """
        Replace the cached text unless invalidated since begin()

        Returns:
            bool: True if the value was written
        """
        with self._lock:
            if generation != self._generation:
                logger.info("Cache invalidated during fetch, discarding fetched advice")
                return False
            self._value = text
            self._stored_at = self._clock()
            return True

    def invalidate(self) -> None:
        """Clear the cached text"""
        with self._lock:
            self._value = None
            self._stored_at = None
            self._generation += 1
