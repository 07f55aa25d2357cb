# src/depeg_guard/oracle/observation_log.py

# --- Built Ins  ---
from collections.abc import Iterator

# --- Installed  ---
from loguru import logger as log

# --- Local Application Imports ---
from depeg_guard.exceptions import EmptyLog, InvalidConfig, NonMonotonicTimestamp
from depeg_guard.models import Observation

_EMPTY_SLOT = Observation(timestamp=0, cumulative_tick=0, valid=False)


class ObservationLog:
    """
    Fixed-capacity ring buffer of price-integral samples for a single pool.

    Once full, every append overwrites the chronologically oldest slot, which
    is always the slot at `write_index`. Reads go through a logical view that
    starts at the oldest slot, so binary search stays correct after wraparound.
    """

    def __init__(self, capacity: int, pool_id: str = ""):
        if not isinstance(capacity, int) or capacity <= 0:
            raise InvalidConfig(f"Observation log capacity must be a positive int, got {capacity!r}")
        self.pool_id = pool_id
        self.capacity = capacity
        self.write_index = 0
        self.count = 0
        self._slots: list[Observation] = [_EMPTY_SLOT] * capacity

    def __len__(self) -> int:
        return self.count

    def __iter__(self) -> Iterator[Observation]:
        """Yields valid observations oldest first."""
        for i in range(self.count):
            yield self._at(i)

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    @property
    def oldest(self) -> Observation:
        if self.is_empty:
            raise EmptyLog(f"[{self.pool_id}] observation log is empty")
        return self._at(0)

    @property
    def newest(self) -> Observation:
        if self.is_empty:
            raise EmptyLog(f"[{self.pool_id}] observation log is empty")
        return self._at(self.count - 1)

    def _oldest_index(self) -> int:
        # Until the buffer wraps the oldest sample sits at 0; afterwards it is the next slot to overwrite.
        return self.write_index if self.count == self.capacity else 0

    def _at(self, logical_index: int) -> Observation:
        return self._slots[(self._oldest_index() + logical_index) % self.capacity]

    def append(self, timestamp: int, tick: int) -> Observation:
        """
        Records the pool tick in force from the previous sample until `timestamp`.
        Equal timestamps are allowed and consume a slot without moving the integral.
        """
        if self.is_empty:
            cumulative = tick * timestamp
        else:
            previous = self.newest
            elapsed = timestamp - previous.timestamp
            if elapsed < 0:
                raise NonMonotonicTimestamp(
                    f"[{self.pool_id}] timestamp {timestamp} is older than newest observation {previous.timestamp}"
                )
            cumulative = previous.cumulative_tick + tick * elapsed

        observation = Observation(timestamp=timestamp, cumulative_tick=cumulative, tick=tick)
        self._slots[self.write_index] = observation
        self.write_index = (self.write_index + 1) % self.capacity
        if self.count < self.capacity:
            self.count += 1
        log.debug(
            f"[{self.pool_id}] observation appended: ts={timestamp} tick={tick} "
            f"cumulative={cumulative} count={self.count}/{self.capacity}"
        )
        return observation

    def query_bracket(self, target_timestamp: int) -> tuple[Observation, Observation]:
        """
        Returns the chronological neighbours (before, after) of `target_timestamp`,
        with before.timestamp <= target < after.timestamp.

        Targets outside the recorded range collapse to the nearest end:
        before the oldest sample gives (oldest, oldest), at or past the newest
        gives (newest, newest).
        """
        if self.is_empty:
            raise EmptyLog(f"[{self.pool_id}] cannot bracket {target_timestamp}: observation log is empty")

        oldest, newest = self.oldest, self.newest
        if target_timestamp < oldest.timestamp:
            return oldest, oldest
        if target_timestamp >= newest.timestamp:
            return newest, newest

        # Find the first logical index whose timestamp is strictly after the target.
        lo, hi = 0, self.count - 1
        while lo < hi:
            mid = (lo + hi) // 2
            if self._at(mid).timestamp <= target_timestamp:
                lo = mid + 1
            else:
                hi = mid
        return self._at(lo - 1), self._at(lo)
