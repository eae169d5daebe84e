"""Lifetime and per-period activity counters"""
from collections import defaultdict
from typing import Dict, Tuple

from manga_ledger.errors import InvalidArgumentError
from manga_ledger.models.ledger import ActivityCounts


def _check_count(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidArgumentError(f"{name} must be a non-negative integer, got {value!r}")
    return value


class ActivityAccumulator:
    """
    Additive counters keyed by address and by (address, period).

    For creators "acquired" counts the author's share minted directly to
    them, not market purchases. Nothing is capped or cross-checked against
    real mints; callers are trusted.
    """

    def __init__(self):
        self._creator_totals: Dict[str, ActivityCounts] = defaultdict(ActivityCounts)
        self._creator_monthly: Dict[Tuple[str, int], ActivityCounts] = defaultdict(ActivityCounts)
        self._investor_totals: Dict[str, ActivityCounts] = defaultdict(ActivityCounts)
        self._investor_monthly: Dict[Tuple[str, int], ActivityCounts] = defaultdict(ActivityCounts)

    def record_publish(self, creator: str, published: int, acquired: int, period: int) -> None:
        _check_count("published", published)
        _check_count("acquired", acquired)

        for counts in (self._creator_totals[creator], self._creator_monthly[(creator, period)]):
            counts.published += published
            counts.acquired += acquired

    def record_acquire(self, investor: str, acquired: int, period: int) -> None:
        _check_count("acquired", acquired)

        for counts in (self._investor_totals[investor], self._investor_monthly[(investor, period)]):
            counts.acquired += acquired

    def creator_totals(self, creator: str) -> ActivityCounts:
        counts = self._creator_totals.get(creator, ActivityCounts())
        return ActivityCounts(counts.published, counts.acquired)

    def creator_monthly(self, creator: str, period: int) -> ActivityCounts:
        counts = self._creator_monthly.get((creator, period), ActivityCounts())
        return ActivityCounts(counts.published, counts.acquired)

    def investor_totals(self, investor: str) -> ActivityCounts:
        counts = self._investor_totals.get(investor, ActivityCounts())
        return ActivityCounts(counts.published, counts.acquired)

    def investor_monthly(self, investor: str, period: int) -> ActivityCounts:
        counts = self._investor_monthly.get((investor, period), ActivityCounts())
        return ActivityCounts(counts.published, counts.acquired)
