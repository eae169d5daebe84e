"""Monthly rollup of activity counters into append-only snapshot ledgers"""
import logging
import time
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Tuple

from manga_ledger.accumulator import ActivityAccumulator
from manga_ledger.errors import NotFoundError, RollupTimeoutError
from manga_ledger.holdings import HoldingsTracker
from manga_ledger.models.ledger import MonthlyCreatorSnapshot, MonthlyInvestorSnapshot
from manga_ledger.registry import RoleRegistry

logger = logging.getLogger(__name__)

Emit = Callable[[str, Dict[str, Any]], None]


class RollupEngine:
    """
    Joins registry, accumulator and holdings data into per-period rows.

    Every row of a rollup is built before any is appended, so a failing
    rollup leaves the period ledgers untouched. Re-running a period appends
    duplicate rows.
    """

    def __init__(self, creators: RoleRegistry, investors: RoleRegistry,
                 accumulator: ActivityAccumulator, holdings: HoldingsTracker,
                 emit: Emit, time_budget: Optional[float] = None):
        self.creators = creators
        self.investors = investors
        self.accumulator = accumulator
        self.holdings = holdings
        self.emit = emit
        self.time_budget = time_budget
        self._creator_rows: Dict[int, List[MonthlyCreatorSnapshot]] = defaultdict(list)
        self._investor_rows: Dict[int, List[MonthlyInvestorSnapshot]] = defaultdict(list)
        self._periods: Dict[int, int] = {}

    def _creator_row(self, creator: str, period: int, timestamp: int) -> MonthlyCreatorSnapshot:
        monthly = self.accumulator.creator_monthly(creator, period)
        totals = self.accumulator.creator_totals(creator)
        return MonthlyCreatorSnapshot(
            creator=creator,
            period=period,
            monthly_published=monthly.published,
            monthly_acquired=monthly.acquired,
            total_published=totals.published,
            total_acquired=totals.acquired,
            total_held=self.holdings.current_held_by_creator(creator),
            timestamp=timestamp
        )

    def _investor_row(self, investor: str, period: int, timestamp: int) -> MonthlyInvestorSnapshot:
        monthly = self.accumulator.investor_monthly(investor, period)
        totals = self.accumulator.investor_totals(investor)
        return MonthlyInvestorSnapshot(
            investor=investor,
            period=period,
            monthly_acquired=monthly.acquired,
            total_acquired=totals.acquired,
            total_held=self.holdings.current_held_by_investor(investor),
            timestamp=timestamp
        )

    def _check_budget(self, started: float, period: int) -> None:
        if self.time_budget is None:
            return
        elapsed = time.monotonic() - started
        if elapsed > self.time_budget:
            raise RollupTimeoutError(
                f"Rollup for {period} exceeded its {self.time_budget}s budget after {elapsed:.2f}s"
            )

    def build(self, period: int, timestamp: int) -> Tuple[List[MonthlyCreatorSnapshot], List[MonthlyInvestorSnapshot]]:
        """Compute the rows a rollup would append, without appending them"""
        started = time.monotonic()
        creator_rows = []
        investor_rows = []

        with self.holdings.balance_source.pinned():
            for creator in self.creators:
                creator_rows.append(self._creator_row(creator, period, timestamp))
                self._check_budget(started, period)
            for investor in self.investors:
                investor_rows.append(self._investor_row(investor, period, timestamp))
                self._check_budget(started, period)

        return creator_rows, investor_rows

    def rollup(self, period: int, timestamp: int,
               persist: Optional[Callable[[List[MonthlyCreatorSnapshot], List[MonthlyInvestorSnapshot]], None]] = None
               ) -> Tuple[List[MonthlyCreatorSnapshot], List[MonthlyInvestorSnapshot]]:
        """
        Snapshot every registered creator and investor into the period ledger.

        Args:
            period: YYYYMM key the rows are filed under
            timestamp: Clock reading stamped on every row
            persist: Called with the built rows before they are appended;
                if it raises, nothing is appended

        Returns:
            Tuple of (creator rows, investor rows) appended by this call

        Raises:
            RollupTimeoutError: If the time budget ran out
            BalanceSourceError: If the balance oracle failed
        """
        try:
            creator_rows, investor_rows = self.build(period, timestamp)
            if persist is not None:
                persist(creator_rows, investor_rows)
        except Exception as e:
            logger.error(f"Rollup for period {period} aborted: {e}")
            raise

        self._creator_rows[period].extend(creator_rows)
        self._investor_rows[period].extend(investor_rows)
        self._periods[period] = self._periods.get(period, 0) + 1

        for row in creator_rows:
            self.emit('MonthlyCreatorDataUploaded', dict(row.__dict__))
        for row in investor_rows:
            self.emit('MonthlyInvestorDataUploaded', dict(row.__dict__))
        self.emit('MonthlyDataUploaded', {
            'period': period,
            'creator_count': len(self.creators),
            'investor_count': len(self.investors),
        })

        logger.info(
            f"Rolled up period {period}: {len(creator_rows)} creators, {len(investor_rows)} investors"
        )
        return creator_rows, investor_rows

    def clear(self, period: int) -> int:
        """Drop every row of a period; returns how many were removed"""
        removed = len(self._creator_rows.pop(period, [])) + len(self._investor_rows.pop(period, []))
        self._periods.pop(period, None)
        return removed

    def has_rollup(self, period: int) -> bool:
        return period in self._periods

    def rollup_count(self, period: int) -> int:
        """How many rollups have appended to this period since it was last cleared"""
        return self._periods.get(period, 0)

    def creator_rows(self, period: int) -> List[MonthlyCreatorSnapshot]:
        return list(self._creator_rows.get(period, []))

    def investor_rows(self, period: int) -> List[MonthlyInvestorSnapshot]:
        return list(self._investor_rows.get(period, []))

    def creator_row(self, period: int, creator: str) -> MonthlyCreatorSnapshot:
        for row in self._creator_rows.get(period, []):
            if row.creator == creator:
                return row
        raise NotFoundError('creator', creator, period)

    def investor_row(self, period: int, investor: str) -> MonthlyInvestorSnapshot:
        for row in self._investor_rows.get(period, []):
            if row.investor == investor:
                return row
        raise NotFoundError('investor', investor, period)
