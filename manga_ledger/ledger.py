"""Creator/investor activity ledger"""
import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from manga_ledger.accumulator import ActivityAccumulator
from manga_ledger.address import normalize_address
from manga_ledger.errors import InvalidArgumentError, PreconditionError, UnauthorizedError
from manga_ledger.holdings import HoldingsTracker
from manga_ledger.models.ledger import (
    CreatorStats,
    InvestorStats,
    LedgerEvent,
    MonthlyCreatorSnapshot,
    MonthlyInvestorSnapshot,
    TokenHolding,
)
from manga_ledger.period import current_period, is_end_of_month, validate_period
from manga_ledger.registry import RoleRegistry
from manga_ledger.rollup import RollupEngine
from manga_ledger.services.balances import BalanceSource
from manga_ledger.services.storage import StorageService

logger = logging.getLogger(__name__)

Rows = Tuple[List[MonthlyCreatorSnapshot], List[MonthlyInvestorSnapshot]]


def _check_token_id(token_id: int) -> int:
    if isinstance(token_id, bool) or not isinstance(token_id, int) or token_id < 0:
        raise InvalidArgumentError(f"Token id must be a non-negative integer, got {token_id!r}")
    return token_id


class ActivityLedger:
    """
    Records publish and acquire activity for creators and investors and
    rolls it up into monthly snapshot ledgers.

    Two independently transferable identities guard mutations: the owner
    administers registries, rollups and the platform address; the platform
    operator (or the owner) records activity. Every operation validates its
    caller and arguments before its first write, so a failed call changes
    nothing.
    """

    def __init__(self, owner: str, platform: str, balance_source: BalanceSource,
                 clock: Callable[[], float] = time.time,
                 rollup_time_budget: Optional[float] = None,
                 storage: Optional[StorageService] = None):
        self.owner = normalize_address(owner)
        self.platform = normalize_address(platform)
        self.clock = clock
        self.storage = storage
        self.events: List[LedgerEvent] = []
        self._subscribers: List[Callable[[LedgerEvent], None]] = []

        self.creator_registry = RoleRegistry('creator')
        self.investor_registry = RoleRegistry('investor')
        self.accumulator = ActivityAccumulator()
        self.holdings = HoldingsTracker(balance_source)
        self.engine = RollupEngine(
            self.creator_registry,
            self.investor_registry,
            self.accumulator,
            self.holdings,
            emit=self._emit,
            time_budget=rollup_time_budget
        )

    # Notifications

    def subscribe(self, callback: Callable[[LedgerEvent], None]) -> None:
        self._subscribers.append(callback)

    def _emit(self, name: str, payload: Dict[str, Any]) -> None:
        event = LedgerEvent(name=name, payload=payload, timestamp=self.now())
        self.events.append(event)
        logger.info(f"{name}: {payload}")
        # Emitted after state changed; a failing subscriber must not fail the call
        for callback in self._subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Subscriber {callback!r} failed on {name}: {e}")

    # Clock

    def now(self) -> int:
        return int(self.clock())

    def current_period(self) -> int:
        return current_period(self.now())

    def is_end_of_month(self) -> bool:
        return is_end_of_month(self.now())

    # Authorization

    def _only_owner(self, caller: str) -> None:
        if not isinstance(caller, str) or caller.lower() != self.owner:
            raise UnauthorizedError(f"Caller {caller} is not the owner")

    def _only_authorized(self, caller: str) -> None:
        if not isinstance(caller, str) or caller.lower() not in (self.platform, self.owner):
            raise UnauthorizedError(f"Caller {caller} is neither the platform nor the owner")

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self._only_owner(caller)
        new_owner = normalize_address(new_owner)
        previous, self.owner = self.owner, new_owner
        self._emit('OwnershipTransferred', {'previous_owner': previous, 'new_owner': new_owner})

    def set_platform(self, caller: str, new_platform: str) -> None:
        self._only_owner(caller)
        new_platform = normalize_address(new_platform)
        previous, self.platform = self.platform, new_platform
        self._emit('PlatformUpdated', {'previous_platform': previous, 'new_platform': new_platform})

    # Identity registry

    def register_creator(self, caller: str, creator: str) -> bool:
        self._only_owner(caller)
        return self.creator_registry.add(creator)

    def register_investor(self, caller: str, investor: str) -> bool:
        self._only_owner(caller)
        return self.investor_registry.add(investor)

    def add_creators(self, caller: str, creators: Iterable[str]) -> List[str]:
        """Register a batch of creators, skipping zero, malformed and known addresses"""
        self._only_owner(caller)
        return self.creator_registry.add_many(creators)

    def add_investors(self, caller: str, investors: Iterable[str]) -> List[str]:
        """Register a batch of investors, skipping zero, malformed and known addresses"""
        self._only_owner(caller)
        return self.investor_registry.add_many(investors)

    def remove_creator(self, caller: str, creator: str) -> None:
        """Revoke the creator role; counters, tokens and past snapshots are kept"""
        self._only_owner(caller)
        self.creator_registry.remove(creator)

    def remove_investor(self, caller: str, investor: str) -> None:
        """Revoke the investor role; counters, tokens and past snapshots are kept"""
        self._only_owner(caller)
        self.investor_registry.remove(investor)

    def creators(self) -> List[str]:
        return self.creator_registry.members()

    def investors(self) -> List[str]:
        return self.investor_registry.members()

    def is_creator(self, address: str) -> bool:
        return address in self.creator_registry

    def is_investor(self, address: str) -> bool:
        return address in self.investor_registry

    # Activity recording

    def record_publish(self, caller: str, creator: str, published: int, acquired: int) -> None:
        self._only_authorized(caller)
        creator = normalize_address(creator)
        period = self.current_period()

        self.accumulator.record_publish(creator, published, acquired, period)
        self.creator_registry.add(creator)
        self._emit('CreatorDataRecorded', {
            'creator': creator,
            'period': period,
            'published': published,
            'acquired': acquired,
        })

    def record_acquire(self, caller: str, investor: str, acquired: int) -> None:
        self._only_authorized(caller)
        investor = normalize_address(investor)
        period = self.current_period()

        self.accumulator.record_acquire(investor, acquired, period)
        self.investor_registry.add(investor)
        self._emit('InvestorDataRecorded', {
            'investor': investor,
            'period': period,
            'acquired': acquired,
        })

    def record_ownership(self, caller: str, token_id: int, owner: str) -> bool:
        self._only_authorized(caller)
        return self.holdings.record_ownership(_check_token_id(token_id), normalize_address(owner))

    def associate_creator_token(self, caller: str, creator: str, token_id: int) -> None:
        self._only_authorized(caller)
        token_id = _check_token_id(token_id)
        self.holdings.associate_creator_token(normalize_address(creator), token_id)

    def associate_investor_token(self, caller: str, investor: str, token_id: int) -> None:
        self._only_authorized(caller)
        token_id = _check_token_id(token_id)
        self.holdings.associate_investor_token(normalize_address(investor), token_id)

    # Rollups

    def _persist(self, creator_rows: List[MonthlyCreatorSnapshot],
                 investor_rows: List[MonthlyInvestorSnapshot]) -> None:
        self.storage.store_rollup(creator_rows, investor_rows)

    def _rollup(self, period: int) -> Rows:
        persist = self._persist if self.storage is not None else None
        return self.engine.rollup(period, self.now(), persist=persist)

    def upload_monthly_data(self, caller: str) -> Rows:
        """
        Roll up the current period.

        Raises:
            PreconditionError: Outside the last two days of the 30-day cycle
        """
        self._only_owner(caller)
        if not self.is_end_of_month():
            raise PreconditionError("Monthly upload is only allowed at the end of the month")
        return self._rollup(self.current_period())

    def force_upload_monthly_data(self, caller: str) -> Rows:
        """Roll up the current period without the end-of-month gate"""
        self._only_owner(caller)
        return self._rollup(self.current_period())

    def upload_data_for_month(self, caller: str, period: int) -> Rows:
        """
        Roll up an explicit period.

        Not idempotent: running it twice for a period appends duplicate rows.
        Use has_rollup() to check first.
        """
        self._only_owner(caller)
        return self._rollup(validate_period(period))

    def clear_monthly_data(self, caller: str, period: int) -> int:
        """Irreversibly drop every snapshot row of a period"""
        self._only_owner(caller)
        validate_period(period)
        if self.storage is not None:
            self.storage.delete_period(period)
        removed = self.engine.clear(period)
        self._emit('MonthlyDataCleared', {'period': period, 'rows_removed': removed})
        return removed

    def has_rollup(self, period: int) -> bool:
        return self.engine.has_rollup(period)

    # Snapshot reads

    def get_creator_snapshot(self, period: int, creator: str) -> MonthlyCreatorSnapshot:
        """
        Raises:
            NotFoundError: If the period has no row for this creator
        """
        return self.engine.creator_row(period, normalize_address(creator))

    def get_investor_snapshot(self, period: int, investor: str) -> MonthlyInvestorSnapshot:
        """
        Raises:
            NotFoundError: If the period has no row for this investor
        """
        return self.engine.investor_row(period, normalize_address(investor))

    def get_creator_snapshots(self, period: int) -> List[MonthlyCreatorSnapshot]:
        return self.engine.creator_rows(period)

    def get_investor_snapshots(self, period: int) -> List[MonthlyInvestorSnapshot]:
        return self.engine.investor_rows(period)

    def get_snapshots_for_periods(self, periods: Iterable[int]) -> Dict[int, Rows]:
        return {
            period: (self.engine.creator_rows(period), self.engine.investor_rows(period))
            for period in periods
        }

    # Stat reads

    def get_creator_stats(self, creator: str) -> CreatorStats:
        creator = normalize_address(creator)
        totals = self.accumulator.creator_totals(creator)
        return CreatorStats(
            creator=creator,
            total_published=totals.published,
            total_acquired=totals.acquired,
            current_held=self.holdings.current_held_by_creator(creator),
            token_ids=self.holdings.creator_tokens(creator)
        )

    def get_investor_stats(self, investor: str) -> InvestorStats:
        investor = normalize_address(investor)
        totals = self.accumulator.investor_totals(investor)
        return InvestorStats(
            investor=investor,
            total_acquired=totals.acquired,
            current_held=self.holdings.current_held_by_investor(investor),
            token_ids=self.holdings.investor_tokens(investor)
        )

    def get_creator_monthly_stats(self, creator: str, period: int) -> Tuple[int, int]:
        """Returns (published, acquired) for the period"""
        counts = self.accumulator.creator_monthly(normalize_address(creator), period)
        return counts.published, counts.acquired

    def get_investor_monthly_stats(self, investor: str, period: int) -> int:
        """Returns acquired count for the period"""
        return self.accumulator.investor_monthly(normalize_address(investor), period).acquired

    def token_owners(self, token_id: int) -> List[str]:
        return self.holdings.token_owners(token_id)

    def token_holdings(self, token_id: int) -> List[TokenHolding]:
        return self.holdings.token_holdings(token_id)
