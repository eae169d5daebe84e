"""Domain models for creator and investor activity"""
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class ActivityCounts:
    """Published/acquired counters for one address, lifetime or per period"""
    published: int = 0
    acquired: int = 0


@dataclass
class CreatorStats:
    """Lifetime view of a creator"""
    creator: str
    total_published: int
    total_acquired: int
    current_held: int
    token_ids: List[int] = field(default_factory=list)


@dataclass
class InvestorStats:
    """Lifetime view of an investor"""
    investor: str
    total_acquired: int
    current_held: int
    token_ids: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class MonthlyCreatorSnapshot:
    """Immutable creator row appended at rollup time"""
    creator: str
    period: int
    monthly_published: int
    monthly_acquired: int
    total_published: int
    total_acquired: int
    total_held: int
    timestamp: int


@dataclass(frozen=True)
class MonthlyInvestorSnapshot:
    """Immutable investor row appended at rollup time"""
    investor: str
    period: int
    monthly_acquired: int
    total_acquired: int
    total_held: int
    timestamp: int


@dataclass(frozen=True)
class TokenHolding:
    """An address ever recorded as owner of a token, with its live balance"""
    owner: str
    balance: int


@dataclass(frozen=True)
class LedgerEvent:
    """Notification emitted by a ledger operation"""
    name: str
    payload: Dict[str, Any]
    timestamp: int
