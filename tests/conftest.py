"""
Activity ledger test fixtures
"""

import pytest

from manga_ledger.ledger import ActivityLedger
from manga_ledger.period import DAY, EPOCH
from manga_ledger.services.balances import InMemoryBalanceSource

OWNER = "0x1111111111111111111111111111111111111111"
PLATFORM = "0x2222222222222222222222222222222222222222"
CREATOR = "0x3333333333333333333333333333333333333333"
CREATOR_2 = "0x4444444444444444444444444444444444444444"
INVESTOR = "0x5555555555555555555555555555555555555555"
INVESTOR_2 = "0x6666666666666666666666666666666666666666"
STRANGER = "0x7777777777777777777777777777777777777777"
ZERO = "0x0000000000000000000000000000000000000000"

# Day 19738 since the Unix epoch is day 28 of its 30-day block (gate open)
GATE_OPEN = 19738 * DAY
# Day 19740 starts the next block (gate closed)
GATE_CLOSED = 19740 * DAY


class FakeClock:
    """Settable clock returning Unix seconds."""

    def __init__(self, value: int = EPOCH):
        self.value = value

    def __call__(self) -> int:
        return self.value


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting mid January 2024, outside the upload window."""
    return FakeClock(GATE_CLOSED)


@pytest.fixture
def balances() -> InMemoryBalanceSource:
    """Empty in-memory token ledger."""
    return InMemoryBalanceSource()


@pytest.fixture
def ledger(balances, clock) -> ActivityLedger:
    """Ledger with no registrations and no storage."""
    return ActivityLedger(OWNER, PLATFORM, balances, clock=clock)


@pytest.fixture
def populated_ledger(ledger, balances) -> ActivityLedger:
    """Ledger with two creators and one investor holding chapter tokens."""
    ledger.record_publish(PLATFORM, CREATOR, 100, 80)
    ledger.record_publish(PLATFORM, CREATOR_2, 10, 5)
    ledger.record_acquire(PLATFORM, INVESTOR, 20)

    ledger.associate_creator_token(PLATFORM, CREATOR, 1)
    ledger.associate_creator_token(PLATFORM, CREATOR_2, 2)
    ledger.associate_investor_token(PLATFORM, INVESTOR, 1)

    balances.set_balance(CREATOR, 1, 80)
    balances.set_balance(CREATOR_2, 2, 5)
    balances.set_balance(INVESTOR, 1, 20)
    return ledger
