"""Period keys and the end-of-month gate.

Two notions of "month" live here and they are not reconciled:

- ``current_period`` maps a timestamp onto a simplified calendar of
  365-day years split into 30-day months (month 13 folds into 12).
- ``is_end_of_month`` treats every rolling 30-day block since the Unix
  epoch as a month and opens its gate on the last two days of the block.
"""
from typing import Tuple

from manga_ledger.errors import InvalidArgumentError

EPOCH = 1704067200  # 2024-01-01T00:00:00Z
DAY = 86400
MONTH = 30 * DAY
YEAR = 365 * DAY

BASE_YEAR = 2024


def current_period(now: int) -> int:
    """Return the YYYYMM period key for a Unix timestamp"""
    now = int(now)
    if now < EPOCH:
        raise InvalidArgumentError(f"Timestamp {now} is before the ledger epoch {EPOCH}")

    elapsed = now - EPOCH
    year = BASE_YEAR + elapsed // YEAR
    month = min(elapsed % YEAR // MONTH + 1, 12)
    return year * 100 + month


def is_end_of_month(now: int) -> bool:
    """True during the last two days of a rolling 30-day block"""
    return (int(now) // DAY) % 30 >= 28


def split_period(period: int) -> Tuple[int, int]:
    """Split a period key into (year, month)"""
    return divmod(int(period), 100)


def validate_period(period: int) -> int:
    """Check that a period key encodes a real month, and return it"""
    if isinstance(period, bool) or not isinstance(period, int):
        raise InvalidArgumentError(f"Period must be an integer, got {period!r}")

    year, month = split_period(period)
    if year < BASE_YEAR or not 1 <= month <= 12:
        raise InvalidArgumentError(f"Invalid period key: {period}")
    return period
