"""Replay of recorded ledger operations from JSON journal files"""
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from manga_ledger.errors import InvalidArgumentError, LedgerError
from manga_ledger.ledger import ActivityLedger
from manga_ledger.services.balances import InMemoryBalanceSource

logger = logging.getLogger(__name__)


class ReplayClock:
    """Clock that only moves when a journal entry carries a timestamp"""

    def __init__(self, start: int):
        self.value = int(start)

    def advance_to(self, timestamp: int) -> None:
        timestamp = int(timestamp)
        if timestamp < self.value:
            raise InvalidArgumentError(f"Journal timestamp {timestamp} goes back before {self.value}")
        self.value = timestamp

    def __call__(self) -> int:
        return self.value


def load_journal(path: Path) -> List[Dict[str, Any]]:
    """
    Load journal entries from a file that may be:
    - a JSON array of entries
    - a JSON object with an "entries" list
    - JSON-lines (.jsonl): one entry per line
    """
    text = path.read_text(encoding='utf-8').strip()
    if not text:
        return []

    if path.suffix == '.jsonl':
        return [json.loads(line) for line in text.splitlines() if line.strip()]

    data = json.loads(text)
    if isinstance(data, dict):
        data = data.get('entries', [])
    if not isinstance(data, list):
        raise InvalidArgumentError(f"Journal {path.name} must contain a list of entries")
    return data


def journal_files(input_dir: str) -> List[Path]:
    directory = Path(input_dir)
    return sorted(p for p in directory.iterdir() if p.suffix in ('.json', '.jsonl') and p.is_file())


class JournalReplayer:
    """Applies journal entries to a ledger as the owner or platform identity"""

    def __init__(self, ledger: ActivityLedger, clock: Optional[ReplayClock] = None,
                 balances: Optional[InMemoryBalanceSource] = None):
        self.ledger = ledger
        self.clock = clock
        self.balances = balances
        self.applied = 0

    def _handlers(self) -> Dict[str, Callable[[Dict[str, Any]], Any]]:
        ledger = self.ledger
        return {
            'register_creator': lambda e: ledger.register_creator(ledger.owner, e['address']),
            'register_investor': lambda e: ledger.register_investor(ledger.owner, e['address']),
            'add_creators': lambda e: ledger.add_creators(ledger.owner, e['addresses']),
            'add_investors': lambda e: ledger.add_investors(ledger.owner, e['addresses']),
            'remove_creator': lambda e: ledger.remove_creator(ledger.owner, e['address']),
            'remove_investor': lambda e: ledger.remove_investor(ledger.owner, e['address']),
            'record_publish': lambda e: ledger.record_publish(
                ledger.platform, e['creator'], e['published'], e['acquired']),
            'record_acquire': lambda e: ledger.record_acquire(
                ledger.platform, e['investor'], e['acquired']),
            'record_ownership': lambda e: ledger.record_ownership(
                ledger.platform, e['token_id'], e['owner']),
            'associate_creator_token': lambda e: ledger.associate_creator_token(
                ledger.platform, e['creator'], e['token_id']),
            'associate_investor_token': lambda e: ledger.associate_investor_token(
                ledger.platform, e['investor'], e['token_id']),
            'set_balance': self._set_balance,
            'rollup': lambda e: (ledger.upload_data_for_month(ledger.owner, e['period']) if 'period' in e
                                 else ledger.force_upload_monthly_data(ledger.owner)),
            'clear': lambda e: ledger.clear_monthly_data(ledger.owner, e['period']),
        }

    def _set_balance(self, entry: Dict[str, Any]) -> None:
        if self.balances is None:
            raise InvalidArgumentError("set_balance requires an in-memory balance source")
        self.balances.set_balance(entry['owner'], entry['token_id'], entry['amount'])

    def apply(self, entries: Iterable[Dict[str, Any]]) -> int:
        """
        Apply entries in order.

        Raises:
            InvalidArgumentError: For an unknown op or a missing field
            LedgerError: Whatever the ledger raised for the entry
        """
        handlers = self._handlers()
        count = 0
        for index, entry in enumerate(entries):
            op = entry.get('op')
            handler = handlers.get(op)
            if handler is None:
                raise InvalidArgumentError(f"Journal entry {index}: unknown op {op!r}")

            if 'timestamp' in entry:
                if self.clock is None:
                    raise InvalidArgumentError(f"Journal entry {index}: timestamps need a replay clock")
                self.clock.advance_to(entry['timestamp'])

            try:
                handler(entry)
            except KeyError as e:
                raise InvalidArgumentError(f"Journal entry {index} ({op}): missing field {e}") from e
            except LedgerError as e:
                logger.error(f"Journal entry {index} ({op}) failed: {e}")
                raise
            count += 1

        self.applied += count
        return count
