"""
Journal replay and entry point tests
"""

import json

import pytest

from manga_ledger.__main__ import run
from manga_ledger.config import Settings
from manga_ledger.db import Database
from manga_ledger.errors import InvalidArgumentError, PreconditionError, UnauthorizedError
from manga_ledger.journal import JournalReplayer, ReplayClock, load_journal
from manga_ledger.ledger import ActivityLedger
from manga_ledger.period import EPOCH, MONTH
from manga_ledger.services.balances import InMemoryBalanceSource
from manga_ledger.services.storage import StorageService
from conftest import CREATOR, INVESTOR, OWNER, PLATFORM, STRANGER

FEBRUARY = EPOCH + MONTH + 100

ENTRIES = [
    {'op': 'register_creator', 'address': CREATOR},
    {'op': 'record_publish', 'creator': CREATOR, 'published': 100, 'acquired': 80},
    {'op': 'associate_creator_token', 'creator': CREATOR, 'token_id': 1},
    {'op': 'set_balance', 'owner': CREATOR, 'token_id': 1, 'amount': 80},
    {'op': 'record_acquire', 'investor': INVESTOR, 'acquired': 5, 'timestamp': FEBRUARY},
    {'op': 'associate_investor_token', 'investor': INVESTOR, 'token_id': 1},
    {'op': 'record_ownership', 'token_id': 1, 'owner': INVESTOR},
    {'op': 'set_balance', 'owner': INVESTOR, 'token_id': 1, 'amount': 5},
]


@pytest.fixture
def replay():
    clock = ReplayClock(EPOCH)
    balances = InMemoryBalanceSource()
    ledger = ActivityLedger(OWNER, PLATFORM, balances, clock=clock)
    return JournalReplayer(ledger, clock=clock, balances=balances)


class TestJournalReplayer:
    """Tests for applying journal entries."""

    def test_apply_entries(self, replay):
        assert replay.apply(ENTRIES) == len(ENTRIES)
        ledger = replay.ledger

        assert ledger.get_creator_monthly_stats(CREATOR, 202401) == (100, 80)
        assert ledger.get_investor_monthly_stats(INVESTOR, 202402) == 5
        assert ledger.get_investor_stats(INVESTOR).current_held == 5
        assert ledger.token_owners(1) == [INVESTOR]
        assert ledger.current_period() == 202402

    def test_rollup_and_clear_ops(self, replay):
        replay.apply(ENTRIES + [
            {'op': 'rollup', 'period': 202401},
            {'op': 'rollup'},
            {'op': 'clear', 'period': 202401},
        ])
        assert not replay.ledger.has_rollup(202401)
        assert len(replay.ledger.get_investor_snapshots(202402)) == 1

    def test_unknown_op(self, replay):
        with pytest.raises(InvalidArgumentError, match="entry 1"):
            replay.apply([{'op': 'register_creator', 'address': CREATOR}, {'op': 'mint'}])

    def test_missing_field(self, replay):
        with pytest.raises(InvalidArgumentError, match="missing field"):
            replay.apply([{'op': 'record_acquire', 'investor': INVESTOR}])

    def test_ledger_errors_propagate(self, replay):
        with pytest.raises(PreconditionError):
            replay.apply([{'op': 'remove_investor', 'address': STRANGER}])

    def test_clock_cannot_go_back(self, replay):
        replay.apply([{'op': 'record_acquire', 'investor': INVESTOR, 'acquired': 1, 'timestamp': FEBRUARY}])
        with pytest.raises(InvalidArgumentError):
            replay.apply([{'op': 'record_acquire', 'investor': INVESTOR, 'acquired': 1, 'timestamp': EPOCH}])

    def test_ops_use_current_roles(self, replay):
        replay.ledger.transfer_ownership(OWNER, STRANGER)
        replay.apply([{'op': 'register_investor', 'address': INVESTOR}])
        assert replay.ledger.is_investor(INVESTOR)

        with pytest.raises(UnauthorizedError):
            replay.ledger.register_investor(OWNER, CREATOR)


class TestLoadJournal:
    """Tests for journal file formats."""

    def test_json_list(self, tmp_path):
        path = tmp_path / "journal.json"
        path.write_text(json.dumps(ENTRIES))
        assert load_journal(path) == ENTRIES

    def test_json_object(self, tmp_path):
        path = tmp_path / "journal.json"
        path.write_text(json.dumps({'entries': ENTRIES[:2]}))
        assert load_journal(path) == ENTRIES[:2]

    def test_json_lines(self, tmp_path):
        path = tmp_path / "journal.jsonl"
        path.write_text("\n".join(json.dumps(e) for e in ENTRIES[:3]) + "\n\n")
        assert load_journal(path) == ENTRIES[:3]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "journal.json"
        path.write_text("")
        assert load_journal(path) == []


class TestRun:
    """Tests for the command line entry point."""

    @pytest.fixture
    def settings(self, tmp_path):
        input_dir = tmp_path / "input"
        output_dir = tmp_path / "output"
        input_dir.mkdir()
        output_dir.mkdir()
        (input_dir / "journal.json").write_text(json.dumps({'entries': ENTRIES}))
        return Settings(
            OWNER_ADDRESS=OWNER,
            PLATFORM_ADDRESS=PLATFORM,
            DATABASE_URL=f"sqlite:///{tmp_path / 'ledger.db'}",
            INPUT_DIR=str(input_dir),
            OUTPUT_DIR=str(output_dir),
        )

    def test_run_rolls_up_current_period(self, settings):
        summary = run(settings)

        assert summary.period == 202402
        assert summary.creator_count == 1
        assert summary.investor_count == 1
        assert summary.investors[0]['monthly_acquired'] == 5
        assert summary.creators[0]['monthly_published'] == 0
        assert summary.creators[0]['total_published'] == 100

        with open(f"{settings.OUTPUT_DIR}/results.json") as f:
            written = json.load(f)
        assert written['period'] == 202402
        assert written['metadata']['journal_entries'] == len(ENTRIES)

    def test_run_explicit_period(self, settings):
        settings.PERIOD = 202401
        summary = run(settings)
        assert summary.creators[0]['monthly_published'] == 100
        assert summary.investors[0]['monthly_acquired'] == 0

    def test_run_reuses_journal_rollup(self, settings, tmp_path):
        (tmp_path / "input" / "zz_rollup.jsonl").write_text(json.dumps({'op': 'rollup'}) + "\n")
        summary = run(settings)
        assert summary.period == 202402
        assert summary.creator_count == 1

    def test_run_counts_registry_not_rows(self, settings, tmp_path):
        """A period rolled up twice by the journal still reports one creator."""
        (tmp_path / "input" / "zz_rollup.jsonl").write_text(
            json.dumps({'op': 'rollup'}) + "\n" + json.dumps({'op': 'rollup'}) + "\n"
        )
        summary = run(settings)
        assert len(summary.creators) == 2
        assert summary.creator_count == 1
        assert summary.investor_count == 1

    def test_repeated_runs_store_period_once(self, settings, tmp_path):
        """Replaying the same journals again must not duplicate stored rows."""
        (tmp_path / "input" / "zz_rollup.jsonl").write_text(
            json.dumps({'op': 'rollup', 'period': 202401}) + "\n"
        )
        settings.PERIOD = 202401

        first = run(settings)
        second = run(settings)

        assert first.metadata['persisted'] is True
        assert second.metadata['persisted'] is False

        database = Database()
        database.init(settings.DATABASE_URL)
        try:
            with database.session() as session:
                storage = StorageService(session)
                assert len(storage.fetch_creator_snapshots(202401)) == 1
                assert len(storage.fetch_investor_snapshots(202401)) == 1
                assert storage.stored_periods() == [202401]
        finally:
            database.dispose()

    def test_journal_rollups_of_other_periods_not_stored(self, settings, tmp_path):
        (tmp_path / "input" / "zz_rollup.jsonl").write_text(
            json.dumps({'op': 'rollup', 'period': 202401}) + "\n"
        )
        run(settings)

        database = Database()
        database.init(settings.DATABASE_URL)
        try:
            with database.session() as session:
                assert StorageService(session).stored_periods() == [202402]
        finally:
            database.dispose()

    def test_run_without_input(self, settings, tmp_path):
        for path in (tmp_path / "input").iterdir():
            path.unlink()
        with pytest.raises(FileNotFoundError):
            run(settings)
