"""Entry point for replaying journals and producing a monthly rollup"""
import json
import logging
import os
import sys
import traceback
from typing import Optional

from manga_ledger.config import Settings, get_settings
from manga_ledger.db import db
from manga_ledger.journal import JournalReplayer, ReplayClock, journal_files, load_journal
from manga_ledger.ledger import ActivityLedger
from manga_ledger.models.summary import RollupSummary
from manga_ledger.period import EPOCH
from manga_ledger.services.balances import BalanceSource, InMemoryBalanceSource, JsonRpcBalanceSource
from manga_ledger.services.storage import StorageService

logger = logging.getLogger(__name__)


def build_balance_source(settings: Settings) -> BalanceSource:
    """Use the on-chain token ledger when RPC is configured, else journal balances"""
    rpc = settings.rpc_settings
    if rpc:
        logger.info(f"Reading balances from {rpc.token_contract} via JSON-RPC")
        return JsonRpcBalanceSource(rpc.url, rpc.token_contract, timeout=rpc.timeout)
    return InMemoryBalanceSource()


def run(settings: Optional[Settings] = None) -> RollupSummary:
    """Replay every journal in INPUT_DIR and roll up the target period."""
    settings = settings or get_settings()

    if not os.path.isdir(settings.INPUT_DIR) or not os.listdir(settings.INPUT_DIR):
        raise FileNotFoundError(f"No input files found in {settings.INPUT_DIR}")

    # Log config (excluding connection strings)
    safe_config = settings.model_dump(exclude={'DATABASE_URL', 'RPC_URL'})
    logger.info("Using configuration:")
    logger.info(json.dumps(safe_config, indent=2))

    db.init(settings.DATABASE_URL)
    try:
        balances = build_balance_source(settings)
        clock = ReplayClock(EPOCH)
        # Journal rollups stay in memory; only the target period is stored below
        ledger = ActivityLedger(
            settings.OWNER_ADDRESS,
            settings.PLATFORM_ADDRESS,
            balances,
            clock=clock,
            rollup_time_budget=settings.ROLLUP_TIME_BUDGET
        )
        replayer = JournalReplayer(
            ledger,
            clock=clock,
            balances=balances if isinstance(balances, InMemoryBalanceSource) else None
        )

        for path in journal_files(settings.INPUT_DIR):
            applied = replayer.apply(load_journal(path))
            logger.info(f"Replayed {applied} entries from {path.name}")

        period = settings.PERIOD or ledger.current_period()
        if ledger.has_rollup(period):
            logger.info(f"Period {period} already rolled up by the journal, not rolling up again")
            creator_rows = ledger.get_creator_snapshots(period)
            investor_rows = ledger.get_investor_snapshots(period)
        else:
            creator_rows, investor_rows = ledger.upload_data_for_month(ledger.owner, period)

        with db.session() as session:
            storage = StorageService(session)
            persisted = period not in storage.stored_periods()
            if persisted:
                storage.store_rollup(creator_rows, investor_rows)
            else:
                logger.info(f"Period {period} already stored by an earlier run, not storing again")

        summary = RollupSummary.from_rows(
            period,
            clock(),
            creator_rows,
            investor_rows,
            creator_count=len(ledger.creators()),
            investor_count=len(ledger.investors()),
            metadata={
                'version': '1.0.0',
                'journal_entries': replayer.applied,
                'events': len(ledger.events),
                'persisted': persisted,
            }
        )

        output_path = os.path.join(settings.OUTPUT_DIR, "results.json")
        with open(output_path, 'w') as f:
            json.dump(summary.model_dump(), f, indent=2)

        logger.info(f"Rollup complete for {period}: {summary.creator_count} creators, "
                    f"{summary.investor_count} investors")
        return summary
    finally:
        db.dispose()


def main() -> None:
    try:
        settings = get_settings()
        logging.basicConfig(level=settings.LOG_LEVEL, format='%(message)s')
        run(settings)
    except Exception as e:
        logger.error(f"Error during rollup: {e}")
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
