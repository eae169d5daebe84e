"""Database storage service for monthly snapshot rows"""
import logging
from typing import List
from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from manga_ledger.errors import StorageError
from manga_ledger.models.db import CreatorSnapshotRecord, InvestorSnapshotRecord
from manga_ledger.models.ledger import MonthlyCreatorSnapshot, MonthlyInvestorSnapshot

logger = logging.getLogger(__name__)


class StorageService:
    """Handles all database operations"""

    def __init__(self, session: Session):
        if not session:
            raise ValueError("Database session is required")
        self.session = session

    def store_rollup(self, creator_rows: List[MonthlyCreatorSnapshot],
                     investor_rows: List[MonthlyInvestorSnapshot]) -> None:
        """Append the rows of one rollup in a single transaction"""
        try:
            for row in creator_rows:
                self.session.add(CreatorSnapshotRecord(**row.__dict__))
            for row in investor_rows:
                self.session.add(InvestorSnapshotRecord(**row.__dict__))
            self.session.commit()
            logger.info(f"Stored {len(creator_rows)} creator and {len(investor_rows)} investor rows")
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Database error storing rollup: {e}")
            raise StorageError(f"Failed to store rollup: {str(e)}") from e

    def fetch_creator_snapshots(self, period: int) -> List[MonthlyCreatorSnapshot]:
        try:
            records = self.session.query(CreatorSnapshotRecord).filter_by(
                period=period
            ).order_by(CreatorSnapshotRecord.id).all()
        except SQLAlchemyError as e:
            logger.error(f"Database error loading creator snapshots: {e}")
            raise StorageError(f"Failed to load creator snapshots: {str(e)}") from e

        return [
            MonthlyCreatorSnapshot(
                creator=r.creator,
                period=r.period,
                monthly_published=r.monthly_published,
                monthly_acquired=r.monthly_acquired,
                total_published=r.total_published,
                total_acquired=r.total_acquired,
                total_held=r.total_held,
                timestamp=r.timestamp
            )
            for r in records
        ]

    def fetch_investor_snapshots(self, period: int) -> List[MonthlyInvestorSnapshot]:
        try:
            records = self.session.query(InvestorSnapshotRecord).filter_by(
                period=period
            ).order_by(InvestorSnapshotRecord.id).all()
        except SQLAlchemyError as e:
            logger.error(f"Database error loading investor snapshots: {e}")
            raise StorageError(f"Failed to load investor snapshots: {str(e)}") from e

        return [
            MonthlyInvestorSnapshot(
                investor=r.investor,
                period=r.period,
                monthly_acquired=r.monthly_acquired,
                total_acquired=r.total_acquired,
                total_held=r.total_held,
                timestamp=r.timestamp
            )
            for r in records
        ]

    def delete_period(self, period: int) -> int:
        """Delete every stored row for a period; returns the number removed"""
        try:
            removed = self.session.query(CreatorSnapshotRecord).filter_by(period=period).delete()
            removed += self.session.query(InvestorSnapshotRecord).filter_by(period=period).delete()
            self.session.commit()
            logger.info(f"Deleted {removed} stored rows for period {period}")
            return removed
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Database error deleting period {period}: {e}")
            raise StorageError(f"Failed to delete period {period}: {str(e)}") from e

    def stored_periods(self) -> List[int]:
        """Periods that have at least one stored row, ascending"""
        try:
            creator_periods = self.session.query(func.distinct(CreatorSnapshotRecord.period)).all()
            investor_periods = self.session.query(func.distinct(InvestorSnapshotRecord.period)).all()
        except SQLAlchemyError as e:
            logger.error(f"Database error listing stored periods: {e}")
            raise StorageError(f"Failed to list stored periods: {str(e)}") from e

        return sorted({p for (p,) in creator_periods} | {p for (p,) in investor_periods})
