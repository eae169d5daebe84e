"""SQLAlchemy database models for persisted monthly snapshots"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, BigInteger, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class CreatorSnapshotRecord(Base):
    """
    One creator row from a monthly rollup.
    Rows are append-only; re-running a rollup stores duplicates.
    """
    __tablename__ = 'creator_snapshots'

    id = Column(Integer, primary_key=True, autoincrement=True)
    period = Column(Integer, nullable=False, index=True)
    creator = Column(String(42), nullable=False, index=True)
    monthly_published = Column(BigInteger, nullable=False)
    monthly_acquired = Column(BigInteger, nullable=False)
    total_published = Column(BigInteger, nullable=False)
    total_acquired = Column(BigInteger, nullable=False)
    total_held = Column(BigInteger, nullable=False)
    timestamp = Column(BigInteger, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class InvestorSnapshotRecord(Base):
    """One investor row from a monthly rollup"""
    __tablename__ = 'investor_snapshots'

    id = Column(Integer, primary_key=True, autoincrement=True)
    period = Column(Integer, nullable=False, index=True)
    investor = Column(String(42), nullable=False, index=True)
    monthly_acquired = Column(BigInteger, nullable=False)
    total_acquired = Column(BigInteger, nullable=False)
    total_held = Column(BigInteger, nullable=False)
    timestamp = Column(BigInteger, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
