"""RollupSummary model definition"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel

from manga_ledger.models.ledger import MonthlyCreatorSnapshot, MonthlyInvestorSnapshot


class RollupSummary(BaseModel):
    """
    Result of a monthly rollup, written to results.json by the CLI.

    Attributes:
        period: YYYYMM period key the rows were produced for
        creator_count: Size of the creator registry when the summary was produced
        investor_count: Size of the investor registry when the summary was produced
        timestamp: Clock reading stamped on every row
        creators: Creator snapshot rows, in registry order
        investors: Investor snapshot rows, in registry order
        metadata: Extra context about the run
    """
    period: int
    creator_count: int = 0
    investor_count: int = 0
    timestamp: int = 0
    creators: List[Dict[str, Any]] = []
    investors: List[Dict[str, Any]] = []
    metadata: Optional[Dict[str, Any]] = {}

    @classmethod
    def from_rows(
            cls,
            period: int,
            timestamp: int,
            creator_rows: List[MonthlyCreatorSnapshot],
            investor_rows: List[MonthlyInvestorSnapshot],
            creator_count: int,
            investor_count: int,
            metadata: Optional[Dict[str, Any]] = None
    ) -> 'RollupSummary':
        return cls(
            period=period,
            creator_count=creator_count,
            investor_count=investor_count,
            timestamp=timestamp,
            creators=[row.__dict__ for row in creator_rows],
            investors=[row.__dict__ for row in investor_rows],
            metadata=metadata or {}
        )
