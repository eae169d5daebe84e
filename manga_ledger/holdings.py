"""Token ownership and per-address token associations"""
from collections import defaultdict
from typing import Dict, List

from manga_ledger.models.ledger import TokenHolding
from manga_ledger.services.balances import BalanceSource


class HoldingsTracker:
    """
    Tracks who has held which token, and which tokens each creator and
    investor is associated with. Held totals are never stored; they are
    recomputed from the balance source on every call.
    """

    def __init__(self, balance_source: BalanceSource):
        self.balance_source = balance_source
        # dicts keep insertion order, values unused
        self._owners: Dict[int, Dict[str, None]] = defaultdict(dict)
        self._creator_tokens: Dict[str, List[int]] = defaultdict(list)
        self._investor_tokens: Dict[str, List[int]] = defaultdict(list)

    def record_ownership(self, token_id: int, owner: str) -> bool:
        """Add owner to the token's owner set; returns False if already present"""
        owners = self._owners[token_id]
        if owner in owners:
            return False
        owners[owner] = None
        return True

    def associate_creator_token(self, creator: str, token_id: int) -> None:
        self._creator_tokens[creator].append(token_id)

    def associate_investor_token(self, investor: str, token_id: int) -> None:
        self._investor_tokens[investor].append(token_id)

    def creator_tokens(self, creator: str) -> List[int]:
        return list(self._creator_tokens.get(creator, []))

    def investor_tokens(self, investor: str) -> List[int]:
        return list(self._investor_tokens.get(investor, []))

    def token_owners(self, token_id: int) -> List[str]:
        return list(self._owners.get(token_id, {}))

    def token_holdings(self, token_id: int) -> List[TokenHolding]:
        """Every address ever recorded as owner, paired with its live balance"""
        with self.balance_source.pinned():
            return [
                TokenHolding(owner=owner, balance=self.balance_source.balance_of(owner, token_id))
                for owner in self.token_owners(token_id)
            ]

    def _sum_balances(self, address: str, token_ids: List[int]) -> int:
        # One read per associated id, duplicates included
        return sum(self.balance_source.balance_of(address, token_id) for token_id in token_ids)

    def current_held_by_creator(self, creator: str) -> int:
        return self._sum_balances(creator, self._creator_tokens.get(creator, []))

    def current_held_by_investor(self, investor: str) -> int:
        return self._sum_balances(investor, self._investor_tokens.get(investor, []))
