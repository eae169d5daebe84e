"""Role registries for creators and investors"""
from typing import Dict, Iterable, Iterator, List

from manga_ledger.address import is_valid_address, normalize_address
from manga_ledger.errors import PreconditionError


class RoleRegistry:
    """
    Unordered address set with O(1) add, lookup and removal.

    Members are enumerated in registration order until the first removal;
    removal swaps the last member into the freed slot, so order is not
    stable afterwards. The list grows without bound.
    """

    def __init__(self, role: str):
        self.role = role
        self._index: Dict[str, int] = {}
        self._members: List[str] = []

    def add(self, address: str) -> bool:
        """Add an address; returns False if it was already a member"""
        address = normalize_address(address)
        if address in self._index:
            return False
        self._index[address] = len(self._members)
        self._members.append(address)
        return True

    def add_many(self, addresses: Iterable[str]) -> List[str]:
        """Add every valid new address, silently skipping the rest"""
        added = []
        for address in addresses:
            if not is_valid_address(address):
                continue
            if self.add(address):
                added.append(address.lower())
        return added

    def remove(self, address: str) -> None:
        """
        Remove a member with swap-and-pop.

        Raises:
            PreconditionError: If the address is not a member
        """
        address = normalize_address(address)
        if address not in self._index:
            raise PreconditionError(f"{address} is not a registered {self.role}")

        slot = self._index.pop(address)
        last = self._members.pop()
        if last != address:
            self._members[slot] = last
            self._index[last] = slot

    def members(self) -> List[str]:
        return list(self._members)

    def __contains__(self, address: str) -> bool:
        return isinstance(address, str) and address.lower() in self._index

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._members))
