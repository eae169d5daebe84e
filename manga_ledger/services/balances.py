"""Token balance oracles consulted for current-held totals"""
import logging
import time
from collections import defaultdict
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Tuple

import requests

from manga_ledger.address import normalize_address
from manga_ledger.errors import BalanceSourceError, InvalidArgumentError

logger = logging.getLogger(__name__)

# keccak256("balanceOf(address,uint256)")[:4]
BALANCE_OF_SELECTOR = "00fdd58e"


class BalanceSource:
    """
    Read-only view of an ERC-1155 token ledger.

    Subclasses answer balance_of. pinned() scopes a group of reads that
    must all observe state no older than the moment it was entered.
    """

    def balance_of(self, owner: str, token_id: int) -> int:
        raise NotImplementedError

    @contextmanager
    def pinned(self) -> Iterator['BalanceSource']:
        yield self


class InMemoryBalanceSource(BalanceSource):
    """Dict-backed token ledger, used for tests and journal replays"""

    def __init__(self, balances: Optional[Dict[Tuple[str, int], int]] = None):
        self._balances: Dict[Tuple[str, int], int] = defaultdict(int)
        for (owner, token_id), amount in (balances or {}).items():
            self.set_balance(owner, token_id, amount)

    def balance_of(self, owner: str, token_id: int) -> int:
        return self._balances.get((owner.lower(), int(token_id)), 0)

    def set_balance(self, owner: str, token_id: int, amount: int) -> None:
        if amount < 0:
            raise InvalidArgumentError(f"Balance cannot be negative: {amount}")
        self._balances[(normalize_address(owner), int(token_id))] = int(amount)

    def mint(self, owner: str, token_id: int, amount: int) -> None:
        self.set_balance(owner, token_id, self.balance_of(owner, token_id) + amount)

    def transfer(self, sender: str, recipient: str, token_id: int, amount: int) -> None:
        available = self.balance_of(sender, token_id)
        if amount > available:
            raise InvalidArgumentError(
                f"Insufficient balance for {sender} on token {token_id}: {available} < {amount}"
            )
        self.set_balance(sender, token_id, available - amount)
        self.mint(recipient, token_id, amount)


class JsonRpcBalanceSource(BalanceSource):
    """Reads ERC-1155 balances through eth_call on a JSON-RPC endpoint"""

    def __init__(self, url: str, token_contract: str, timeout: float = 10.0,
                 session: Optional[requests.Session] = None, retry_delay: float = 1.0):
        self.url = url
        self.token_contract = normalize_address(token_contract)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.retry_delay = retry_delay
        self._block: Optional[int] = None
        self._request_id = 0

    @staticmethod
    def encode_balance_of(owner: str, token_id: int) -> str:
        """ABI-encode a balanceOf(address,uint256) call"""
        if token_id < 0:
            raise InvalidArgumentError(f"Token id cannot be negative: {token_id}")
        owner_word = normalize_address(owner)[2:].rjust(64, '0')
        token_word = format(int(token_id), 'x').rjust(64, '0')
        return f"0x{BALANCE_OF_SELECTOR}{owner_word}{token_word}"

    def _make_request(self, method: str, params: list):
        """Make a JSON-RPC request with retries"""
        self._request_id += 1
        payload = {
            'jsonrpc': '2.0',
            'id': self._request_id,
            'method': method,
            'params': params
        }

        for attempt in range(3):  # 3 retries
            try:
                response = self.session.post(self.url, json=payload, timeout=self.timeout)
                response.raise_for_status()
                body = response.json()
                break
            except (requests.RequestException, ValueError) as e:
                if attempt == 2:  # Last attempt
                    logger.error(f"RPC {method} failed after 3 attempts: {e}")
                    raise BalanceSourceError(f"RPC {method} failed: {e}") from e
                logger.warning(f"Retrying RPC {method} after error: {e}")
                time.sleep(self.retry_delay)

        if body.get('error'):
            raise BalanceSourceError(f"RPC {method} returned error: {body['error']}")
        return body.get('result')

    def block_number(self) -> int:
        return int(self._make_request('eth_blockNumber', []), 16)

    def balance_of(self, owner: str, token_id: int) -> int:
        block_tag = hex(self._block) if self._block is not None else 'latest'
        result = self._make_request('eth_call', [
            {'to': self.token_contract, 'data': self.encode_balance_of(owner, token_id)},
            block_tag
        ])
        if not result or result == '0x':
            return 0
        try:
            return int(result, 16)
        except (TypeError, ValueError) as e:
            raise BalanceSourceError(f"Unexpected balanceOf result: {result!r}") from e

    @contextmanager
    def pinned(self) -> Iterator['JsonRpcBalanceSource']:
        """Serve every read inside the block from one block height"""
        outer = self._block
        if outer is None:
            self._block = self.block_number()
            logger.info(f"Pinned balance reads to block {self._block}")
        try:
            yield self
        finally:
            self._block = outer
