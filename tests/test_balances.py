"""
JSON-RPC balance source tests
"""

import pytest
import requests

from manga_ledger.errors import BalanceSourceError
from manga_ledger.services.balances import JsonRpcBalanceSource
from conftest import CREATOR

CONTRACT = "0x9999999999999999999999999999999999999999"


class StubResponse:
    def __init__(self, body, status_code=200):
        self.body = body
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.body


class StubSession:
    """Answers eth_blockNumber and eth_call from canned values."""

    def __init__(self, balance=0, block=0x10, failures=0, error=None):
        self.balance = balance
        self.block = block
        self.failures = failures
        self.error = error
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append(json)
        if self.failures:
            self.failures -= 1
            raise requests.ConnectionError("connection reset")
        if self.error:
            return StubResponse({'jsonrpc': '2.0', 'id': json['id'], 'error': self.error})
        if json['method'] == 'eth_blockNumber':
            result = hex(self.block)
        else:
            result = '0x' + format(self.balance, 'x').rjust(64, '0')
        return StubResponse({'jsonrpc': '2.0', 'id': json['id'], 'result': result})


def make_source(session) -> JsonRpcBalanceSource:
    return JsonRpcBalanceSource("http://rpc.local", CONTRACT, timeout=1, session=session, retry_delay=0)


class TestJsonRpcBalanceSource:
    """Tests for eth_call based balance reads."""

    def test_encode_balance_of(self):
        data = JsonRpcBalanceSource.encode_balance_of(CREATOR, 7)
        assert data == "0x00fdd58e" + "0" * 24 + "33" * 20 + "0" * 63 + "7"

    def test_balance_of_reads_latest(self):
        session = StubSession(balance=42)
        source = make_source(session)

        assert source.balance_of(CREATOR, 7) == 42
        call = session.calls[0]
        assert call['method'] == 'eth_call'
        assert call['params'][0]['to'] == CONTRACT
        assert call['params'][1] == 'latest'

    def test_pinned_reads_use_one_block(self):
        session = StubSession(balance=1, block=0x1234)
        source = make_source(session)

        with source.pinned():
            source.balance_of(CREATOR, 1)
            with source.pinned():
                source.balance_of(CREATOR, 2)
        source.balance_of(CREATOR, 3)

        methods = [call['method'] for call in session.calls]
        assert methods == ['eth_blockNumber', 'eth_call', 'eth_call', 'eth_call']
        assert [call['params'][1] for call in session.calls[1:]] == ['0x1234', '0x1234', 'latest']

    def test_retries_transport_errors(self):
        session = StubSession(balance=5, failures=2)
        assert make_source(session).balance_of(CREATOR, 1) == 5
        assert len(session.calls) == 3

    def test_gives_up_after_three_attempts(self):
        session = StubSession(failures=3)
        with pytest.raises(BalanceSourceError):
            make_source(session).balance_of(CREATOR, 1)

    def test_rpc_error_is_not_retried(self):
        session = StubSession(error={'code': -32000, 'message': 'execution reverted'})
        with pytest.raises(BalanceSourceError):
            make_source(session).balance_of(CREATOR, 1)
        assert len(session.calls) == 1

    def test_empty_result_is_zero(self):
        session = StubSession()
        source = make_source(session)
        session.post = lambda url, json=None, timeout=None: StubResponse({'id': 1, 'result': '0x'})
        assert source.balance_of(CREATOR, 1) == 0
