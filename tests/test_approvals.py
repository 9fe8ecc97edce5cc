import pytest

from vanta.config import chains
from vanta.services import approvals, rpc
from vanta.services.errors import MalformedInput

OWNER = '0x' + 'a' * 40
ETH = chains.get_chain('ethereum')
USDC = ETH.token_by_address('0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48')
DAI = ETH.token_by_address('0x6b175474e89094c44da98b954eedeac495271d0f')
UNISWAP, ONEINCH = ETH.spenders


class AllowanceProvider:
    url = 'https://fake.node'

    def __init__(self, allowances, broken=()):
        # {(token address, spender address): raw}
        self.allowances = allowances
        self.broken = set(broken)

    def call_uint256(self, to, data):
        spender = '0x' + data[-40:]
        key = (to.lower(), spender.lower())
        if key in self.broken:
            raise ConnectionError('execution reverted')
        return self.allowances.get(key, 0)


def test_classify_allowance():
    assert approvals.classify_allowance(2e9) == (True, 'high')
    assert approvals.classify_allowance(500000) == (False, 'high')
    assert approvals.classify_allowance(5000) == (False, 'medium')
    assert approvals.classify_allowance(1000) == (False, 'low')
    assert approvals.classify_allowance(0.5) == (False, 'low')


def test_scan_reports_nonzero_allowances(monkeypatch):
    unlimited = 2 ** 256 - 1
    p = AllowanceProvider(
        {
            (USDC.address, UNISWAP.address.lower()): 2500 * 10 ** 6,
            (DAI.address, ONEINCH.address.lower()): unlimited,
        },
        broken={(USDC.address, ONEINCH.address.lower())},
    )
    monkeypatch.setattr(rpc, 'select_provider', lambda chain: p)

    found = approvals.scan_approvals('ethereum', OWNER)
    assert [(a['token'], a['spenderLabel']) for a in found] == [
        ('USDC', 'Uniswap V3 Router'),
        ('DAI', '1inch Router'),
    ]
    usdc, dai = found
    assert usdc['amount'] == 2500.0
    assert usdc['risk'] == 'medium'
    assert usdc['unlimited'] is False
    assert usdc['spender'] == UNISWAP.address
    assert dai['unlimited'] is True
    assert dai['risk'] == 'high'


def test_scan_all_zero_is_empty(monkeypatch):
    monkeypatch.setattr(rpc, 'select_provider', lambda chain: AllowanceProvider({}))
    assert approvals.scan_approvals('ethereum', OWNER) == []


def test_scan_chain_without_spenders_skips_network(monkeypatch):
    def no_network(chain):
        raise AssertionError('provider must not be selected')

    monkeypatch.setattr(rpc, 'select_provider', no_network)
    assert approvals.scan_approvals('base', OWNER) == []


def test_scan_rejects_bad_address():
    with pytest.raises(MalformedInput):
        approvals.scan_approvals('ethereum', '0xnope')
