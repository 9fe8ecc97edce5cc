import pytest
from eth_abi import encode

from vanta.config import chains, rules
from vanta.services import logs, prices, rpc, wallet
from vanta.services.errors import MalformedInput

ALICE = '0x' + 'a' * 40
BOB = '0x' + 'b' * 40
ETH = chains.get_chain('ethereum')
USDC = ETH.token_by_address('0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48')
DAI = ETH.token_by_address('0x6b175474e89094c44da98b954eedeac495271d0f')
WETH = ETH.token_by_address('0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2')


class MockResponse:
    def __init__(self, data, status_code=200):
        self._data = data
        self.status_code = status_code

    def json(self):
        return self._data

    def raise_for_status(self):
        if not (200 <= self.status_code < 300):
            raise Exception(f"HTTP {self.status_code}")


def transfer_log(token, frm, to, raw, block, index=0):
    return {
        'address': token.address,
        'topics': [logs.TRANSFER_TOPIC, logs.address_topic(frm), logs.address_topic(to)],
        'data': '0x' + hex(raw)[2:].rjust(64, '0'),
        'blockNumber': hex(block),
        'transactionHash': '0x' + format(block, 'x').rjust(64, '0'),
        'logIndex': hex(index),
    }


class WalletProvider:
    url = 'https://fake.node'

    def __init__(self, balance_wei=0, tx_count=0, price=2000, token_balances=None, raw_logs=None, fail=()):
        self.balance_wei = balance_wei
        self.tx_count = tx_count
        self.price = price
        self.token_balances = token_balances or {}
        self.raw_logs = raw_logs or []
        self.fail = set(fail)

    def get_balance(self, address):
        if 'balance' in self.fail:
            raise ConnectionError('balance')
        return self.balance_wei

    def get_transaction_count(self, address):
        if 'txcount' in self.fail:
            raise ConnectionError('nonce')
        return self.tx_count

    def eth_call(self, to, data):
        if self.price is None:
            raise ConnectionError('feed')
        answer = int(self.price * 10 ** 8)
        return '0x' + encode(['uint80', 'int256', 'uint256', 'uint256', 'uint80'], [1, answer, 0, 0, 1]).hex()

    def call_uint256(self, to, data):
        if f"balanceOf:{to.lower()}" in self.fail:
            raise ConnectionError('execution reverted')
        return self.token_balances.get(to.lower(), 0)

    def block_number(self):
        if 'block' in self.fail:
            raise ConnectionError('block')
        return 100000

    def get_logs(self, address, from_block, to_block, topics):
        if f"logs:{address.lower()}" in self.fail:
            raise ConnectionError('query returned more than 10000 results')
        out = []
        for log in self.raw_logs:
            if log['address'].lower() != address.lower():
                continue
            if all(t is None or t == log['topics'][i] for i, t in enumerate(topics)):
                out.append(log)
        return out


@pytest.fixture
def coingecko(monkeypatch):
    calls = []

    def fake_get(url, params=None, timeout=None, headers=None):
        calls.append(params)
        return MockResponse({'usd-coin': {'usd': 1.0}, 'dai': {'usd': 1.0}, 'weth': {'usd': 3000.0}})

    monkeypatch.setattr(prices.requests, 'get', fake_get)
    return calls


def test_risk_flags():
    assert wallet.compute_risk_flags(0.0, 0) == [
        rules.FLAG_NEW_WALLET, rules.FLAG_LOW_VALUE, rules.FLAG_UNKNOWN_CONTRACTS]
    assert wallet.compute_risk_flags(50000.0, 200) == [
        rules.FLAG_HIGH_VALUE, rules.FLAG_HIGH_ACTIVITY, rules.FLAG_UNKNOWN_CONTRACTS]
    # unknowns never trigger value or activity flags
    assert wallet.compute_risk_flags(None, None) == [rules.FLAG_UNKNOWN_CONTRACTS]


def test_health_score_rules():
    assert wallet.compute_health_score(20.0, 2, []) == 65
    assert wallet.compute_health_score(20000.0, 150, []) == 90
    assert wallet.compute_health_score(1000.0, 20, [rules.FLAG_UNKNOWN_CONTRACTS, rules.FLAG_HIGH_GAS]) == 65
    assert wallet.compute_health_score(None, None, []) == 80


@pytest.mark.parametrize('total', [None, 0.0, 49.99, 10000.01, 1e18])
@pytest.mark.parametrize('tx', [None, 0, 4, 101, 10 ** 9])
def test_health_score_bounded(total, tx):
    flags = wallet.compute_risk_flags(total, tx) + [rules.FLAG_HIGH_GAS]
    assert 0 <= wallet.compute_health_score(total, tx, flags) <= 100


def test_summary_text():
    text = wallet.generate_summary_text('ethereum', 1234.5, 2, [rules.FLAG_NEW_WALLET])
    assert '$1234.50' in text
    assert 'relatively new' in text
    assert rules.FLAG_NEW_WALLET in text

    text = wallet.generate_summary_text('base', None, 500, [], tokens_usd=10.0)
    assert 'could not be fully priced' in text
    assert 'active user' in text
    assert 'No major risk signals' in text


def test_personality_and_badge():
    assert wallet.wallet_personality(200000.0, [], 10) == 'Whale'
    assert wallet.wallet_personality(6000.0, [{'symbol': 'USDC'}], 50) == 'Stablecoin Maxi'
    assert wallet.wallet_personality(10.0, [], 1) == 'New Wallet'
    assert wallet.wallet_personality(None, [], None) == 'Balanced User'
    assert wallet.whale_badge(300000.0) == 'Mega Whale'
    assert wallet.whale_badge(60000.0) == 'Whale'
    assert wallet.whale_badge(100.0) is None
    assert wallet.whale_badge(None) is None


def test_activity_sorted_and_capped():
    raw = [transfer_log(USDC, BOB, ALICE, 10 ** 6, 99000 + i) for i in range(30)]
    raw.append(transfer_log(DAI, ALICE, BOB, 5 * 10 ** 18, 99500))
    raw.append(transfer_log(WETH, BOB, '0x' + 'e' * 40, 1, 99600))
    p = WalletProvider(raw_logs=raw)

    activity = wallet.get_wallet_activity(p, ETH, ALICE)
    assert len(activity) == rules.ACTIVITY_MAX_EVENTS
    blocks = [a['blockNumber'] for a in activity]
    assert blocks == sorted(blocks, reverse=True)
    top = activity[0]
    assert top['token'] == 'DAI'
    assert top['direction'] == 'out'
    assert top['amount'] == 5.0
    assert activity[1]['direction'] == 'in'
    assert all('_logIndex' not in a for a in activity)


def test_activity_empty_when_block_height_unknown():
    p = WalletProvider(raw_logs=[transfer_log(USDC, BOB, ALICE, 1, 99999)], fail={'block'})
    assert wallet.get_wallet_activity(p, ETH, ALICE) == []


def test_summarize_wallet_with_portfolio(monkeypatch, coingecko):
    p = WalletProvider(
        balance_wei=10 ** 18,
        tx_count=20,
        price=2000,
        token_balances={USDC.address: 1500 * 10 ** 6, WETH.address: 2 * 10 ** 18},
    )
    monkeypatch.setattr(rpc, 'select_provider', lambda chain: p)

    res = wallet.summarize_wallet('ethereum', ALICE)
    assert res['chain'] == 'ethereum'
    assert res['nativeSymbol'] == 'ETH'
    assert res['balanceEth'] == 1.0
    assert res['nativePriceUsd'] == 2000.0
    assert res['nativeUsd'] == 2000.0
    assert res['tokensUsdValue'] == 7500.0
    assert res['totalUsdValue'] == 9500.0
    assert [t['symbol'] for t in res['portfolio']] == ['USDC', 'WETH']
    assert res['riskFlags'] == [rules.FLAG_UNKNOWN_CONTRACTS]
    assert res['healthScore'] == 70
    assert res['personality'] == 'Stablecoin Maxi'
    assert res['whaleBadge'] is None
    # only held tokens are priced
    assert coingecko == [{'ids': 'usd-coin,weth', 'vs_currencies': 'usd'}]


def test_summarize_zero_balance_wallet(monkeypatch, coingecko):
    monkeypatch.setattr(rpc, 'select_provider', lambda chain: WalletProvider(balance_wei=0, tx_count=0))
    res = wallet.summarize_wallet('ethereum', ALICE)
    assert res['totalUsdValue'] == 0.0
    assert res['tokensUsdValue'] == 0.0
    assert res['portfolio'] == []
    assert res['activity'] == []
    assert rules.FLAG_NEW_WALLET in res['riskFlags']
    assert rules.FLAG_LOW_VALUE in res['riskFlags']
    assert res['healthScore'] == 55
    assert res['personality'] == 'New Wallet'
    assert coingecko == []


def test_summarize_without_native_price(monkeypatch, coingecko):
    p = WalletProvider(balance_wei=10 ** 18, tx_count=20, price=None, token_balances={USDC.address: 100 * 10 ** 6})
    monkeypatch.setattr(rpc, 'select_provider', lambda chain: p)
    res = wallet.summarize_wallet('ethereum', ALICE)
    assert res['balanceEth'] == 1.0
    assert res['nativePriceUsd'] is None
    assert res['nativeUsd'] is None
    assert res['totalUsdValue'] is None
    assert res['tokensUsdValue'] == 100.0
    assert res['riskFlags'] == [rules.FLAG_UNKNOWN_CONTRACTS]
    assert res['healthScore'] == 70
    assert res['whaleBadge'] is None
    assert 'could not be fully priced' in res['aiSummary']


def test_summarize_partial_failures(monkeypatch, coingecko):
    p = WalletProvider(price=2000, fail={'balance', 'txcount'})
    monkeypatch.setattr(rpc, 'select_provider', lambda chain: p)
    res = wallet.summarize_wallet('ethereum', ALICE)
    assert res['balanceEth'] is None
    assert res['txCount'] is None
    assert res['totalUsdValue'] is None
    assert res['healthScore'] == 70


def test_summarize_rejects_bad_address(monkeypatch):
    def no_network(chain):
        raise AssertionError('provider must not be selected')

    monkeypatch.setattr(rpc, 'select_provider', no_network)
    with pytest.raises(MalformedInput):
        wallet.summarize_wallet('ethereum', 'not-an-address')


def test_failed_token_read_is_omitted(monkeypatch, coingecko):
    p = WalletProvider(
        balance_wei=10 ** 18,
        tx_count=20,
        token_balances={USDC.address: 10 * 10 ** 6, DAI.address: 3 * 10 ** 18, WETH.address: 10 ** 18},
        fail={f"balanceOf:{DAI.address}"},
    )
    monkeypatch.setattr(rpc, 'select_provider', lambda chain: p)
    res = wallet.summarize_wallet('ethereum', ALICE)
    assert [t['symbol'] for t in res['portfolio']] == ['USDC', 'WETH']
    assert res['tokensUsdValue'] == 3010.0
    assert coingecko == [{'ids': 'usd-coin,weth', 'vs_currencies': 'usd'}]


def test_activity_survives_one_failed_scan():
    raw = [
        transfer_log(USDC, BOB, ALICE, 10 ** 6, 99000),
        transfer_log(DAI, ALICE, BOB, 10 ** 18, 99100),
        transfer_log(WETH, BOB, ALICE, 10 ** 18, 99200),
    ]
    p = WalletProvider(raw_logs=raw, fail={f"logs:{DAI.address}"})
    activity = wallet.get_wallet_activity(p, ETH, ALICE)
    assert [a['token'] for a in activity] == ['WETH', 'USDC']


def test_activity_ties_ordered_by_log_index():
    raw = [
        transfer_log(USDC, BOB, ALICE, 1 * 10 ** 6, 99000, index=2),
        transfer_log(USDC, ALICE, BOB, 2 * 10 ** 6, 99000, index=7),
        transfer_log(DAI, BOB, ALICE, 3 * 10 ** 18, 99000, index=4),
        transfer_log(USDC, BOB, ALICE, 4 * 10 ** 6, 98999, index=9),
    ]
    activity = wallet.get_wallet_activity(WalletProvider(raw_logs=raw), ETH, ALICE)
    assert [a['amount'] for a in activity] == [2.0, 3.0, 1.0, 4.0]
