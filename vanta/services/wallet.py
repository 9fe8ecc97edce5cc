from __future__ import annotations

"""Wallet summary.

Exports:
- summarize_wallet
- compute_risk_flags
- compute_health_score
- generate_summary_text
- wallet_personality
- whale_badge
- get_wallet_activity

Once a provider is acquired nothing here fails the request: each read is
best-effort and a failed read leaves its field absent. Value-keyed rules
are skipped when the USD total is unknown, and tx-count rules are skipped
when the count is unknown; an unknown is never scored as zero.
"""

from typing import Any, Dict, List, Optional
import logging

from vanta.config import rules
from vanta.config.chains import ERC20_METHODS, Chain, Token, get_chain
from vanta.config.settings import active_settings
from vanta.services import logs, prices, rpc
from vanta.services.runtime import best_effort, fetch_ordered, require_address

logger = logging.getLogger(__name__)

__all__ = [
    'summarize_wallet',
    'compute_risk_flags',
    'compute_health_score',
    'generate_summary_text',
    'wallet_personality',
    'whale_badge',
    'get_wallet_activity',
]

WEI_PER_ETH = 10 ** 18


def compute_risk_flags(total_usd: Optional[float], tx_count: Optional[int]) -> List[str]:
    flags: List[str] = []
    if tx_count is not None and tx_count < rules.NEW_WALLET_MAX_TX:
        flags.append(rules.FLAG_NEW_WALLET)
    if total_usd is not None and total_usd > rules.HIGH_VALUE_USD:
        flags.append(rules.FLAG_HIGH_VALUE)
    if total_usd is not None and total_usd < rules.LOW_VALUE_USD:
        flags.append(rules.FLAG_LOW_VALUE)
    if tx_count is not None and tx_count > rules.HIGH_ACTIVITY_MIN_TX:
        flags.append(rules.FLAG_HIGH_ACTIVITY)
    # Counterparty classification is heuristic, so this one always applies
    flags.append(rules.FLAG_UNKNOWN_CONTRACTS)
    return flags


def compute_health_score(total_usd: Optional[float], tx_count: Optional[int], risk_flags: List[str]) -> int:
    """Weighted rule score clamped to [0, 100]."""
    score = rules.HEALTH_BASE

    if total_usd is not None:
        if total_usd < rules.HEALTH_LOW_VALUE_USD:
            score += rules.HEALTH_LOW_VALUE_DELTA
        if total_usd > rules.HEALTH_HIGH_VALUE_USD:
            score += rules.HEALTH_HIGH_VALUE_DELTA

    if tx_count is not None:
        if tx_count < rules.HEALTH_FEW_TX:
            score += rules.HEALTH_FEW_TX_DELTA
        if tx_count > rules.HEALTH_MANY_TX:
            score += rules.HEALTH_MANY_TX_DELTA

    for flag, delta in rules.HEALTH_FLAG_DELTAS:
        if flag in risk_flags:
            score += delta

    return max(rules.HEALTH_MIN, min(rules.HEALTH_MAX, score))


def generate_summary_text(chain: str, total_usd: Optional[float], tx_count: Optional[int], risk_flags: List[str], tokens_usd: float = 0.0) -> str:
    """Template narrative over value, activity and risk flags."""
    parts: List[str] = []

    if total_usd is not None:
        parts.append(f"This wallet has approximately ${total_usd:.2f} in on-chain value on {chain}.")
    else:
        parts.append(
            f"The on-chain value of this wallet on {chain} could not be fully priced; "
            f"curated token holdings are worth approximately ${tokens_usd:.2f}."
        )

    if tx_count is None:
        parts.append("Its transaction history could not be read.")
    elif tx_count < rules.NARRATIVE_NEW_TX:
        parts.append("It appears relatively new with limited transaction history.")
    elif tx_count > rules.NARRATIVE_ACTIVE_TX:
        parts.append("It has a rich transaction history and appears to be an active user.")
    else:
        parts.append("It has a moderate transaction history.")

    if risk_flags:
        parts.append(f"Key risk considerations: {', '.join(risk_flags)}.")
    else:
        parts.append("No major risk signals were detected.")

    return ' '.join(parts)


def wallet_personality(total_usd: Optional[float], portfolio: List[Dict[str, Any]], tx_count: Optional[int]) -> str:
    symbols = [(p.get('symbol') or '').upper() for p in portfolio]
    has_stable = any(any(s in sym for s in rules.STABLECOIN_SYMBOLS) for sym in symbols)
    has_many_tokens = len(portfolio) >= rules.PERSONALITY_MANY_TOKENS

    if total_usd is not None and total_usd > rules.PERSONALITY_WHALE_USD:
        return 'Whale'
    if has_many_tokens and not has_stable:
        return 'DeFi Degen'
    if has_stable and total_usd is not None and total_usd > rules.PERSONALITY_STABLE_MAXI_USD:
        return 'Stablecoin Maxi'
    if tx_count is not None and tx_count < rules.PERSONALITY_NEW_TX:
        return 'New Wallet'
    return 'Balanced User'


def whale_badge(total_usd: Optional[float]) -> Optional[str]:
    if total_usd is None:
        return None
    if total_usd > rules.MEGA_WHALE_USD:
        return 'Mega Whale'
    if total_usd > rules.WHALE_USD:
        return 'Whale'
    return None


def _event_record(ev: logs.TransferEvent, target: str) -> Dict[str, Any]:
    return {
        'type': 'token_transfer',
        'token': ev.token,
        'contract': ev.contract,
        'from': ev.from_address,
        'to': ev.to_address,
        'amount': ev.amount,
        'direction': 'in' if ev.to_address.lower() == target else 'out',
        'blockNumber': ev.block_number,
        'txHash': ev.tx_hash,
        '_logIndex': ev.log_index,
    }


def get_wallet_activity(provider, chain: Chain, address: str) -> List[Dict[str, Any]]:
    """Recent curated-token transfers touching ``address``, newest first."""
    if not chain.tokens:
        return []
    latest = best_effort(provider.block_number, what='activity block height')
    if latest is None:
        return []
    from_block = max(0, latest - rules.ACTIVITY_BLOCK_WINDOW)
    target = address.lower()

    def _scan(token: Token) -> List[logs.TransferEvent]:
        return best_effort(logs.scan_transfer_logs, provider, token, from_block, latest, address,
                           default=[], what=f"activity scan {token.symbol}") or []

    events: List[Dict[str, Any]] = []
    for token_events in fetch_ordered(_scan, list(chain.tokens), max_workers=active_settings().MAX_WORKERS):
        for ev in token_events or []:
            if target not in (ev.from_address.lower(), ev.to_address.lower()):
                continue
            events.append(_event_record(ev, target))

    events.sort(key=lambda e: (e['blockNumber'] or 0, e['_logIndex'] or 0), reverse=True)
    trimmed = events[:rules.ACTIVITY_MAX_EVENTS]
    for e in trimmed:
        e.pop('_logIndex', None)
    return trimmed


def _token_balance(provider, token: Token, address: str) -> Optional[float]:
    data = rpc.encode_call(ERC20_METHODS['balanceOf'], ['address'], [address])
    raw = provider.call_uint256(token.address, data)
    return logs.scale_amount(raw, token.decimals)


def _build_portfolio(provider, chain: Chain, address: str) -> List[Dict[str, Any]]:
    tokens = list(chain.tokens)

    def _read(token: Token) -> Optional[float]:
        return best_effort(_token_balance, provider, token, address, what=f"balanceOf {token.symbol}")

    balances = fetch_ordered(_read, tokens, max_workers=active_settings().MAX_WORKERS)
    held = [(t, amt) for t, amt in zip(tokens, balances) if amt is not None and amt > 0]
    if not held:
        return []

    token_prices = prices.get_token_prices(t.coingecko_id for t, _ in held)
    portfolio: List[Dict[str, Any]] = []
    for token, amount in held:
        price = token_prices.get(token.coingecko_id or '')
        portfolio.append({
            'symbol': token.symbol,
            'address': token.address,
            'amount': amount,
            'amountUsd': amount * price if price else None,
        })
    return portfolio


def summarize_wallet(chain_id: str, address: str) -> Dict[str, Any]:
    """Build the WalletSummary for ``address`` on ``chain_id``.

    Only ``UnsupportedChain``, ``MalformedInput`` and ``NoHealthyEndpoint``
    escape; everything after provider selection degrades in place.
    """
    chain = get_chain(chain_id)
    address = require_address(address)
    provider = rpc.select_provider(chain.id)

    balance_wei = best_effort(provider.get_balance, address, what='native balance')
    tx_count = best_effort(provider.get_transaction_count, address, what='tx count')
    native_price = prices.get_native_price(provider, chain)

    balance_eth = balance_wei / WEI_PER_ETH if balance_wei is not None else None
    native_usd = balance_eth * native_price if (balance_eth is not None and native_price) else None

    portfolio = _build_portfolio(provider, chain, address)
    tokens_usd = sum((p['amountUsd'] for p in portfolio if p['amountUsd'] is not None), 0.0)
    total_usd = native_usd + tokens_usd if native_usd is not None else None

    risk_flags = compute_risk_flags(total_usd, tx_count)
    activity = get_wallet_activity(provider, chain, address)
    logger.info("Wallet %s on %s: tokens=%d activity=%d total_usd=%s",
                address, chain.id, len(portfolio), len(activity), total_usd)

    return {
        'chain': chain.id,
        'nativeSymbol': chain.native_symbol,
        'address': address,
        'balanceEth': balance_eth,
        'nativePriceUsd': native_price,
        'nativeUsd': native_usd,
        'tokensUsdValue': tokens_usd,
        'totalUsdValue': total_usd,
        'txCount': tx_count,
        'riskFlags': risk_flags,
        'portfolio': portfolio,
        'activity': activity,
        'healthScore': compute_health_score(total_usd, tx_count, risk_flags),
        'aiSummary': generate_summary_text(chain.id, total_usd, tx_count, risk_flags, tokens_usd),
        'personality': wallet_personality(total_usd, portfolio, tx_count),
        'whaleBadge': whale_badge(total_usd),
    }
