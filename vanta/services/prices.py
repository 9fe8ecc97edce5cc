from __future__ import annotations

"""Price lookups.

Two sources that are never cross-checked against each other:

- the chain's Chainlink native/USD aggregator, read through the active provider;
- CoinGecko's ``simple/price`` endpoint for curated tokens.

Both return an absent value on failure instead of raising.
"""

from typing import Any, Dict, Iterable, List, Optional
import logging

import requests
from eth_abi import decode

from vanta.config.chains import CHAINLINK_METHODS, Chain
from vanta.config.settings import active_settings
from vanta.services.runtime import best_effort

logger = logging.getLogger(__name__)

CHAINLINK_DECIMALS = 8
_ROUND_DATA_TYPES = ['uint80', 'int256', 'uint256', 'uint256', 'uint80']


def decode_round_answer(result_hex: str) -> Optional[float]:
    """Decode ``latestRoundData()`` return data to a USD price."""
    if not result_hex or result_hex == '0x':
        return None
    hx = result_hex[2:] if result_hex.startswith('0x') else result_hex
    _, answer, _, _, _ = decode(_ROUND_DATA_TYPES, bytes.fromhex(hx))
    if answer <= 0:
        return None
    return answer / 10 ** CHAINLINK_DECIMALS


def _read_feed(provider, feed: str) -> Optional[float]:
    return decode_round_answer(provider.eth_call(feed, CHAINLINK_METHODS['latestRoundData']))


def get_native_price(provider, chain: Chain) -> Optional[float]:
    """USD price of the chain's native asset, or None when unknown."""
    if not chain.price_feed:
        return None
    return best_effort(_read_feed, provider, chain.price_feed, what=f"native price {chain.id}")


def _fetch_simple_price(ids: List[str]) -> Any:
    cfg = active_settings()
    headers = {'Accept': 'application/json'}
    if cfg.COINGECKO_API_KEY:
        headers['x-cg-demo-api-key'] = cfg.COINGECKO_API_KEY
    url = f"{cfg.COINGECKO_BASE}/simple/price"
    params = {'ids': ','.join(ids), 'vs_currencies': 'usd'}
    r = requests.get(url, params=params, timeout=cfg.PRICE_TIMEOUT_SECONDS, headers=headers)
    r.raise_for_status()
    return r.json()


def get_token_prices(coingecko_ids: Iterable[Optional[str]]) -> Dict[str, float]:
    """Batch USD prices keyed by CoinGecko id; empty mapping on failure."""
    ids = list(dict.fromkeys(i for i in coingecko_ids if i))
    if not ids:
        return {}

    jd = best_effort(_fetch_simple_price, ids, what=f"coingecko simple/price {ids}")

    prices: Dict[str, float] = {}
    if not isinstance(jd, dict):
        return prices
    for coin_id in ids:
        entry = jd.get(coin_id)
        if not isinstance(entry, dict):
            continue
        usd = entry.get('usd')
        if isinstance(usd, (int, float)) and not isinstance(usd, bool):
            prices[coin_id] = float(usd)
    return prices
