"""
Chain Registry
Endpoints, Chainlink feeds, curated tokens and spenders for each supported network
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from vanta.config.settings import Settings
from vanta.services.errors import UnsupportedChain

# Public RPC endpoints, in preference order
RPC_ENDPOINTS: Dict[str, List[str]] = {
    'ethereum': [
        'https://eth.llamarpc.com',
        'https://rpc.ankr.com/eth',
        'https://ethereum.publicnode.com',
    ],
    'base': [
        'https://base.llamarpc.com',
        'https://mainnet.base.org',
    ],
    'arbitrum': [
        'https://arbitrum.llamarpc.com',
        'https://arb1.arbitrum.io/rpc',
    ],
    'polygon': [
        'https://polygon.llamarpc.com',
        'https://polygon-rpc.com',
    ],
    'optimism': [
        'https://optimism.llamarpc.com',
        'https://mainnet.optimism.io',
    ],
}

NATIVE_SYMBOLS: Dict[str, str] = {
    'ethereum': 'ETH',
    'base': 'ETH',
    'arbitrum': 'ETH',
    'polygon': 'MATIC',
    'optimism': 'ETH',
}

# Chainlink <native>/USD aggregators (8 decimals)
CHAINLINK_FEEDS: Dict[str, str] = {
    'ethereum': '0x5f4ec3df9cbd43714fe2740f5e3616155c5b8419',
    'base': '0x4d5f47fa6a74757f35c14fd3a6ef8e3c9bc514e8',
    'arbitrum': '0x639fe6ab55c921f74e7fac1ee960c0b6293ba612',
    'polygon': '0xab594600376ec9fd91f8e885dadf0ce036862de0',
    'optimism': '0x13e3ee699d1909e989722e753853ae30b17e08c5',
}

# Curated ERC-20 tokens: (address, symbol, decimals, coingecko id)
TOKENS: Dict[str, List[Tuple[str, str, int, str]]] = {
    'ethereum': [
        ('0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48', 'USDC', 6, 'usd-coin'),
        ('0xdac17f958d2ee523a2206206994597c13d831ec7', 'USDT', 6, 'tether'),
        ('0x6b175474e89094c44da98b954eedeac495271d0f', 'DAI', 18, 'dai'),
        ('0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2', 'WETH', 18, 'weth'),
    ],
    'base': [
        ('0x833589fcd6edb6e08f4c7c32d4f71b54bda02913', 'USDC', 6, 'usd-coin'),
    ],
    'arbitrum': [
        ('0xff970a61a04b1ca14834a43f5de4533ebddb5cc8', 'USDC.e', 6, 'usd-coin'),
    ],
    'polygon': [
        ('0x2791bca1f2de4661ed88a30c99a7a9449aa84174', 'USDC', 6, 'usd-coin'),
    ],
    'optimism': [
        ('0x7f5c764cbc14f9669b88837ca1490cca17c31607', 'USDC.e', 6, 'usd-coin'),
    ],
}

# Known spenders checked by the approval scanner
SPENDERS: Dict[str, List[Tuple[str, str]]] = {
    'ethereum': [
        ('0xE592427A0AEce92De3Edee1F18E0157C05861564', 'Uniswap V3 Router'),
        ('0x1111111254EEB25477B68fb85Ed929f73A960582', '1inch Router'),
    ],
    'base': [],
    'arbitrum': [],
    'polygon': [],
    'optimism': [],
}

# ERC-20 / Chainlink method selectors
ERC20_METHODS = {
    'balanceOf': '0x70a08231',
    'allowance': '0xdd62ed3e',
}
CHAINLINK_METHODS = {
    'latestRoundData': '0xfeaf968c',
}


@dataclass(frozen=True)
class Token:
    address: str
    symbol: str
    decimals: int
    coingecko_id: Optional[str] = None


@dataclass(frozen=True)
class Spender:
    address: str
    label: str


@dataclass(frozen=True)
class Chain:
    id: str
    rpc_urls: Tuple[str, ...]
    native_symbol: str
    price_feed: Optional[str]
    tokens: Tuple[Token, ...] = ()
    spenders: Tuple[Spender, ...] = ()

    def token_by_address(self, address: Optional[str]) -> Optional[Token]:
        addr = (address or '').lower()
        for t in self.tokens:
            if t.address.lower() == addr:
                return t
        return None

    def spender_label(self, address: Optional[str]) -> Optional[str]:
        addr = (address or '').lower()
        for s in self.spenders:
            if s.address.lower() == addr:
                return s.label
        return None


def build_registry(settings: Optional[Settings] = None) -> Mapping[str, Chain]:
    """Assemble the immutable chain registry from the tables above."""
    registry: Dict[str, Chain] = {}
    for chain_id, urls in RPC_ENDPOINTS.items():
        extra = settings.extra_rpc_urls(chain_id) if settings is not None else []
        ordered = list(dict.fromkeys(extra + urls))
        registry[chain_id] = Chain(
            id=chain_id,
            rpc_urls=tuple(ordered),
            native_symbol=NATIVE_SYMBOLS.get(chain_id, 'ETH'),
            price_feed=CHAINLINK_FEEDS.get(chain_id),
            tokens=tuple(Token(a, s, d, cg) for a, s, d, cg in TOKENS.get(chain_id, [])),
            spenders=tuple(Spender(a, label) for a, label in SPENDERS.get(chain_id, [])),
        )
    return MappingProxyType(registry)


REGISTRY: Mapping[str, Chain] = build_registry(Settings.from_env())
SUPPORTED_CHAINS: Tuple[str, ...] = tuple(REGISTRY.keys())


def get_chain(chain_id: Optional[str]) -> Chain:
    key = chain_id.strip().lower() if isinstance(chain_id, str) else ''
    chain = REGISTRY.get(key)
    if chain is None:
        raise UnsupportedChain(chain_id)
    return chain
