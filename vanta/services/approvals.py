from __future__ import annotations

"""Allowance scan over curated tokens x curated spenders."""

from typing import Any, Dict, List, Optional, Tuple
import logging

from vanta.config import rules
from vanta.config.chains import ERC20_METHODS, Spender, Token, get_chain
from vanta.config.settings import active_settings
from vanta.services import logs, rpc
from vanta.services.runtime import best_effort, fetch_ordered, require_address

logger = logging.getLogger(__name__)


def classify_allowance(amount: float) -> Tuple[bool, str]:
    """Return (unlimited, risk tier) for a decimal allowance."""
    unlimited = amount > rules.UNLIMITED_APPROVAL_AMOUNT
    if amount > rules.APPROVAL_HIGH_RISK_AMOUNT:
        risk = 'high'
    elif amount > rules.APPROVAL_MEDIUM_RISK_AMOUNT:
        risk = 'medium'
    else:
        risk = 'low'
    return unlimited, risk


def _read_allowance(provider, token: Token, owner: str, spender: Spender) -> float:
    data = rpc.encode_call(ERC20_METHODS['allowance'], ['address', 'address'], [owner, spender.address])
    raw = provider.call_uint256(token.address, data)
    return logs.scale_amount(raw, token.decimals)


def scan_approvals(chain_id: str, address: str) -> List[Dict[str, Any]]:
    """Nonzero allowances granted by ``address``, in token-major registry order."""
    chain = get_chain(chain_id)
    owner = require_address(address)
    if not chain.tokens or not chain.spenders:
        return []

    provider = rpc.select_provider(chain.id)
    pairs = [(t, s) for t in chain.tokens for s in chain.spenders]

    def _read(pair: Tuple[Token, Spender]) -> Optional[float]:
        token, spender = pair
        return best_effort(_read_allowance, provider, token, owner, spender,
                           what=f"allowance {token.symbol}->{spender.label}")

    approvals: List[Dict[str, Any]] = []
    for (token, spender), amount in zip(pairs, fetch_ordered(_read, pairs, max_workers=active_settings().MAX_WORKERS)):
        if amount is None or amount <= 0:
            continue
        unlimited, risk = classify_allowance(amount)
        approvals.append({
            'token': token.symbol,
            'tokenAddress': token.address,
            'spender': spender.address,
            'spenderLabel': spender.label,
            'amount': amount,
            'unlimited': unlimited,
            'risk': risk,
        })
    logger.info("Approvals for %s on %s: %d of %d pairs nonzero", owner, chain.id, len(approvals), len(pairs))
    return approvals
