from __future__ import annotations

"""Transaction diagnostics.

Exports:
- diagnose_transaction
- infer_protocols
- get_contract_intel
- classify_transaction
- gas_efficiency

One read-only pass over a transaction and its receipt: parties, native
value in USD, status, gas, protocol tags, curated-token transfers and a
small amount of intelligence about the destination contract.
"""

from typing import Any, Dict, List, Optional
import logging
import re
import time

import requests

from vanta.config import rules
from vanta.config.chains import Chain, get_chain
from vanta.services import logs, prices, rpc
from vanta.services.errors import MalformedInput, NoHealthyEndpoint, RpcError, TransactionNotFound
from vanta.services.runtime import best_effort

logger = logging.getLogger(__name__)

__all__ = [
    'diagnose_transaction',
    'infer_protocols',
    'get_contract_intel',
    'classify_transaction',
    'gas_efficiency',
]

WEI_PER_ETH = 10 ** 18
TX_HASH_RE = re.compile(r'^0x[0-9a-fA-F]{64}$')


def infer_protocols(to_address: Optional[str], label: Optional[str] = None) -> List[str]:
    """Tag the destination by substring rules over its textual form.

    The textual form is the address plus, when the destination is a curated
    spender, its label. No destination (contract creation) gives no tags.
    """
    to = (to_address or '').lower()
    if not to:
        return []
    text = f"{to} {label.lower()}" if label else to
    tags: List[str] = []
    for fragment, tag in rules.PROTOCOL_TAG_RULES:
        if fragment in text and tag not in tags:
            tags.append(tag)
    if not tags:
        tags.append(rules.UNKNOWN_PROTOCOL_TAG)
    return tags


def _unknown_intel() -> Dict[str, Any]:
    return {'isContract': None, 'codeSize': None, 'deployTx': None, 'ageBlocks': None, 'txCount': None}


def _read_intel(provider, address: str) -> Dict[str, Any]:
    code = provider.get_code(address)
    if not code or code == '0x':
        return {'isContract': False, 'codeSize': 0, 'deployTx': None, 'ageBlocks': None, 'txCount': None}
    return {
        'isContract': True,
        'codeSize': (len(code) - 2) // 2,
        'deployTx': None,
        'ageBlocks': None,
        'txCount': provider.get_transaction_count(address),
    }


def get_contract_intel(provider, address: str) -> Dict[str, Any]:
    """Basic facts about ``address``; an all-null record when lookups fail."""
    return best_effort(_read_intel, provider, address, default=_unknown_intel(), what=f"contract intel {address}")


def classify_transaction(value_eth: float, token_transfers: List[Dict[str, Any]], to_address: Optional[str], intel: Optional[Dict[str, Any]]) -> str:
    if token_transfers:
        if value_eth > 0:
            return 'Swap (native + tokens)'
        return 'Token transfer / swap'
    if value_eth > 0 and to_address:
        return 'Native transfer'
    if intel and intel.get('isContract'):
        return 'Contract interaction'
    return 'Unknown'


def gas_efficiency(gas_used: Optional[int]) -> Optional[Dict[str, Any]]:
    if not gas_used:
        return None
    for upper, score, label in rules.GAS_EFFICIENCY_BRACKETS:
        if upper is None or gas_used < upper:
            return {'score': score, 'label': label}
    return None


def _receipt_status(receipt: Optional[Dict[str, Any]]) -> str:
    if not receipt:
        return 'pending'
    return 'success' if rpc.hex_to_int(receipt.get('status')) == 1 else 'failed'


def _decode_token_transfers(chain: Chain, receipt: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Curated-token Transfer events in the receipt, joined with USD prices."""
    events = []
    for log in (receipt or {}).get('logs') or []:
        token = chain.token_by_address(log.get('address'))
        if token is None:
            continue
        ev = logs.decode_transfer_log(log, token)
        if ev is not None:
            events.append((token, ev))
    if not events:
        return []

    token_prices = prices.get_token_prices(t.coingecko_id for t, _ in events)
    transfers: List[Dict[str, Any]] = []
    for token, ev in events:
        price = token_prices.get(token.coingecko_id or '')
        transfers.append({
            'token': ev.token,
            'contract': ev.contract,
            'from': ev.from_address,
            'to': ev.to_address,
            'amount': ev.amount,
            'amountUsd': ev.amount * price if price else None,
        })
    return transfers


def _read_transaction(provider, chain: Chain, tx_hash: str) -> Optional[Dict[str, Any]]:
    """The one read a diagnostic cannot do without.

    A transport or RPC failure here means the selected endpoint went bad
    after its probe, which is reported like an unreachable chain.
    """
    try:
        return provider.get_transaction(tx_hash)
    except (requests.RequestException, RpcError, OSError, ValueError) as e:
        logger.warning("Transaction read for %s failed on %s: %s", tx_hash, provider.url, e)
        raise NoHealthyEndpoint(chain.id, [f"{provider.url}: {e}"]) from e


def diagnose_transaction(chain_id: str, tx_hash: str) -> Dict[str, Any]:
    """Build the diagnostic record for ``tx_hash`` on ``chain_id``.

    Raises ``UnsupportedChain``, ``MalformedInput``, ``NoHealthyEndpoint`` or
    ``TransactionNotFound``; every other failure degrades to a null field.
    """
    chain = get_chain(chain_id)
    tx_hash = tx_hash.strip() if isinstance(tx_hash, str) else ''
    if not TX_HASH_RE.match(tx_hash):
        raise MalformedInput('Invalid transaction hash format')

    provider = rpc.select_provider(chain.id)
    tx = _read_transaction(provider, chain, tx_hash)
    receipt = best_effort(provider.get_transaction_receipt, tx_hash, what='receipt')
    if not tx:
        raise TransactionNotFound(chain.id, tx_hash)

    native_price = prices.get_native_price(provider, chain)
    value_eth = (rpc.hex_to_int(tx.get('value')) or 0) / WEI_PER_ETH
    value_usd = value_eth * native_price if native_price else None

    to_address = tx.get('to')
    protocols = infer_protocols(to_address, chain.spender_label(to_address))
    token_transfers = _decode_token_transfers(chain, receipt)
    intel = get_contract_intel(provider, to_address) if to_address else None

    gas_used = best_effort(rpc.hex_to_int, (receipt or {}).get('gasUsed'), what='gasUsed')
    status = _receipt_status(receipt)
    logger.info("Diagnosed %s on %s: status=%s transfers=%d", tx_hash, chain.id, status, len(token_transfers))

    return {
        'chain': chain.id,
        'nativeSymbol': chain.native_symbol,
        'txHash': tx_hash,
        'from': tx.get('from'),
        'to': to_address,
        'gasUsed': str(gas_used) if gas_used is not None else None,
        'status': status,
        'valueEth': value_eth,
        'valueUsd': value_usd,
        'blockNumber': best_effort(rpc.hex_to_int, tx.get('blockNumber'), what='blockNumber'),
        'timestamp': int(time.time() * 1000),
        'protocols': protocols,
        'tokenTransfers': token_transfers,
        'contractIntel': intel,
        'classification': classify_transaction(value_eth, token_transfers, to_address, intel),
        'gasEfficiency': gas_efficiency(gas_used),
    }
