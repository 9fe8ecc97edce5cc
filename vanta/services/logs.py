from __future__ import annotations

"""ERC-20 Transfer log decoding.

Used on a fixed set of logs (a transaction receipt) and on block-range
scans (wallet activity). A log that does not decode is skipped; it never
fails the caller.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import logging

from eth_abi import decode

from vanta.config.chains import Token

logger = logging.getLogger(__name__)

# keccak256("Transfer(address,address,uint256)")
TRANSFER_TOPIC = '0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef'


@dataclass(frozen=True)
class TransferEvent:
    token: str
    contract: str
    from_address: str
    to_address: str
    raw_value: int
    amount: float
    block_number: Optional[int]
    tx_hash: Optional[str]
    log_index: Optional[int]


def address_topic(address: str) -> str:
    """Left-pad an address to a 32-byte topic."""
    addr = address.lower()
    if addr.startswith('0x'):
        addr = addr[2:]
    return '0x' + addr.rjust(64, '0')


def _hex_bytes(value: str) -> bytes:
    hx = value[2:] if value.startswith('0x') else value
    return bytes.fromhex(hx)


def _quantity(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    s = str(value)
    return int(s, 16) if s.startswith('0x') else int(s)


def scale_amount(raw: int, decimals: int) -> float:
    if decimals and decimals > 0:
        return raw / (10 ** decimals)
    return float(raw)


def decode_transfer_log(log: Dict[str, Any], token: Token) -> Optional[TransferEvent]:
    """Decode one raw log as a Transfer of ``token``; None if it isn't one."""
    try:
        if (log.get('address') or '').lower() != token.address.lower():
            return None
        topics = log.get('topics') or []
        if len(topics) < 3 or (topics[0] or '').lower() != TRANSFER_TOPIC:
            return None
        (from_addr,) = decode(['address'], _hex_bytes(topics[1]))
        (to_addr,) = decode(['address'], _hex_bytes(topics[2]))
        (raw,) = decode(['uint256'], _hex_bytes(log.get('data') or '0x'))
        return TransferEvent(
            token=token.symbol,
            contract=token.address,
            from_address=from_addr,
            to_address=to_addr,
            raw_value=raw,
            amount=scale_amount(raw, token.decimals),
            block_number=_quantity(log.get('blockNumber')),
            tx_hash=log.get('transactionHash'),
            log_index=_quantity(log.get('logIndex')),
        )
    except Exception as e:
        logger.debug("Skipping malformed Transfer log for %s: %s", token.symbol, e)
        return None


def decode_transfer_logs(logs: List[Dict[str, Any]], token: Token) -> List[TransferEvent]:
    out: List[TransferEvent] = []
    for log in logs or []:
        ev = decode_transfer_log(log, token)
        if ev is not None:
            out.append(ev)
    return out


def scan_transfer_logs(provider, token: Token, from_block: int, to_block: int, address: Optional[str] = None) -> List[TransferEvent]:
    """Transfer events of ``token`` in [from_block, to_block].

    With ``address`` the scan is narrowed by topic to transfers sent from or
    received by it; results from both queries are merged on (tx hash, log index).
    """
    if address is None:
        raw_logs = provider.get_logs(token.address, from_block, to_block, [TRANSFER_TOPIC])
        return decode_transfer_logs(raw_logs, token)

    topic = address_topic(address)
    sent = provider.get_logs(token.address, from_block, to_block, [TRANSFER_TOPIC, topic])
    received = provider.get_logs(token.address, from_block, to_block, [TRANSFER_TOPIC, None, topic])

    seen = set()
    out: List[TransferEvent] = []
    for ev in decode_transfer_logs(list(sent) + list(received), token):
        key = (ev.tx_hash, ev.log_index)
        if ev.tx_hash and key in seen:
            continue
        seen.add(key)
        out.append(ev)
    return out
