from __future__ import annotations

"""JSON-RPC access and provider selection.

``select_provider`` races a liveness probe against every configured
endpoint of a chain and hands back the first one that answers. The race
itself (``race_first_healthy``) knows nothing about JSON-RPC; any
candidate type with a probe callable works.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar
import concurrent.futures
import itertools
import logging

import requests
from eth_abi import decode, encode

from vanta.config import chains
from vanta.config.settings import active_settings
from vanta.services.errors import NoHealthyEndpoint, RpcError

logger = logging.getLogger(__name__)

C = TypeVar('C')

_request_ids = itertools.count(1)


def hex_to_int(value: Any) -> Optional[int]:
    """Parse an RPC quantity ('0x1a', int, None)."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    s = str(value).strip()
    if not s:
        return None
    return int(s, 16) if s.lower().startswith('0x') else int(s)


def encode_call(selector: str, types: List[str], args: List[Any]) -> str:
    """Calldata for ``selector`` with ABI-encoded ``args`` (addresses lowercased)."""
    norm = [a.lower() if t == 'address' and isinstance(a, str) else a for t, a in zip(types, args)]
    return selector + encode(types, norm).hex()


class Provider:
    """Connection handle to one JSON-RPC endpoint of a chain.

    Obtain instances through ``select_provider`` so that only endpoints
    which answered a liveness probe are handed to callers.
    """

    def __init__(self, url: str, chain: str, timeout: Optional[float] = None) -> None:
        self.url = url
        self.chain = chain
        self.timeout = timeout if timeout is not None else active_settings().RPC_TIMEOUT_SECONDS

    def __repr__(self) -> str:
        return f"Provider(chain={self.chain!r}, url={self.url!r})"

    def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        payload = {'jsonrpc': '2.0', 'method': method, 'params': params or [], 'id': next(_request_ids)}
        r = requests.post(self.url, json=payload, timeout=self.timeout, headers={'Accept': 'application/json'})
        r.raise_for_status()
        try:
            jd = r.json()
        except ValueError as e:
            raise RpcError(self.url, method, f"invalid JSON: {e}")
        if not isinstance(jd, dict):
            raise RpcError(self.url, method, 'unexpected response shape')
        err = jd.get('error')
        if err:
            code = err.get('code') if isinstance(err, dict) else None
            message = err.get('message') if isinstance(err, dict) else str(err)
            raise RpcError(self.url, method, str(message), code=code)
        if 'result' not in jd:
            raise RpcError(self.url, method, 'missing result')
        return jd['result']

    # --- standard EVM reads ---

    def block_number(self) -> int:
        n = hex_to_int(self.call('eth_blockNumber'))
        if n is None:
            raise RpcError(self.url, 'eth_blockNumber', 'empty result')
        return n

    def get_balance(self, address: str) -> int:
        return hex_to_int(self.call('eth_getBalance', [address, 'latest'])) or 0

    def get_transaction_count(self, address: str) -> int:
        return hex_to_int(self.call('eth_getTransactionCount', [address, 'latest'])) or 0

    def get_code(self, address: str) -> str:
        return self.call('eth_getCode', [address, 'latest']) or '0x'

    def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return self.call('eth_getTransactionByHash', [tx_hash])

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return self.call('eth_getTransactionReceipt', [tx_hash])

    def eth_call(self, to: str, data: str) -> str:
        return self.call('eth_call', [{'to': to, 'data': data}, 'latest']) or '0x'

    def call_uint256(self, to: str, data: str) -> int:
        """``eth_call`` returning a single uint256."""
        res = self.eth_call(to, data)
        if not res or res == '0x':
            raise RpcError(self.url, 'eth_call', f"empty return from {to}")
        (value,) = decode(['uint256'], bytes.fromhex(res[2:] if res.startswith('0x') else res))
        return value

    def get_logs(self, address: str, from_block: int, to_block: int, topics: Sequence[Optional[str]]) -> List[Dict[str, Any]]:
        flt = {
            'address': address,
            'fromBlock': hex(from_block),
            'toBlock': hex(to_block),
            'topics': list(topics),
        }
        return self.call('eth_getLogs', [flt]) or []


def race_first_healthy(candidates: Sequence[C], probe: Callable[[C], Any], label: str = '') -> C:
    """Probe all candidates concurrently and return the first that passes.

    Probes still running when a winner is found are left to finish on
    their own; their outcome is ignored. Raises ``NoHealthyEndpoint`` when
    every probe fails.
    """
    if not candidates:
        raise NoHealthyEndpoint(label, ['no candidates configured'])

    errors: List[str] = []
    ex = concurrent.futures.ThreadPoolExecutor(max_workers=len(candidates), thread_name_prefix='probe')
    try:
        future_map = {ex.submit(probe, c): c for c in candidates}
        for fut in concurrent.futures.as_completed(future_map):
            candidate = future_map[fut]
            try:
                fut.result()
            except Exception as e:
                logger.debug("Probe failed for %s: %s", candidate, e)
                errors.append(f"{candidate}: {e}")
                continue
            return candidate
    finally:
        # Do not wait for the losers
        ex.shutdown(wait=False)
    raise NoHealthyEndpoint(label, errors)


def _probe(provider: Provider) -> int:
    return provider.block_number()


def select_provider(chain_id: str, timeout: Optional[float] = None) -> Provider:
    """Return a live Provider for ``chain_id``.

    Raises ``UnsupportedChain`` for unknown chains and ``NoHealthyEndpoint``
    when no endpoint answers. ``timeout`` defaults to the active RPC timeout.
    """
    chain = chains.get_chain(chain_id)
    if timeout is None:
        timeout = active_settings().RPC_TIMEOUT_SECONDS
    candidates = [Provider(url, chain.id, timeout=timeout) for url in chain.rpc_urls]
    provider = race_first_healthy(candidates, _probe, label=chain.id)
    logger.info("Selected RPC %s for %s", provider.url, chain.id)
    return provider
