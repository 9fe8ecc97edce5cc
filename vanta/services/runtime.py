from __future__ import annotations

"""Runtime helpers shared by the engines.

Two things live here: the best-effort wrapper every degradable external
call goes through, and an ordered thread-pool fan-out used for per-token
and per-spender reads.
"""

from typing import Any, Callable, List, Optional, Sequence, TypeVar
import concurrent.futures
import logging
import re

from vanta.services.errors import MalformedInput

logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')

DEFAULT_MAX_WORKERS = 8
ADDRESS_RE = re.compile(r'^0x[0-9a-fA-F]{40}$')


def require_address(address: Optional[str]) -> str:
    addr = address.strip() if isinstance(address, str) else ''
    if not ADDRESS_RE.match(addr):
        raise MalformedInput('Invalid wallet address format')
    return addr


def best_effort(fn: Callable[..., R], *args: Any, default: Optional[R] = None, what: str = '', **kwargs: Any) -> Optional[R]:
    """Call ``fn``; on any exception log it and return ``default``.

    This is the single place where partial failures become absent values.
    """
    try:
        return fn(*args, **kwargs)
    except Exception as e:
        logger.debug("best_effort: %s failed: %s", what or getattr(fn, '__name__', repr(fn)), e)
        return default


def fetch_ordered(fn: Callable[[T], R], items: Sequence[T], max_workers: int = DEFAULT_MAX_WORKERS) -> List[Optional[R]]:
    """Run ``fn`` over ``items`` concurrently; results come back in input order.

    A call that raises yields None in its slot.
    """
    if not items:
        return []
    results: List[Optional[R]] = [None] * len(items)
    workers = min(max_workers, max(2, len(items)))
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        future_map = {ex.submit(fn, item): idx for idx, item in enumerate(items)}
        for fut in concurrent.futures.as_completed(future_map):
            idx = future_map[fut]
            try:
                results[idx] = fut.result()
            except Exception as e:
                logger.debug("fetch_ordered: item %d failed: %s", idx, e)
                results[idx] = None
    return results
