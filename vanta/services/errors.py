"""Request-level failures.

Only these reach the HTTP layer. Everything else raised while talking to
RPC endpoints or price APIs is absorbed where it happens and turns into an
absent value in an otherwise successful response.
"""
from __future__ import annotations

from typing import List, Optional


class VantaError(Exception):
    """Base class; ``status_code`` is the HTTP status the route layer uses."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingInput(VantaError):
    status_code = 400


class MalformedInput(MissingInput):
    """Field present but not a usable address or hash."""


class UnsupportedChain(VantaError):
    status_code = 400

    def __init__(self, chain: Optional[str]) -> None:
        super().__init__(f"Unsupported chain: {chain}")
        self.chain = chain


class NoHealthyEndpoint(VantaError):
    status_code = 503

    def __init__(self, chain: str, errors: Optional[List[str]] = None) -> None:
        super().__init__(f"No healthy RPC endpoint for {chain}")
        self.chain = chain
        self.errors = errors or []


class TransactionNotFound(VantaError):
    # Reported as a data result, not a fault
    status_code = 200

    def __init__(self, chain: str, tx_hash: str) -> None:
        super().__init__("Transaction not found")
        self.chain = chain
        self.tx_hash = tx_hash


class RpcError(Exception):
    """JSON-RPC error object or unusable response from one endpoint."""

    def __init__(self, url: str, method: str, detail: str, code: Optional[int] = None) -> None:
        super().__init__(f"{method} via {url} failed: {detail}")
        self.url = url
        self.method = method
        self.code = code
