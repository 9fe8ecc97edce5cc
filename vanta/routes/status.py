import time
from typing import Any, Dict

from flask import Blueprint, jsonify

from vanta.config.chains import SUPPORTED_CHAINS
from vanta.config.settings import active_settings
from vanta.services import rpc
from vanta.services.runtime import fetch_ordered

bp = Blueprint("status", __name__)


@bp.route("/", methods=["GET"])
def index():
    return jsonify({'status': 'VANTA backend is running'})


def _check_chain(chain: str, timeout: float) -> Dict[str, Any]:
    start = time.time()
    try:
        provider = rpc.select_provider(chain, timeout=timeout)
        return {'ok': True, 'latency_ms': int((time.time() - start) * 1000), 'rpc': provider.url, 'error': None}
    except Exception as e:
        return {'ok': False, 'latency_ms': None, 'rpc': None, 'error': str(e)}


@bp.route("/health", methods=["GET"])
def health():
    """Race every chain's endpoints once and report which ones answered."""
    # Worker threads have no app context
    timeout = active_settings().RPC_TIMEOUT_SECONDS
    results = fetch_ordered(lambda c: _check_chain(c, timeout), list(SUPPORTED_CHAINS))
    checks = {chain: res for chain, res in zip(SUPPORTED_CHAINS, results)}
    degraded = any(not (c or {}).get('ok') for c in checks.values())
    body = {
        'status': 'degraded' if degraded else 'ok',
        'timestamp': int(time.time()),
        'checks': checks,
    }
    return jsonify(body), 503 if degraded else 200
