from flask import Blueprint, current_app, jsonify, request

from vanta.services import approvals, diagnose, wallet
from vanta.services.errors import MissingInput, TransactionNotFound, VantaError

bp = Blueprint("analysis", __name__)


def _error_response(exc: Exception, label: str):
    if isinstance(exc, VantaError):
        current_app.logger.info("%s rejected: %s", label, exc.message)
        return jsonify({'error': exc.message}), exc.status_code
    current_app.logger.exception("%s ERROR: %s", label, exc)
    return jsonify({'error': 'Internal server error'}), 500


def _required_fields(names, missing_message):
    """Pull ``names`` out of the JSON object body; any absent one is MissingInput.

    Type checks on the values (chain id, address, hash) happen in the services.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise MissingInput(missing_message)
    values = [payload.get(n) for n in names]
    if any(v is None or v == '' for v in values):
        raise MissingInput(missing_message)
    return values


@bp.route("/diagnose", methods=["POST"])
def diagnose_route():
    try:
        tx_hash, chain = _required_fields(('txHash', 'chain'), "Missing txHash or chain")
        return jsonify(diagnose.diagnose_transaction(chain, tx_hash)), 200
    except TransactionNotFound as e:
        # Not-found is a data result
        return jsonify({'chain': e.chain, 'txHash': e.tx_hash, 'found': False, 'error': e.message}), 200
    except Exception as e:
        return _error_response(e, 'DIAGNOSE')


@bp.route("/wallet-summary", methods=["POST"])
def wallet_summary_route():
    try:
        address, chain = _required_fields(('address', 'chain'), "Missing address or chain")
        return jsonify(wallet.summarize_wallet(chain, address)), 200
    except Exception as e:
        return _error_response(e, 'WALLET SUMMARY')


@bp.route("/approvals", methods=["POST"])
def approvals_route():
    try:
        address, chain = _required_fields(('address', 'chain'), "Missing address or chain")
        found = approvals.scan_approvals(chain, address)
        return jsonify({'address': address, 'chain': chain, 'approvals': found}), 200
    except Exception as e:
        return _error_response(e, 'APPROVALS')
