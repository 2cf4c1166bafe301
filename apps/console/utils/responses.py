"""JSON error responses shared by the blueprints and the app factory."""
from flask import jsonify

from apps.console.utils.errors import UpstreamError, ValidationError


def validation_error_response(error: ValidationError, status: int = 400):
    return jsonify(error.to_dict()), status


def upstream_error_response(error: UpstreamError):
    status = error.status_code if 400 <= (error.status_code or 0) < 600 else 502
    payload = {'error': error.message}
    if error.code:
        payload['code'] = error.code
    return jsonify(payload), status


def query_int(args, name: str, default: int) -> int:
    """Read an integer query arg, falling back to ``default`` on junk."""
    try:
        return int(args.get(name, default))
    except (TypeError, ValueError):
        return default
