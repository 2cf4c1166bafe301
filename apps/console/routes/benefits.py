"""Resident benefits routes (enrolled programs, tracking, receipt submission)."""
from flask import Blueprint, current_app, jsonify, request

from apps.console.utils.errors import UpstreamError, ValidationError
from apps.console.utils.responses import upstream_error_response, validation_error_response
from apps.console.utils.tracking import ProofFile, ReceiptSubmission, fetch_tracking, submit_receipt
from apps.console.utils.time import resolve_timezone, utc_now
from apps.console.utils.upstream import get_records_client


benefits_bp = Blueprint('benefits', __name__, url_prefix='/api/my-benefits')


def _app_timezone():
    return resolve_timezone(current_app.config.get('APP_TIMEZONE'))


@benefits_bp.route('', methods=['GET'])
def my_benefits():
    try:
        return jsonify(get_records_client().my_benefits()), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@benefits_bp.route('/<int:beneficiary_id>/track', methods=['GET'])
def track(beneficiary_id: int):
    try:
        view = fetch_tracking(get_records_client(), beneficiary_id, tz=_app_timezone())
        payload = view.to_dict()
        payload['payout_due'] = view.payout_due(utc_now())
        return jsonify({'success': True, 'data': payload}), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@benefits_bp.route('/<int:beneficiary_id>/validate-receipt', methods=['POST'])
def validate_receipt(beneficiary_id: int):
    """Submit a receipt number and/or proof of payout.

    Returns the refreshed tracking object on success.
    """
    try:
        client = get_records_client()
        tz = _app_timezone()
        view = fetch_tracking(client, beneficiary_id, tz=tz)
        submission = ReceiptSubmission(
            receipt_number=request.form.get('receipt_number', ''),
            comment=request.form.get('comment', ''),
            proof_file=ProofFile.from_storage(request.files.get('proof_file')),
        )
        refreshed = submit_receipt(
            client,
            beneficiary_id,
            view,
            submission,
            allowed_types=current_app.config.get('PROOF_ALLOWED_MIME_TYPES'),
            max_bytes=current_app.config.get('PROOF_MAX_BYTES'),
            tz=tz,
        )
        return jsonify({
            'success': True,
            'message': 'Receipt submitted successfully',
            'data': refreshed.to_dict(),
        }), 200
    except ValidationError as e:
        return validation_error_response(e, 422)
    except UpstreamError as e:
        return upstream_error_response(e)
