"""Admin resident routes: list, detail, verification, disabling and exports.

The records API owns resident data; these routes filter, paginate and
export what it returns, and forward admin actions unchanged.
"""
from io import BytesIO

from flask import Blueprint, current_app, jsonify, request, send_file

from apps.console import limiter
from apps.console.utils.errors import ExportError, UpstreamError, ValidationError
from apps.console.utils.exporters import EXPORTERS
from apps.console.utils.filtering import ResidentListState, filter_residents
from apps.console.utils.notifier import CollectingNotifier
from apps.console.utils.resident_status import details_visible, resolve_update_status, status_key
from apps.console.utils.residents import (
    annotate_residents,
    extract_residents,
    validate_denial_comment,
    validate_disable_reason,
)
from apps.console.utils.responses import query_int, upstream_error_response, validation_error_response
from apps.console.utils.time import utc_now
from apps.console.utils.upstream import get_records_client


residents_bp = Blueprint('residents', __name__, url_prefix='/api/residents')


def _load_residents():
    role = (request.args.get('role') or 'admin').strip().lower()
    body = get_records_client().list_residents(role)
    return annotate_residents(extract_residents(body), now=utc_now())


def _export_rate_limit():
    return current_app.config.get('EXPORT_RATE_LIMIT', '30 per hour')


@residents_bp.route('', methods=['GET'])
def list_residents():
    """Filtered, paginated resident list with resolved update statuses."""
    try:
        cfg = current_app.config
        state = ResidentListState(page_size_options=cfg.get('PAGE_SIZE_OPTIONS'))
        state.per_page = cfg.get('DEFAULT_PAGE_SIZE')
        state.set_search(request.args.get('search', ''))
        state.set_status_filter(request.args.get('status', ''))
        if 'per_page' in request.args:
            state.set_per_page(request.args.get('per_page'))
        state.page = query_int(request.args, 'page', 1)

        residents = _load_residents()
        page = state.apply(residents, now=utc_now())

        counts = {'active': 0, 'outdated': 0, 'needs_verification': 0, 'for_review': 0}
        for resident in residents:
            counts[status_key(resident['update_status'])] += 1
            if resident.get('for_review'):
                counts['for_review'] += 1

        payload = page.to_dict('residents')
        payload['residents'] = [
            dict(r, details_visible=details_visible(r)) for r in payload['residents']
        ]
        payload['counts'] = counts
        payload['filters'] = {
            'search': state.search,
            'status': state.status_filter,
        }
        return jsonify(payload), 200
    except ValidationError as e:
        return validation_error_response(e)
    except UpstreamError as e:
        return upstream_error_response(e)
    except Exception as e:
        current_app.logger.error("Failed to list residents: %s", e)
        return jsonify({'error': 'Failed to load residents', 'details': str(e)}), 500


@residents_bp.route('/export/<string:fmt>', methods=['GET'])
@limiter.limit(_export_rate_limit)
def export_residents(fmt: str):
    """Download the filtered resident list as csv, excel (demographic CSV) or pdf."""
    exporter = EXPORTERS.get((fmt or '').lower())
    if exporter is None:
        return jsonify({'error': f"Unsupported export format. Must be one of: {', '.join(EXPORTERS)}"}), 400

    notifier = CollectingNotifier()
    try:
        now = utc_now()
        residents = filter_residents(
            _load_residents(),
            search=request.args.get('search', ''),
            status_filter=request.args.get('status', ''),
            now=now,
        )
        export = exporter(residents, notifier=notifier, now=now)
    except ValidationError as e:
        return validation_error_response(e)
    except UpstreamError as e:
        return upstream_error_response(e)
    except ExportError as e:
        current_app.logger.error("Resident export (%s) failed: %s", fmt, e)
        return jsonify({'error': str(e), 'notices': notifier.to_list()}), 500

    if export is None:
        return jsonify({'message': 'No data to export.', 'notices': notifier.to_list()}), 200

    current_app.logger.info("Exported %d residents as %s", export.rows, fmt)
    return send_file(
        BytesIO(export.content),
        mimetype=export.mimetype,
        as_attachment=True,
        download_name=export.filename,
    )


@residents_bp.route('/disabled', methods=['GET'])
def list_disabled_residents():
    try:
        body = get_records_client().list_disabled_residents()
        residents = extract_residents(body)
        return jsonify({'residents': residents, 'count': len(residents)}), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@residents_bp.route('/<string:resident_id>', methods=['GET'])
def get_resident(resident_id: str):
    """Resident detail; hidden entirely when residency verification was denied."""
    try:
        body = get_records_client().get_resident(resident_id)
        resident = body.get('resident') or body.get('data') or body
        if not details_visible(resident):
            return jsonify({'error': 'Resident details are unavailable because residency verification was denied'}), 403
        resident = dict(resident, update_status=resolve_update_status(resident, now=utc_now()))
        return jsonify({'resident': resident}), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@residents_bp.route('/<string:resident_id>', methods=['PUT'])
def update_resident(resident_id: str):
    try:
        client = get_records_client()
        current = client.get_resident(resident_id)
        resident = current.get('resident') or current.get('data') or current
        if not details_visible(resident):
            return jsonify({'error': 'Editing is disabled because residency verification was denied'}), 403

        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict) or not data:
            return jsonify({'error': 'No fields to update'}), 400
        return jsonify(client.update_resident(resident_id, data)), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@residents_bp.route('/<string:resident_id>/approve-verification', methods=['POST'])
def approve_verification(resident_id: str):
    try:
        body = get_records_client().approve_verification(resident_id)
        current_app.logger.info("Residency verification approved for %s", resident_id)
        return jsonify(body), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@residents_bp.route('/<string:resident_id>/deny-verification', methods=['POST'])
def deny_verification(resident_id: str):
    try:
        data = request.get_json(silent=True) or {}
        comment = validate_denial_comment(data.get('comment'))
        body = get_records_client().deny_verification(resident_id, comment)
        current_app.logger.info("Residency verification denied for %s", resident_id)
        return jsonify(body), 200
    except ValidationError as e:
        return validation_error_response(e)
    except UpstreamError as e:
        return upstream_error_response(e)


@residents_bp.route('/<string:resident_id>/disable', methods=['POST'])
def disable_resident(resident_id: str):
    try:
        data = request.get_json(silent=True) or {}
        reason = validate_disable_reason(data.get('reason'))
        body = get_records_client().disable_resident(resident_id, reason)
        current_app.logger.info("Resident %s disabled (reason=%s)", resident_id, reason)
        return jsonify(body), 200
    except ValidationError as e:
        return validation_error_response(e)
    except UpstreamError as e:
        return upstream_error_response(e)


@residents_bp.route('/<string:resident_id>/restore', methods=['POST'])
def restore_resident(resident_id: str):
    try:
        body = get_records_client().restore_resident(resident_id)
        current_app.logger.info("Resident %s restored", resident_id)
        return jsonify(body), 200
    except UpstreamError as e:
        return upstream_error_response(e)
