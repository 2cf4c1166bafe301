"""Admin activity log routes (audit trail, inactive residents)."""
from io import BytesIO

from flask import Blueprint, current_app, jsonify, request, send_file

from apps.console import limiter
from apps.console.utils.activity_logs import DEFAULT_LOG_FILTERS, build_log_query, summarize_logs_response
from apps.console.utils.errors import ExportError, UpstreamError
from apps.console.utils.exporters import export_activity_logs_csv
from apps.console.utils.notifier import CollectingNotifier
from apps.console.utils.responses import query_int, upstream_error_response
from apps.console.utils.time import utc_now
from apps.console.utils.upstream import get_records_client


activity_logs_bp = Blueprint('activity_logs', __name__, url_prefix='/api/activity-logs')


def _filters_from_args():
    return {key: request.args.get(key) for key in DEFAULT_LOG_FILTERS if key in request.args}


def _section(body, key):
    """Unwrap ``{'data': {key: ...}}`` or ``{key: ...}``."""
    data = body.get('data') if isinstance(body.get('data'), dict) else body
    return data.get(key, data)


@activity_logs_bp.route('', methods=['GET'])
def list_activity_logs():
    try:
        params = build_log_query(_filters_from_args())
        body = get_records_client().list_activity_logs(params)
        return jsonify(summarize_logs_response(body)), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@activity_logs_bp.route('/options', methods=['GET'])
def filter_options():
    try:
        body = get_records_client().activity_log_filter_options()
        return jsonify({'filters': _section(body, 'filters')}), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@activity_logs_bp.route('/statistics', methods=['GET'])
def statistics():
    try:
        body = get_records_client().activity_log_statistics()
        return jsonify({'statistics': _section(body, 'statistics')}), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@activity_logs_bp.route('/security-alerts', methods=['GET'])
def security_alerts():
    try:
        body = get_records_client().security_alerts()
        return jsonify({'alerts': _section(body, 'alerts')}), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@activity_logs_bp.route('/audit-summary', methods=['GET'])
def audit_summary():
    try:
        body = get_records_client().audit_summary()
        return jsonify({'audit_summary': _section(body, 'audit_summary')}), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@activity_logs_bp.route('/inactive-residents', methods=['GET'])
def inactive_residents():
    try:
        page = max(1, query_int(request.args, 'page', 1))
        per_page = max(1, query_int(request.args, 'per_page', 20))
        body = get_records_client().list_inactive_residents(page=page, per_page=per_page)
        meta = body.get('meta') or {}
        return jsonify({
            'residents': body.get('data') or [],
            'total': meta.get('total', 0),
            'page': page,
            'per_page': per_page,
        }), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@activity_logs_bp.route('/flagged-count', methods=['GET'])
def flagged_count():
    try:
        body = get_records_client().flagged_residents_count()
        return jsonify({'flagged_count': int(body.get('flagged_count') or 0)}), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@activity_logs_bp.route('/flag-inactive-residents', methods=['POST'])
def flag_inactive_residents():
    try:
        body = get_records_client().flag_inactive_residents()
        current_app.logger.info("Flagged inactive residents: %s", body.get('message', 'done'))
        return jsonify(body), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@activity_logs_bp.route('/export', methods=['POST'])
@limiter.limit(lambda: current_app.config.get('EXPORT_RATE_LIMIT', '30 per hour'))
def export_activity_logs():
    """Export logs matching the filters.

    With ``format=csv`` the records API export endpoint supplies every
    matching log (not one list page) and the CSV is rendered here;
    otherwise the export response is returned as is.
    """
    data = request.get_json(silent=True) or {}
    filters = build_log_query(data.get('filters') if isinstance(data.get('filters'), dict) else data)
    notifier = CollectingNotifier()
    try:
        client = get_records_client()
        if (data.get('format') or '').lower() != 'csv':
            return jsonify(client.export_activity_logs(filters)), 200

        export_filters = {k: v for k, v in filters.items() if k not in ('page', 'per_page')}
        body = client.export_activity_logs(export_filters)
        logs = summarize_logs_response(body)['logs']
        export = export_activity_logs_csv(logs, notifier=notifier, now=utc_now())
    except UpstreamError as e:
        return upstream_error_response(e)
    except ExportError as e:
        return jsonify({'error': str(e), 'notices': notifier.to_list()}), 500

    if export is None:
        return jsonify({'message': 'No data to export.', 'notices': notifier.to_list()}), 200
    return send_file(
        BytesIO(export.content),
        mimetype=export.mimetype,
        as_attachment=True,
        download_name=export.filename,
    )


@activity_logs_bp.route('/cleanup', methods=['DELETE'])
def cleanup():
    try:
        body = get_records_client().cleanup_activity_logs()
        current_app.logger.warning("Activity log cleanup requested")
        return jsonify(body), 200
    except UpstreamError as e:
        return upstream_error_response(e)
