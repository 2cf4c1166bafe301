"""Notification routes."""
from flask import Blueprint, jsonify

from apps.console.utils.errors import UpstreamError
from apps.console.utils.responses import upstream_error_response
from apps.console.utils.scheduling import notification_feed
from apps.console.utils.upstream import get_records_client


notifications_bp = Blueprint('notifications', __name__, url_prefix='/api/notifications')


@notifications_bp.route('', methods=['GET'])
def list_notifications():
    try:
        feed = notification_feed(get_records_client().notifications())
        return jsonify({
            'notifications': feed['notifications'],
            'unread_count': feed['unread_count'],
        }), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@notifications_bp.route('/<int:notification_id>/read', methods=['POST'])
def mark_read(notification_id: int):
    try:
        return jsonify(get_records_client().mark_notification_read(notification_id)), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@notifications_bp.route('/read-all', methods=['POST'])
def mark_all_read():
    try:
        return jsonify(get_records_client().mark_all_notifications_read()), 200
    except UpstreamError as e:
        return upstream_error_response(e)
