"""Program, announcement and application form routes (pass-through)."""
from flask import Blueprint, jsonify, request

from apps.console.utils.errors import UpstreamError
from apps.console.utils.responses import upstream_error_response
from apps.console.utils.upstream import get_records_client


programs_bp = Blueprint('programs', __name__, url_prefix='/api')


@programs_bp.route('/programs/<int:program_id>', methods=['GET'])
def get_program(program_id: int):
    try:
        return jsonify(get_records_client().get_program(program_id)), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@programs_bp.route('/program-announcements', methods=['GET'])
def program_announcements():
    dashboard = (request.args.get('dashboard') or '').lower() in ('1', 'true', 'yes')
    try:
        return jsonify(get_records_client().program_announcements(dashboard=dashboard)), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@programs_bp.route('/program-application-forms', methods=['GET'])
def published_application_forms():
    try:
        return jsonify(get_records_client().published_application_forms()), 200
    except UpstreamError as e:
        return upstream_error_response(e)


@programs_bp.route('/program-application-forms/<int:form_id>/submit', methods=['POST'])
def submit_application_form(form_id: int):
    try:
        files = {
            name: (storage.filename, storage.read(), storage.mimetype)
            for name, storage in request.files.items()
            if storage and storage.filename
        }
        data = request.form.to_dict() if request.form else (request.get_json(silent=True) or {})
        return jsonify(get_records_client().submit_application_form(form_id, data, files)), 201
    except UpstreamError as e:
        return upstream_error_response(e)
