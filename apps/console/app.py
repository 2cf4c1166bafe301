"""
Barangay Records Console - Flask Application
Main application entry point
"""
import sys
import logging
from pathlib import Path
from dotenv import load_dotenv

# Determine project root (2 levels up from this file)
CONSOLE_DIR = Path(__file__).parent.resolve()
PROJECT_ROOT = CONSOLE_DIR.parent.parent.resolve()

# Load environment variables from .env file at project root
env_path = PROJECT_ROOT / '.env'
if env_path.exists():
    load_dotenv(env_path)

# Add project root to path for absolute imports
sys.path.insert(0, str(PROJECT_ROOT))

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import RequestEntityTooLarge

from apps.console import limiter, __version__
from apps.console.config import Config
from apps.console.utils.errors import UpstreamError, ValidationError
from apps.console.utils.responses import upstream_error_response, validation_error_response
from apps.console.utils.upstream import close_records_client


def create_app(config_class=Config, session_factory=None):
    """Application factory pattern.

    ``session_factory`` builds the requests session used to reach the
    records API; tests pass one that serves canned responses.
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.getLogger().setLevel(level)
    app.logger.setLevel(level)

    config_class.init_app(app)

    if session_factory is not None:
        app.extensions['records_session_factory'] = session_factory
    app.teardown_appcontext(close_records_client)

    limiter.init_app(app)
    if app.config.get('RATELIMIT_ENABLED', True):
        app.logger.info("Rate limiting enabled")
    else:
        app.logger.warning("Rate limiting is DISABLED - not recommended for production")

    @app.after_request
    def add_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        if not app.config.get('DEBUG'):
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response

    # CORS configuration
    # NOTE: Cannot use wildcard ("*") with supports_credentials=True
    cors_origins = []
    is_production = (app.config.get('FLASK_ENV') == 'production') and not app.config.get('DEBUG')

    for key in ('WEB_URL', 'ADMIN_URL'):
        value = (app.config.get(key) or '').strip()
        if value:
            cors_origins.append(value)
    cors_origins.extend(app.config.get('CORS_ALLOWED_ORIGINS') or [])

    if not is_production:
        cors_origins.extend([
            "http://localhost:3000",
            "http://localhost:3001",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ])

    cors_origins = [origin for origin in dict.fromkeys(cors_origins) if origin]

    if is_production and not cors_origins:
        raise RuntimeError(
            "CORS configuration error: set WEB_URL/ADMIN_URL or CORS_ALLOWED_ORIGINS in production."
        )

    CORS(app,
         origins=cors_origins,
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
         allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
         supports_credentials=True,
         expose_headers=["Content-Type", "Content-Disposition"])

    # Register blueprints
    from apps.console.routes import (
        residents_bp,
        activity_logs_bp,
        benefits_bp,
        programs_bp,
        notifications_bp,
    )

    app.register_blueprint(residents_bp)
    app.register_blueprint(activity_logs_bp)
    app.register_blueprint(benefits_bp)
    app.register_blueprint(programs_bp)
    app.register_blueprint(notifications_bp)

    from apps.console.cli import register_cli
    register_cli(app)

    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint for monitoring"""
        return jsonify({
            'status': 'ok',
            'service': app.config.get('APP_NAME', 'Barangay Records Console'),
            'version': __version__,
        }), 200

    # Error handlers
    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        return validation_error_response(error)

    @app.errorhandler(UpstreamError)
    def handle_upstream_error(error):
        return upstream_error_response(error)

    @app.errorhandler(RequestEntityTooLarge)
    def too_large(error):
        return jsonify({'error': 'Uploaded file is too large'}), 413

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Resource not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'error': 'Internal server error'}), 500

    # Flask-Limiter rate limit handler (ensure JSON, not HTML)
    from flask_limiter.errors import RateLimitExceeded

    @app.errorhandler(RateLimitExceeded)
    def ratelimit_handler(error):  # pragma: no cover
        payload = {'error': 'Rate limit exceeded'}
        desc = getattr(error, 'description', None)
        if desc:
            payload['details'] = str(desc)
        resp = jsonify(payload)
        resp.status_code = 429
        return resp

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(
        host='0.0.0.0',
        port=5000,
        debug=app.config['DEBUG']
    )
