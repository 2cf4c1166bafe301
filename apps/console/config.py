"""
Barangay Records Console - Configuration
Application configuration management
"""
import os
import logging
from pathlib import Path

# Monorepo layout: <repo>/apps/console/config.py -> BASE_DIR=<repo>
_THIS_DIR = Path(__file__).parent.resolve()
_MONOREPO_ROOT = _THIS_DIR.parent.parent
if (_MONOREPO_ROOT / 'apps' / 'console').exists():
    BASE_DIR = _MONOREPO_ROOT.resolve()
else:
    BASE_DIR = _THIS_DIR


def _require_env(name: str, default: str = None, allow_default_in_dev: bool = True) -> str:
    """
    Get environment variable, failing loudly in production if not set.

    Raises:
        RuntimeError: If variable is not set in production
    """
    value = os.getenv(name)
    is_production = os.getenv('FLASK_ENV', 'development') == 'production'

    if value:
        return value

    if is_production:
        if default is None or name == 'SECRET_KEY':
            raise RuntimeError(
                f"SECURITY ERROR: {name} environment variable is required in production."
            )
        logging.warning(f"Using default value for {name} in production - consider setting explicitly")
        return default

    if default is not None and allow_default_in_dev:
        logging.debug(f"Using default value for {name} in development")
        return default

    raise RuntimeError(f"{name} environment variable is required")


def _int_list(raw: str, fallback):
    try:
        values = tuple(int(v.strip()) for v in raw.split(',') if v.strip())
    except ValueError:
        logging.warning("Could not parse integer list %r; using %s", raw, fallback)
        return tuple(fallback)
    return values or tuple(fallback)


def get_database_url():
    """
    Database URL of the records database, used only by the migrations.
    - Handles URL scheme conversion (postgres:// -> postgresql://)
    - Falls back to a local SQLite file when unset
    """
    url = os.getenv('RECORDS_DATABASE_URL') or os.getenv('DATABASE_URL')

    if not url:
        fallback = f"sqlite:///{BASE_DIR / 'records.db'}"
        logging.warning("RECORDS_DATABASE_URL not set; using fallback %s", fallback)
        return fallback

    # SQLAlchemy requires postgresql://
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)

    return url


class Config:
    """Base configuration"""

    # Flask - SECRET_KEY is REQUIRED in production
    SECRET_KEY = _require_env('SECRET_KEY', 'dev-secret-key-for-local-development-only')
    DEBUG = os.getenv('DEBUG', 'False') == 'True'
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

    # Records API (upstream)
    RECORDS_API_URL = os.getenv('RECORDS_API_URL', 'http://localhost:8000/api')
    RECORDS_API_TIMEOUT = float(os.getenv('RECORDS_API_TIMEOUT', 15))
    # Bearer token for CLI commands (HTTP routes forward the caller's header instead)
    RECORDS_API_TOKEN = os.getenv('RECORDS_API_TOKEN', '')
    # Zone for API timestamps sent without an offset (e.g. Asia/Manila)
    APP_TIMEZONE = os.getenv('APP_TIMEZONE', 'UTC')

    # Records database (migrations only)
    RECORDS_DATABASE_URL = get_database_url()

    # Resident lists
    DEFAULT_PAGE_SIZE = int(os.getenv('DEFAULT_PAGE_SIZE', 10))
    PAGE_SIZE_OPTIONS = _int_list(os.getenv('PAGE_SIZE_OPTIONS', '10,20,50,100'), (10, 20, 50, 100))

    # Background refresh
    NOTIFICATION_POLL_SECONDS = float(os.getenv('NOTIFICATION_POLL_SECONDS', 30))
    PAYOUT_RECHECK_SECONDS = float(os.getenv('PAYOUT_RECHECK_SECONDS', 60))

    # Proof of payout uploads
    PROOF_MAX_BYTES = int(os.getenv('PROOF_MAX_BYTES', 10 * 1024 * 1024))  # 10MB
    PROOF_ALLOWED_MIME_TYPES = tuple(
        t.strip().lower()
        for t in os.getenv(
            'PROOF_ALLOWED_MIME_TYPES', 'image/jpeg,image/png,image/jpg,application/pdf'
        ).split(',')
        if t.strip()
    )
    MAX_CONTENT_LENGTH = int(os.getenv('MAX_CONTENT_LENGTH', 16 * 1024 * 1024))  # 16MB

    # Rate Limiting Configuration
    RATELIMIT_ENABLED = os.getenv('RATELIMIT_ENABLED', 'True') == 'True'
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
    if FLASK_ENV == 'production' and RATELIMIT_ENABLED and RATELIMIT_STORAGE_URI.strip().lower() == 'memory://':
        raise RuntimeError(
            "RATELIMIT_STORAGE_URI must use a shared backend (e.g., Redis) in production."
        )
    RATELIMIT_DEFAULT = os.getenv('RATELIMIT_DEFAULT', '2000 per day, 500 per hour')
    RATELIMIT_HEADERS_ENABLED = True
    EXPORT_RATE_LIMIT = os.getenv('EXPORT_RATE_LIMIT', '30 per hour')

    # Application
    APP_NAME = os.getenv('APP_NAME', 'Barangay Records Console')

    # Frontend URLs (for CORS)
    WEB_URL = os.getenv('WEB_URL', 'http://localhost:5173')
    ADMIN_URL = os.getenv('ADMIN_URL', 'http://localhost:3001')
    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.getenv('CORS_ALLOWED_ORIGINS', '').split(',')
        if origin.strip()
    ]

    @staticmethod
    def init_app(app):
        """Initialize application configuration"""
        if app.config.get('DEFAULT_PAGE_SIZE') not in app.config.get('PAGE_SIZE_OPTIONS', ()):
            app.logger.warning(
                "DEFAULT_PAGE_SIZE %s is not in PAGE_SIZE_OPTIONS %s; using %s",
                app.config.get('DEFAULT_PAGE_SIZE'),
                app.config.get('PAGE_SIZE_OPTIONS'),
                app.config['PAGE_SIZE_OPTIONS'][0],
            )
            app.config['DEFAULT_PAGE_SIZE'] = app.config['PAGE_SIZE_OPTIONS'][0]


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    LOG_LEVEL = 'DEBUG'


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    RECORDS_API_URL = 'http://records.test/api'
    RECORDS_DATABASE_URL = 'sqlite:///:memory:'
    RATELIMIT_ENABLED = False


# Config dictionary
config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
