"""
Barangay Records Console Package
"""
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

__version__ = '1.0.0'

# Initialize rate limiter (limits and storage come from RATELIMIT_* config in create_app)
limiter = Limiter(
    key_func=get_remote_address,
    strategy="fixed-window"
)

__all__ = ['limiter']
