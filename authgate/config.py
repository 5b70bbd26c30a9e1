"""Flask configuration."""
import os
import secrets

#################### Paths ####################
AUTH_OPEN_PATHS = os.environ.get('AUTH_OPEN_PATHS', '/auth_status')
"""Comma-separated path prefixes that do not require authentication.

A prefix covers the path itself and everything below it, segment-wise:
``/open`` covers ``/open`` and ``/open/x`` but not ``/openish``.
"""

AUTH_OPEN_PATTERNS = os.environ.get('AUTH_OPEN_PATTERNS', '')
"""Comma-separated regexes; paths matching one in full are also open."""

AUTH_LOGIN_PATH = os.environ.get('AUTH_LOGIN_PATH', '/account/login')
AUTH_LOGOUT_PATH = os.environ.get('AUTH_LOGOUT_PATH', '/account/logout')


#################### Session cookie ####################
AUTH_SESSION_COOKIE_NAME = os.environ.get('AUTH_SESSION_COOKIE_NAME',
                                          'AUTHGATE_SESSION_ID')
AUTH_SESSION_COOKIE_SECURE = bool(int(os.environ.get(
    'AUTH_SESSION_COOKIE_SECURE', '1')))

JWT_SECRET = os.environ.get('JWT_SECRET', secrets.token_urlsafe(16))
"""Signs session cookies. Must be shared by every worker process."""


#################### Tokens ####################
REMEMBER_ME_DURATION = os.environ.get('REMEMBER_ME_DURATION', '2592000')
"""Lifetime in seconds of tokens created with ``rememberMe``.

Tokens created without it have no expiry, and a browser-session cookie.
"""

AUTH_SESSION_MAX_AGE = os.environ.get('AUTH_SESSION_MAX_AGE', '604800')
"""Seconds after login at which a token with no expiry stops being honored.

Such tokens are otherwise only removed at logout, which a browser that
discards its session cookie never performs. Empty or ``0`` disables the cap.
"""

AUTH_SINGLE_SESSION = bool(int(os.environ.get('AUTH_SINGLE_SESSION', '0')))
"""If set, logging in ends the user's other sessions."""

TOKEN_STORE = os.environ.get('TOKEN_STORE', 'memory')
"""``memory`` (single process only) or ``redis``."""

REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_PREFIX = os.environ.get('REDIS_PREFIX', 'authgate:')


#################### Logging ####################
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
LOG_JSON = bool(int(os.environ.get('LOG_JSON', '1')))
"""Emit log records as JSON objects."""


#################### Authenticator ####################
AUTH_AUTHENTICATOR = os.environ.get('AUTH_AUTHENTICATOR')
"""Import path (``module:attribute``) of the authenticator to use.

May also be set to an :class:`authgate.auth.authenticator.Authenticator`
instance, or a function, when configuring the app in code.
"""
