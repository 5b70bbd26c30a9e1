"""Helpers for reconstructing request URLs and building login redirects."""

from typing import Optional, Tuple
from urllib.parse import quote, unquote

from werkzeug.wrappers import Request

DEFAULT_PORTS = {'http': 80, 'https': 443}

_PATH_SAFE = "/:@!$&'()*+,;=~"


def normalize_path(path: Optional[str]) -> str:
    """
    Normalize a request path for classification.

    The query string is dropped, a leading slash is added and a trailing
    slash is removed. The root path stays ``/``.
    """
    if not path:
        return '/'
    path = path.split('?', 1)[0].strip()
    if not path.startswith('/'):
        path = '/' + path
    if len(path) > 1 and path.endswith('/'):
        path = path.rstrip('/') or '/'
    return path


def get_protocol(request: Request) -> str:
    """Get the client-facing protocol, honoring ``X-Forwarded-Proto``."""
    forwarded = request.headers.get('X-Forwarded-Proto')
    if forwarded:
        return forwarded.split(',')[0].strip().lower()
    return request.scheme


def _split_host(host: str) -> Tuple[str, Optional[int]]:
    if host.endswith(']') or ':' not in host:    # Bare name or IPv6 literal.
        return host, None
    name, _, port = host.rpartition(':')
    try:
        return name, int(port)
    except ValueError:
        return host, None


def get_base_url(request: Request) -> str:
    """
    Get the scheme, host and port of the request, without any path.

    The port is omitted when it is the default for the protocol.
    """
    proto = get_protocol(request)
    name, port = _split_host(request.host)
    if port is None or port == DEFAULT_PORTS.get(proto):
        return f'{proto}://{name}'
    return f'{proto}://{name}:{port}'


def get_raw_path(request: Request) -> str:
    """
    Get the request path as the client sent it, percent-escapes intact.

    Servers that report the raw request URI (``RAW_URI`` from gunicorn,
    ``REQUEST_URI`` from uWSGI, mod_wsgi and werkzeug) are trusted when it
    decodes to the same path werkzeug parsed. Otherwise the decoded path is
    quoted again, which loses any escaped delimiters such as ``%2F``.
    """
    full_path = request.script_root + request.path
    raw = request.environ.get('RAW_URI') or request.environ.get('REQUEST_URI')
    if raw:
        raw_path = raw.split('?', 1)[0]
        if raw_path.startswith('/') and unquote(raw_path) == full_path:
            return raw_path
    return quote(full_path, safe=_PATH_SAFE)


def get_request_url(request: Request, query: bool = True) -> str:
    """Get the absolute URL of the request, optionally with its query."""
    url = get_base_url(request) + get_raw_path(request)
    if query and request.query_string:
        url = f"{url}?{request.query_string.decode('latin-1')}"
    return url


def login_redirect(request: Request, login_path: str, next_url: str) -> str:
    """
    Build the login URL that will send the client on to ``next_url``.

    ``next_url`` is percent-encoded in full, so unquoting the ``next``
    parameter reproduces it exactly.
    """
    return (f'{get_base_url(request)}{request.script_root}{login_path}'
            f'?next={quote(next_url, safe="")}')
