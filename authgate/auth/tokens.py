"""
Session cookie codec.

The session cookie carries a signed JWT naming the token it refers to. The
token itself lives in the :class:`.sessions.TokenManager`; the cookie only
has to be unforgeable and point at it.
"""

from typing import NamedTuple

import jwt

from .exceptions import InvalidToken
from ..domain import Token

ALGORITHM = 'HS256'


class SessionCookie(NamedTuple):
    """Decoded content of a session cookie."""

    token_id: str
    username: str


def encode(token: Token, secret: str) -> str:
    """Generate a session cookie value for ``token``."""
    claims = {
        'tid': token.token_id,
        'sub': token.username,
        'iat': int(token.issued_at.timestamp())
    }
    if token.expires_at is not None:
        claims['exp'] = int(token.expires_at.timestamp())
    encoded = jwt.encode(claims, secret, algorithm=ALGORITHM)
    if isinstance(encoded, bytes):
        encoded = encoded.decode('ascii')
    return encoded


def decode(cookie: str, secret: str) -> SessionCookie:
    """
    Unpack a session cookie value.

    Raises
    ------
    :class:`.InvalidToken`
        Raised if the cookie is malformed, expired, or was not signed with
        ``secret``.

    """
    if not cookie:
        raise InvalidToken('Empty session cookie')
    try:
        claims = jwt.decode(cookie, secret, algorithms=[ALGORITHM])
    except jwt.exceptions.InvalidTokenError as e:
        raise InvalidToken(f'Session cookie is not valid: {e}') from e
    try:
        return SessionCookie(token_id=str(claims['tid']),
                             username=str(claims['sub']))
    except KeyError as e:
        raise InvalidToken('Session cookie payload malformed') from e
