"""Defines the session concepts used by the authentication layer."""

from typing import Any, Optional, NamedTuple
from datetime import datetime
import dateutil.parser
from pytz import UTC


def now() -> datetime:
    """Current time, timezone-aware in UTC."""
    return datetime.now(tz=UTC)


class Credential(NamedTuple):
    """A username and secret presented at login. Never persisted."""

    username: str
    secret: bytes

    def __repr__(self) -> str:
        """Hide the secret."""
        return f"Credential(username={self.username!r}, secret=<hidden>)"


class LoginRequest(NamedTuple):
    """Logical content of a login request body."""

    username: str
    password: str = ''
    remember_me: bool = False

    @classmethod
    def from_json(cls, data: Any) -> 'LoginRequest':
        """
        Build a :class:`LoginRequest` from a decoded JSON payload.

        Parameters
        ----------
        data : Any
            Should be a ``dict`` with ``username``, ``password`` and
            ``rememberMe`` keys. ``password`` and ``rememberMe`` may be
            omitted.

        Raises
        ------
        :class:`ValueError`
            Raised if the payload is not an object, has no username, or
            ``rememberMe`` is not a boolean.

        """
        if not isinstance(data, dict):
            raise ValueError('Login payload must be a JSON object')
        username = data.get('username')
        if not username or not isinstance(username, str):
            raise ValueError('Login payload has no username')
        password = data.get('password') or ''
        if not isinstance(password, str):
            raise ValueError('Password must be a string')
        remember_me = data.get('rememberMe')
        if remember_me is None:
            remember_me = False
        if not isinstance(remember_me, bool):
            raise ValueError('rememberMe must be true or false')
        return cls(username=username, password=password,
                   remember_me=remember_me)

    @property
    def credential(self) -> Credential:
        """The credential to verify, with a normalized username."""
        return Credential(self.username.lower(),
                          self.password.encode('utf-8'))


class Token(NamedTuple):
    """
    Server-side record of a successful login.

    Tokens are identified by :attr:`token_id`, never by username; a user may
    hold any number of tokens at once. A token is not modified after it is
    created.
    """

    token_id: str
    """Opaque, unguessable identifier carried by the session cookie."""

    username: str
    """The authenticated principal."""

    issued_at: datetime
    """When the login succeeded."""

    expires_at: Optional[datetime] = None
    """
    When the token stops being valid.

    ``None`` for a non-persistent session, which lives until logout or
    until the browser discards its session cookie.
    """

    remote_ip: Optional[str] = None
    """Client address at login time."""

    @property
    def expired(self) -> bool:
        """Expired tokens must be treated as absent."""
        return self.expires_at is not None and self.expires_at <= now()

    @property
    def persistent(self) -> bool:
        """Whether the token outlives the browser session."""
        return self.expires_at is not None

    def to_dict(self) -> dict:
        """Generate a JSON-friendly representation."""
        return {
            'token_id': self.token_id,
            'username': self.username,
            'issued_at': self.issued_at.isoformat(),
            'expires_at': self.expires_at.isoformat()
            if self.expires_at is not None else None,
            'remote_ip': self.remote_ip
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Token':
        """Rebuild a :class:`Token` from :meth:`to_dict` output."""
        expires_at = data.get('expires_at')
        return cls(
            token_id=data['token_id'],
            username=data['username'],
            issued_at=_parse(data['issued_at']),
            expires_at=_parse(expires_at) if expires_at else None,
            remote_ip=data.get('remote_ip')
        )


def _parse(value: str) -> datetime:
    parsed = dateutil.parser.parse(value)
    if parsed.tzinfo is None:
        parsed = UTC.localize(parsed)
    return parsed
