"""
The credential verification capability.

The authentication layer does not know how credentials are checked. It is
given an :class:`Authenticator` and only interprets the two failures it may
raise: :class:`.UnknownUser` and :class:`.InvalidCredential`. Their reasons
are passed to the client unchanged, which favors debuggable login clients
over hiding whether an account exists. Deployments that need the opposite
should raise both with the same reason.
"""

from abc import ABC, abstractmethod
from typing import Callable, Mapping, Union

from werkzeug.security import check_password_hash

from .exceptions import UnknownUser, InvalidCredential


class Authenticator(ABC):
    """Verifies a username and secret."""

    @abstractmethod
    def verify(self, username: str, secret: bytes) -> None:
        """
        Verify the credentials, or raise.

        Raises
        ------
        :class:`.UnknownUser`
            Raised if there is no such user.
        :class:`.InvalidCredential`
            Raised if the secret is wrong.

        """


class _FunctionAuthenticator(Authenticator):
    def __init__(self, func: Callable[[str, bytes], None]) -> None:
        self._func = func

    def verify(self, username: str, secret: bytes) -> None:
        self._func(username, secret)


def as_authenticator(value: Union[Authenticator, Callable]) -> Authenticator:
    """Accept either an :class:`Authenticator` or a plain function."""
    if isinstance(value, Authenticator):
        return value
    if callable(value):
        return _FunctionAuthenticator(value)
    raise TypeError(f'Not an authenticator: {value!r}')


class PasswordAuthenticator(Authenticator):
    """
    Checks secrets against a mapping of usernames to password hashes.

    Hashes are produced with :func:`werkzeug.security.generate_password_hash`.
    Usernames are compared case-insensitively.
    """

    def __init__(self, users: Mapping[str, str]) -> None:
        self._users = {name.lower(): pwhash for name, pwhash in users.items()}

    def verify(self, username: str, secret: bytes) -> None:
        pwhash = self._users.get(username.lower())
        if pwhash is None:
            raise UnknownUser()
        if not check_password_hash(pwhash, secret.decode('utf-8', 'replace')):
            raise InvalidCredential()
