"""
Token manager interface and the in-process implementation.

Every protected request performs a :meth:`TokenManager.lookup`, and any
number of requests may be in flight at once, so implementations must be
safe to call from many threads without outside locking.
"""

import secrets
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Dict, List, Optional
import logging

from ... import domain
from ...domain import Token

logger = logging.getLogger(__name__)


def generate_token_id() -> str:
    """Generate an opaque, unguessable token identifier."""
    return secrets.token_urlsafe(32)


def new_token(username: str, duration: Optional[int] = None,
              remote_ip: Optional[str] = None) -> Token:
    """
    Create a fresh :class:`.Token` for ``username``.

    Parameters
    ----------
    username : str
    duration : int or None
        Lifetime in seconds. ``None`` creates a non-persistent token with no
        expiry.
    remote_ip : str or None
        Client address, recorded for diagnostics.

    """
    issued_at = domain.now()
    expires_at = None
    if duration is not None:
        expires_at = issued_at + timedelta(seconds=duration)
    return Token(token_id=generate_token_id(), username=username,
                 issued_at=issued_at, expires_at=expires_at,
                 remote_ip=remote_ip)


class TokenManager(ABC):
    """
    Stores, looks up, enumerates and removes session tokens.

    Tokens without an expiry end at logout. A browser that drops its session
    cookie never logs out, so those tokens would otherwise be kept forever;
    :attr:`session_max_age` bounds how long they are honored and kept.
    """

    session_max_age: Optional[int] = None
    """Seconds after issue at which a token with no expiry is stale."""

    def deadline(self, token: Token) -> Optional[datetime]:
        """When ``token`` stops being honored, if ever."""
        if token.expires_at is not None:
            return token.expires_at
        if self.session_max_age:
            return token.issued_at + timedelta(seconds=self.session_max_age)
        return None

    def is_stale(self, token: Token) -> bool:
        """Stale tokens are treated as absent, and removed by a sweep."""
        deadline = self.deadline(token)
        return deadline is not None and deadline <= domain.now()

    @abstractmethod
    def add(self, token: Token) -> None:
        """Register ``token``. A token with the same id is replaced."""

    @abstractmethod
    def lookup(self, token_id: str) -> Optional[Token]:
        """
        Get a live token by id.

        Returns ``None`` if there is no such token, or if it is stale.

        Raises
        ------
        :class:`.TokenStoreUnavailable`
            Raised if the backing store cannot be reached. This is not the
            same as the token being absent.

        """

    @abstractmethod
    def remove(self, token_id: str) -> None:
        """Remove a token. Removing an unknown id does nothing."""

    @abstractmethod
    def tokens(self) -> List[Token]:
        """
        Get a snapshot of the registered tokens.

        The snapshot may or may not reflect changes made while it is being
        taken.
        """

    def sweep(self) -> int:
        """Remove every stale token, and return how many were removed."""
        removed = 0
        for token in self.tokens():
            if self.is_stale(token):
                self.remove(token.token_id)
                removed += 1
        if removed:
            logger.info('Swept %i expired tokens', removed)
        return removed

    def remove_user(self, username: str) -> int:
        """Remove every token held by ``username``."""
        removed = 0
        for token in self.tokens():
            if token.username == username:
                self.remove(token.token_id)
                removed += 1
        return removed


class InMemoryTokenManager(TokenManager):
    """
    Keeps tokens in a dict keyed by token id.

    The lock is only held for single dict operations, so readers are never
    delayed by more than one concurrent write.
    """

    def __init__(self, session_max_age: Optional[int] = None) -> None:
        self.session_max_age = session_max_age
        self._tokens: Dict[str, Token] = {}
        self._lock = threading.Lock()

    def add(self, token: Token) -> None:
        with self._lock:
            self._tokens[token.token_id] = token

    def lookup(self, token_id: str) -> Optional[Token]:
        with self._lock:
            token = self._tokens.get(token_id)
        if token is None:
            return None
        if self.is_stale(token):
            logger.debug('Token %s... has expired', token_id[:8])
            self._discard(token)
            return None
        return token

    def _discard(self, token: Token) -> None:
        # A concurrent add() may have replaced the expired entry; only drop
        # the exact token we saw.
        with self._lock:
            if self._tokens.get(token.token_id) is token:
                del self._tokens[token.token_id]

    def remove(self, token_id: str) -> None:
        with self._lock:
            self._tokens.pop(token_id, None)

    def tokens(self) -> List[Token]:
        with self._lock:
            return list(self._tokens.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)
