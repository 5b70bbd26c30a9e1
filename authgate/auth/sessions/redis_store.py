"""
Token manager backed by Redis.

Each token is stored as JSON under its own key, with a Redis TTL when the
token has a deadline. A set per user indexes that user's token ids; it
expires with its longest-lived token, and :meth:`RedisTokenManager.sweep`
prunes ids whose token has expired.

In fact, the StrictRedis instance is thread safe and connections are
attached at the time a command is executed, so one manager can be shared by
every request thread.
"""

import json
from typing import Any, Callable, List, Optional
import logging

import redis
from retry.api import retry_call

from .store import TokenManager
from ..exceptions import TokenStoreUnavailable
from ... import domain
from ...domain import Token

logger = logging.getLogger(__name__)

TRANSIENT = (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError)


class RedisTokenManager(TokenManager):
    """
    Keeps tokens in Redis.

    Transient connection failures are retried here, with backoff. If the
    store still cannot be reached, :class:`.TokenStoreUnavailable` is
    raised; a failed lookup is never reported as a missing token.
    """

    def __init__(self, host: str = 'localhost', port: int = 6379,
                 db: int = 0, prefix: str = 'authgate:',
                 tries: int = 3, delay: float = 0.5,
                 connection: Optional[redis.StrictRedis] = None,
                 session_max_age: Optional[int] = None) -> None:
        """Open the connection to Redis."""
        if connection is None:
            logger.debug('New Redis connection at %s, port %s', host, port)
            connection = redis.StrictRedis(host=host, port=port, db=db)
        self.r = connection
        self.session_max_age = session_max_age
        self._prefix = prefix
        self._tries = tries
        self._delay = delay

    def _token_key(self, token_id: str) -> str:
        return f'{self._prefix}token:{token_id}'

    def _user_key(self, username: str) -> str:
        return f'{self._prefix}user:{username}'

    def _call(self, func: Callable, *args: Any, **kwargs: Any) -> Any:
        try:
            return retry_call(func, fargs=args, fkwargs=kwargs,
                              exceptions=TRANSIENT, tries=self._tries,
                              delay=self._delay, backoff=2, logger=None)
        except redis.exceptions.RedisError as e:
            logger.error('Token store unavailable: %s', type(e).__name__)
            raise TokenStoreUnavailable(f'Redis failed: {e}') from e

    def add(self, token: Token) -> None:
        """
        Store ``token``, and index it under its user.

        The user index expires no sooner than the longest-lived of its
        tokens, and never while it holds a token with no deadline.
        """
        ttl = None
        deadline = self.deadline(token)
        if deadline is not None:
            ttl = int((deadline - domain.now()).total_seconds())
            if ttl <= 0:
                logger.debug('Not storing token that has already expired')
                return
        user_key = self._user_key(token.username)
        self._call(self.r.set, self._token_key(token.token_id),
                   json.dumps(token.to_dict()), ex=ttl)
        # -2: no such key; -1: the key has no expiry.
        index_ttl = self._call(self.r.ttl, user_key)
        self._call(self.r.sadd, user_key, token.token_id)
        if ttl is None:
            self._call(self.r.persist, user_key)
        elif index_ttl == -2 or (index_ttl is not None
                                 and 0 <= index_ttl < ttl):
            self._call(self.r.expire, user_key, ttl)

    def lookup(self, token_id: str) -> Optional[Token]:
        raw = self._call(self.r.get, self._token_key(token_id))
        if not raw:
            return None
        try:
            token = Token.from_dict(json.loads(raw))
        except (ValueError, KeyError) as e:
            logger.error('Corrupt token record: %s', e)
            return None
        if self.is_stale(token):
            self.remove(token_id)
            return None
        return token

    def remove(self, token_id: str) -> None:
        raw = self._call(self.r.get, self._token_key(token_id))
        self._call(self.r.delete, self._token_key(token_id))
        if raw:
            try:
                username = json.loads(raw)['username']
            except (ValueError, KeyError):
                return
            self._call(self.r.srem, self._user_key(username), token_id)

    def tokens(self) -> List[Token]:
        pattern = self._token_key('*')
        keys = self._call(lambda: list(self.r.scan_iter(match=pattern)))
        if not keys:
            return []
        found = []
        for raw in self._call(self.r.mget, keys):
            if not raw:     # Removed or expired since the scan.
                continue
            try:
                found.append(Token.from_dict(json.loads(raw)))
            except (ValueError, KeyError) as e:
                logger.error('Corrupt token record: %s', e)
        return found

    def sweep(self) -> int:
        """Remove stale tokens, then prune the user indexes."""
        removed = super().sweep()
        self.prune_index()
        return removed

    def prune_index(self) -> int:
        """
        Drop token ids from the user indexes whose token key is gone.

        Token keys expire by TTL without touching the index, so ids of
        expired tokens accumulate until pruned.
        """
        pattern = self._user_key('*')
        user_keys = self._call(lambda: list(self.r.scan_iter(match=pattern)))
        pruned = 0
        for user_key in user_keys:
            token_ids = [_str(token_id) for token_id
                         in self._call(self.r.smembers, user_key) or ()]
            gone = [token_id for token_id in token_ids
                    if not self._call(self.r.exists,
                                      self._token_key(token_id))]
            if gone:
                pruned += int(self._call(self.r.srem, user_key, *gone) or 0)
        if pruned:
            logger.info('Pruned %i expired ids from user indexes', pruned)
        return pruned

    def remove_user(self, username: str) -> int:
        user_key = self._user_key(username)
        token_ids = self._call(self.r.smembers, user_key) or set()
        keys = [self._token_key(_str(token_id)) for token_id in token_ids]
        removed = 0
        if keys:
            removed = self._call(self.r.delete, *keys)
        self._call(self.r.delete, user_key)
        return int(removed or 0)


def _str(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode('utf-8')
    return str(value)


def init_app(app: Any) -> None:
    """Set default Redis configuration parameters on a Flask app."""
    app.config.setdefault('REDIS_HOST', 'localhost')
    app.config.setdefault('REDIS_PORT', '6379')
    app.config.setdefault('REDIS_DATABASE', '0')
    app.config.setdefault('REDIS_PREFIX', 'authgate:')


def get_redis_store(config: dict) -> RedisTokenManager:
    """Create a :class:`RedisTokenManager` from application config."""
    return RedisTokenManager(
        host=config.get('REDIS_HOST', 'localhost'),
        port=int(config.get('REDIS_PORT', '6379')),
        db=int(config.get('REDIS_DATABASE', '0')),
        prefix=config.get('REDIS_PREFIX', 'authgate:'),
        session_max_age=int(config.get('AUTH_SESSION_MAX_AGE') or 0) or None
    )
