"""
Session token storage.

A :class:`TokenManager` holds the server side of every session. Tokens are
keyed by an opaque id, so one user may be logged in from several browsers at
once. :class:`InMemoryTokenManager` keeps them in process;
:class:`.redis_store.RedisTokenManager` keeps them in Redis so that several
worker processes can share sessions.

See :mod:`.store`.
"""

from .store import TokenManager, InMemoryTokenManager, new_token, \
    generate_token_id
from .redis_store import RedisTokenManager, get_redis_store
