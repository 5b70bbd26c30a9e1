"""
Login and logout controllers.

When a user logs in, a :class:`.Token` is registered with the token manager
and its id is handed back in a signed session cookie. On subsequent requests
the auth middleware uses that cookie to find the token and identify the
user. Logging out removes the token, so the cookie stops working even if
the client keeps it.

Controllers return ``(data, status, headers)``; the caller builds the actual
response, setting any cookies listed under ``data['cookies']``.
"""

from typing import Any, Dict, Optional, Tuple
import logging

from .. import status
from ..auth import tokens
from ..auth.authenticator import Authenticator
from ..auth.exceptions import AuthError, InvalidToken, TokenStoreUnavailable
from ..auth.sessions import TokenManager, new_token
from ..domain import LoginRequest

logger = logging.getLogger(__name__)

ResponseData = Tuple[Dict[str, Any], int, Dict[str, str]]

GENERIC_FAILURE = 'Invalid username and/or password'


def login(payload: Any, authenticator: Authenticator,
          token_manager: TokenManager, secret: str,
          next_page: str, remote_ip: Optional[str] = None,
          remember_me_duration: int = 2592000,
          single_session: bool = False) -> ResponseData:
    """
    Log a user in with the credentials in ``payload``.

    Parameters
    ----------
    payload : Any
        Decoded JSON body; see :meth:`.LoginRequest.from_json`.
    authenticator : :class:`.Authenticator`
    token_manager : :class:`.TokenManager`
    secret : str
        Used to sign the session cookie.
    next_page : str
        Returned in the response body on success. The client is expected to
        go there itself; this controller never redirects.
    remote_ip : str or None
        Client address, recorded on the token.
    remember_me_duration : int
        Lifetime in seconds of tokens created with ``rememberMe``. Other
        tokens have no expiry and a browser-session cookie.
    single_session : bool
        If True, the user's other tokens are removed first.

    Returns
    -------
    dict
        ``reason`` on failure; ``next_page`` and ``cookies`` on success.
    int
        200 on success, 400 for a malformed payload, 401 if the credentials
        are rejected.
    dict
        Headers to add to the response.

    """
    try:
        login_request = LoginRequest.from_json(payload)
    except ValueError as e:
        logger.debug('Malformed login request: %s', e)
        return {'reason': str(e)}, status.HTTP_400_BAD_REQUEST, {}

    credential = login_request.credential
    username = credential.username
    try:
        authenticator.verify(username, credential.secret)
    except AuthError as e:
        logger.info('Login failed for %s: %s', username, type(e).__name__)
        return {'reason': e.reason}, status.HTTP_401_UNAUTHORIZED, {}
    except Exception:
        logger.exception('Unexpected failure to log in %s', username)
        return {'reason': GENERIC_FAILURE}, status.HTTP_401_UNAUTHORIZED, {}

    if single_session:
        removed = token_manager.remove_user(username)
        logger.debug('Removed %i existing tokens for %s', removed, username)

    duration = remember_me_duration if login_request.remember_me else None
    token = new_token(username, duration=duration, remote_ip=remote_ip)
    token_manager.add(token)
    logger.info('Login succeeded for %s (persistent: %s)', username,
                token.persistent)

    data = {
        'next_page': next_page,
        'cookies': {
            'session': (tokens.encode(token, secret), duration)
        }
    }
    return data, status.HTTP_200_OK, {}


def logout(session_cookie: Optional[str], token_manager: TokenManager,
           secret: str, next_page: str) -> ResponseData:
    """
    Log the user out, and redirect to ``next_page``.

    Parameters
    ----------
    session_cookie : str or None
        If it decodes to a token id, that token is removed.
    token_manager : :class:`.TokenManager`
    secret : str
    next_page : str
        Where to send the client, normally the login page.

    Returns
    -------
    dict
        Cookies to clear.
    int
        Always 302 (Found).
    dict
        The ``Location`` header.

    """
    logger.debug('Request to log out')
    if session_cookie:
        try:
            cookie = tokens.decode(session_cookie, secret)
        except InvalidToken as e:
            logger.debug('Ignoring invalid session cookie: %s', e)
        else:
            try:
                token_manager.remove(cookie.token_id)
                logger.info('Logged out %s', cookie.username)
            except TokenStoreUnavailable as e:
                logger.error('Logout failed: %s', e)

    data = {'cookies': {'session': ('', 0)}}
    return data, status.HTTP_302_FOUND, {'Location': next_page}
