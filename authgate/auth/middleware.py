"""
Middleware stage that authenticates requests.

Each request is handled as follows:

1. ``POST`` to the login path, or any request to the logout path, is handled
   here by :mod:`authgate.controllers.authentication`. Nothing downstream
   runs.
2. Open paths (see :class:`.OpenPathSet`), and the login page itself, are
   passed on without looking at the session cookie at all.
3. Any other path is protected. If the session cookie names a live token,
   the username is attached to the request as the principal and the request
   is passed on; the downstream response is returned as is. Otherwise the
   client is redirected to the login path, with the original URL in the
   ``next`` query parameter.

The principal is available downstream as ``environ['auth.principal']``, and
the :class:`.Token` as ``environ['auth.token']``.
"""

import json
from typing import Optional, Union, Callable, Iterable
import logging

from werkzeug.utils import redirect
from werkzeug.wrappers import Request, Response

from .. import status
from ..controllers import authentication
from ..domain import Token
from ..pipeline import NextStage, Stage
from ..urls import get_base_url, get_request_url, login_redirect, \
    normalize_path
from . import tokens
from .authenticator import Authenticator, as_authenticator
from .exceptions import InvalidToken, TokenStoreUnavailable
from .paths import OpenPathSet
from .sessions import TokenManager

logger = logging.getLogger(__name__)

PRINCIPAL_KEY = 'auth.principal'
TOKEN_KEY = 'auth.token'


class AuthMiddleware(Stage):
    """
    Authenticates requests and handles login and logout.

    The middleware itself holds no per-request state; the token manager is
    the only thing shared between requests.
    """

    def __init__(self, authenticator: Union[Authenticator, Callable],
                 token_manager: TokenManager, secret: str,
                 open_paths: Optional[Union[OpenPathSet, Iterable[str]]] = None,
                 login_path: str = '/account/login',
                 logout_path: str = '/account/logout',
                 cookie_name: str = 'AUTHGATE_SESSION_ID',
                 cookie_secure: bool = True,
                 remember_me_duration: int = 2592000,
                 single_session: bool = False) -> None:
        if not secret:
            raise ValueError('A secret is required to sign session cookies')
        if token_manager is None:
            raise ValueError('A token manager is required')
        self.authenticator = as_authenticator(authenticator)
        self.token_manager = token_manager
        self.secret = secret
        if not isinstance(open_paths, OpenPathSet):
            open_paths = OpenPathSet(open_paths)
        self.open_paths = open_paths
        self.login_path = normalize_path(login_path)
        self.logout_path = normalize_path(logout_path)
        self.cookie_name = cookie_name
        self.cookie_secure = cookie_secure
        self.remember_me_duration = remember_me_duration
        self.single_session = single_session

    def handle(self, request: Request, next_stage: NextStage) -> Response:
        """Authenticate ``request``, or respond on its behalf."""
        path = normalize_path(request.path)
        try:
            if path == self.login_path and request.method == 'POST':
                return self.login(request)
            if path == self.logout_path:
                return self.logout(request)
            if path == self.login_path or self.open_paths.is_open(path):
                return next_stage(request)

            token = self.authenticate(request)
        except TokenStoreUnavailable as e:
            logger.error('Token store unavailable: %s', e)
            return _reason_response(status.HTTP_500_INTERNAL_SERVER_ERROR,
                                    'Session store unavailable')

        if token is None:
            next_url = get_request_url(request, query=True)
            location = login_redirect(request, self.login_path, next_url)
            logger.debug('No valid session for %s; redirecting', path)
            return redirect(location, code=status.HTTP_302_FOUND)

        request.environ[PRINCIPAL_KEY] = token.username
        request.environ[TOKEN_KEY] = token
        return next_stage(request)

    def authenticate(self, request: Request) -> Optional[Token]:
        """
        Find the live token named by the request's session cookie.

        Returns ``None`` if there is no cookie, if it cannot be decoded, or
        if the token it names is unknown or expired.

        Raises
        ------
        :class:`.TokenStoreUnavailable`
            Raised if the token store cannot be reached.

        """
        cookie_value = request.cookies.get(self.cookie_name)
        if not cookie_value:
            return None
        try:
            cookie = tokens.decode(cookie_value, self.secret)
        except InvalidToken as e:
            logger.debug('Invalid session cookie: %s', e)
            return None
        token = self.token_manager.lookup(cookie.token_id)
        if token is None:
            logger.debug('No live token for %s', cookie.username)
            return None
        if token.username != cookie.username:
            logger.warning('Session cookie does not match token; forged?')
            return None
        return token

    def login(self, request: Request) -> Response:
        """Handle a login request."""
        payload = request.get_json(force=True, silent=True)
        next_page = request.args.get('request') or get_base_url(request)
        data, code, headers = authentication.login(
            payload, self.authenticator, self.token_manager, self.secret,
            next_page, remote_ip=request.remote_addr,
            remember_me_duration=self.remember_me_duration,
            single_session=self.single_session
        )
        if code != status.HTTP_200_OK:
            return _reason_response(code, data['reason'], headers)
        response = Response(data['next_page'], status=code, headers=headers,
                            mimetype='text/plain')
        self.set_cookies(request, response, data)
        return response

    def logout(self, request: Request) -> Response:
        """Handle a logout request."""
        base_url = get_base_url(request)
        next_page = login_redirect(request, self.login_path, base_url)
        data, code, headers = authentication.logout(
            request.cookies.get(self.cookie_name), self.token_manager,
            self.secret, next_page
        )
        response = redirect(headers['Location'], code=code)
        self.set_cookies(request, response, data)
        return response

    def set_cookies(self, request: Request, response: Response,
                    data: dict) -> None:
        """
        Update ``response`` with cookies in controller data.

        Controllers seeking to update cookies must include a ``cookies`` key
        in their response data, mapping to ``(value, max_age)``. A
        ``max_age`` of ``None`` makes a browser-session cookie.
        """
        cookies = data.pop('cookies', None)
        if not cookies:
            return
        value, max_age = cookies['session']
        params = dict(httponly=True, path=request.script_root or '/')
        if self.cookie_secure:
            # Lax, to allow reasonable links to authenticated views using
            # GET requests.
            params.update({'secure': True, 'samesite': 'Lax'})
        response.set_cookie(self.cookie_name, value, max_age=max_age,
                            **params)


def _reason_response(code: int, reason: str,
                     headers: Optional[dict] = None) -> Response:
    """Build a JSON error response whose reason phrase is ``reason``."""
    response = Response(json.dumps({'reason': reason}), headers=headers,
                        mimetype='application/json')
    # Reason phrases are a single line of latin-1 text.
    phrase = ' '.join(reason.split())
    phrase = phrase.encode('latin-1', 'replace').decode('latin-1')
    response.status = f'{int(code)} {phrase}'
    return response
