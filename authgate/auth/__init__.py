"""Provides tools for authenticating requests to a Flask application."""

from typing import Any, Callable, Optional, Union
import logging

import click
from flask import Flask, request
from flask.cli import AppGroup
from werkzeug.utils import import_string

from . import middleware, paths, tokens
from .authenticator import Authenticator
from .exceptions import ConfigurationError
from .middleware import AuthMiddleware, PRINCIPAL_KEY, TOKEN_KEY
from .sessions import TokenManager, InMemoryTokenManager, get_redis_store
from .sessions import redis_store
from ..pipeline import wrap

logger = logging.getLogger(__name__)


class Auth(object):
    """
    Authenticates every request to a Flask application.

    Intended for use in a Flask application factory, for example:

    .. code-block:: python

       from flask import Flask
       from authgate.auth import Auth
       from someapp import routes, users


       def create_web_app() -> Flask:
          app = Flask('someapp')
          app.config.from_pyfile('config.py')
          app.register_blueprint(routes.blueprint)    # Your blueprint.
          Auth(app, authenticator=users.verify)
          return app


    The application is wrapped in an :class:`.AuthMiddleware`; inside a
    request, the authenticated username is available as ``request.auth``
    (``None`` on open paths).
    """

    def __init__(self, app: Optional[Flask] = None,
                 authenticator: Optional[Union[Authenticator, Callable]] = None,
                 token_manager: Optional[TokenManager] = None) -> None:
        """
        Initialize ``app``, if given.

        Parameters
        ----------
        app : :class:`Flask`
        authenticator : :class:`.Authenticator` or callable
            Falls back to the ``AUTH_AUTHENTICATOR`` config value.
        token_manager : :class:`.TokenManager`
            Falls back to one built from config; see
            :func:`get_token_manager`.

        """
        self.middleware: Optional[AuthMiddleware] = None
        if app is not None:
            self.init_app(app, authenticator, token_manager)

    def init_app(self, app: Flask,
                 authenticator: Optional[Union[Authenticator, Callable]] = None,
                 token_manager: Optional[TokenManager] = None) -> None:
        """
        Wrap ``app`` in the auth middleware.

        Parameters
        ----------
        app : :class:`Flask`

        """
        self.app = app
        init_app(app)
        if authenticator is None:
            authenticator = app.config.get('AUTH_AUTHENTICATOR')
        if authenticator is None:
            raise ConfigurationError('No authenticator configured')
        if isinstance(authenticator, str):
            authenticator = import_string(authenticator)
        if token_manager is None:
            token_manager = get_token_manager(app.config)
        secret = app.config.get('JWT_SECRET')
        if not secret:
            raise ConfigurationError('JWT_SECRET must be set')

        config = app.config
        open_paths = paths.OpenPathSet(
            paths.from_config(config['AUTH_OPEN_PATHS']),
            paths.from_config(config['AUTH_OPEN_PATTERNS'])
        )
        self.middleware = AuthMiddleware(
            authenticator, token_manager, secret,
            open_paths=open_paths,
            login_path=config['AUTH_LOGIN_PATH'],
            logout_path=config['AUTH_LOGOUT_PATH'],
            cookie_name=config['AUTH_SESSION_COOKIE_NAME'],
            cookie_secure=_flag(config['AUTH_SESSION_COOKIE_SECURE']),
            remember_me_duration=int(config['REMEMBER_ME_DURATION']),
            single_session=_flag(config['AUTH_SINGLE_SESSION'])
        )
        logger.debug('Open paths: %s', open_paths)
        wrap(app, [self.middleware])
        app.before_request(self.load_session)
        app.cli.add_command(_token_commands(self))
        app.extensions['authgate'] = self

    @property
    def token_manager(self) -> TokenManager:
        """The token manager used by the middleware."""
        if self.middleware is None:
            raise ConfigurationError('Auth has not been initialized')
        return self.middleware.token_manager

    def load_session(self) -> None:
        """Attach the principal set by the middleware to the request."""
        request.auth = request.environ.get(PRINCIPAL_KEY)
        request.auth_token = request.environ.get(TOKEN_KEY)


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def init_app(app: Flask) -> None:
    """Set default auth configuration parameters for an application."""
    app.config.setdefault('AUTH_OPEN_PATHS', '/auth_status')
    app.config.setdefault('AUTH_OPEN_PATTERNS', '')
    app.config.setdefault('AUTH_LOGIN_PATH', '/account/login')
    app.config.setdefault('AUTH_LOGOUT_PATH', '/account/logout')
    app.config.setdefault('AUTH_SESSION_COOKIE_NAME', 'AUTHGATE_SESSION_ID')
    app.config.setdefault('AUTH_SESSION_COOKIE_SECURE', '1')
    app.config.setdefault('AUTH_SINGLE_SESSION', '0')
    app.config.setdefault('REMEMBER_ME_DURATION', '2592000')
    app.config.setdefault('AUTH_SESSION_MAX_AGE', '604800')
    app.config.setdefault('TOKEN_STORE', 'memory')
    redis_store.init_app(app)


def get_token_manager(config: dict) -> TokenManager:
    """Create the token manager selected by ``TOKEN_STORE``."""
    store = config.get('TOKEN_STORE', 'memory')
    if store == 'memory':
        max_age = int(config.get('AUTH_SESSION_MAX_AGE') or 0) or None
        return InMemoryTokenManager(session_max_age=max_age)
    if store == 'redis':
        return get_redis_store(config)
    raise ConfigurationError(f'Unknown token store: {store}')


def _token_commands(auth: Auth) -> AppGroup:
    group = AppGroup('tokens', help='Inspect and maintain session tokens.')

    @group.command('sweep')
    def sweep() -> None:
        """Remove expired and stale tokens."""
        removed = auth.token_manager.sweep()
        click.echo(f'Removed {removed} expired tokens')

    @group.command('list')
    def list_tokens() -> None:
        """List live tokens, without their ids."""
        for token in auth.token_manager.tokens():
            if auth.token_manager.is_stale(token):
                continue
            deadline = auth.token_manager.deadline(token)
            expires = deadline.isoformat() if deadline is not None \
                else 'end of browser session'
            click.echo(f'{token.username}\t{token.issued_at.isoformat()}'
                       f'\t{expires}\t{token.remote_ip or "-"}')

    return group
