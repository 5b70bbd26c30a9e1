"""Application factory for the authentication service."""

from typing import Callable, Optional, Union

from flask import Flask

from . import routes
from .app_logging import setup_logger
from .auth import Auth
from .auth.authenticator import Authenticator
from .auth.sessions import TokenManager


def create_web_app(
        authenticator: Optional[Union[Authenticator, Callable]] = None,
        token_manager: Optional[TokenManager] = None) -> Flask:
    """Initialize and configure the authentication service."""
    app = Flask('authgate')
    app.config.from_pyfile('config.py')
    setup_logger(app.config['LOG_LEVEL'], json=app.config['LOG_JSON'])

    app.register_blueprint(routes.blueprint)
    Auth(app, authenticator=authenticator, token_manager=token_manager)
    return app
