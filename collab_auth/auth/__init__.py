"""Provides tools for working with authenticated requests."""

from typing import Optional
import logging

from flask import Flask, request

from . import decorators, middleware, tokens
from .. import domain

logger = logging.getLogger(__name__)


class Auth(object):
    """
    Attaches authentication information to the request.

    Intended for use in a Flask application factory, for example:

    .. code-block:: python

       from flask import Flask
       from collab_auth.auth import Auth
       from someapp import routes


       def create_web_app() -> Flask:
           app = Flask('someapp')
           app.config.from_pyfile('config.py')
           Auth(app)   # Verifies bearer tokens on every request.
           app.register_blueprint(routes.blueprint)
           return app

    """

    def __init__(self, app: Optional[Flask] = None) -> None:
        """
        Initialize ``app`` with token verification.

        Parameters
        ----------
        app : :class:`Flask`

        """
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """
        Install :class:`.middleware.AuthMiddleware` and :meth:`.load_auth`.

        The token codec is created here if the application does not have one
        yet, so that the signing key is loaded exactly once per process.

        Parameters
        ----------
        app : :class:`Flask`

        """
        self.app = app
        codec = app.extensions.get(tokens.EXTENSION_KEY)
        if codec is None:
            codec = tokens.init_app(app)
        app.wsgi_app = middleware.AuthMiddleware(app.wsgi_app, codec)
        app.before_request(self.load_auth)

    def load_auth(self) -> None:
        """
        Attach the authenticated principal (or ``None``) to the request.

        The middleware puts the principal in the WSGI environ under ``auth``.
        """
        principal: Optional[domain.Principal] = request.environ.get('auth')
        if principal is not None:
            logger.debug('Request authenticated as %s', principal.username)
        request.auth = principal
