"""Application factories for the profiles service."""

import logging

from flask import Flask

from collab_auth import events
from collab_auth.auth import Auth
from collab_auth.errors import register_error_handlers

from .routes import blueprint
from .services import datastore

logger = logging.getLogger(__name__)


def _create_app() -> Flask:
    app = Flask('profiles')
    app.config.from_pyfile('config.py')
    logging.getLogger().setLevel(app.config['LOGLEVEL'])
    datastore.init_app(app)
    if app.config['CREATE_DB']:
        with app.app_context():
            datastore.create_all()
    return app


def create_web_app() -> Flask:
    """Initialize and configure the profiles application."""
    app = _create_app()
    Auth(app)
    app.register_blueprint(blueprint)
    register_error_handlers(app)
    return app


def create_worker_app() -> Flask:
    """Initialize and configure the event consumer application."""
    app = _create_app()
    app.extensions['profiles.redis'] = events.get_connection(app.config)
    return app
