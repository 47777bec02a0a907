"""Application factory for the accounts service."""

import logging

import click
from flask import Flask

from collab_auth import events, store
from collab_auth.auth import Auth, sessions
from collab_auth.errors import register_error_handlers
from collab_auth.store import accounts, roles

from .routes import api

logger = logging.getLogger(__name__)


def bootstrap(app: Flask) -> None:
    """Create the tables, and seed the system-defined roles."""
    with app.app_context():
        store.create_all()
        roles.seed_roles([app.config['DEFAULT_ROLE'],
                          app.config['ADMIN_ROLE']])


def create_web_app() -> Flask:
    """Initialize and configure the accounts application."""
    app = Flask('accounts')
    app.config.from_pyfile('config.py')
    logging.getLogger().setLevel(app.config['LOGLEVEL'])

    store.init_app(app)
    Auth(app)           # Loads the token codec, verifies bearer tokens.
    events.init_app(app)
    sessions.init_app(app)

    app.register_blueprint(api.blueprint)
    register_error_handlers(app)

    @app.cli.command('create-db')
    def create_db() -> None:
        """Create the tables, and seed the system-defined roles."""
        bootstrap(app)

    @app.cli.command('grant-admin')
    @click.argument('username')
    def grant_admin(username: str) -> None:
        """Give an existing user the administrator role."""
        user = accounts.get_user_by_username(username)
        accounts.assign_role(user.user_id, app.config['ADMIN_ROLE'])
        click.echo(f'{username} is now {app.config["ADMIN_ROLE"]}')

    if app.config['CREATE_DB']:
        bootstrap(app)
    return app
