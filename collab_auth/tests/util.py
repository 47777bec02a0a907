"""Testing helpers shared by the library and the services."""

from typing import Any, Generator
from base64 import b64encode
from contextlib import contextmanager

import fakeredis
from flask import Flask

from .. import domain, events, store
from ..auth import tokens
from ..auth.sessions import issuer

SECRET = b64encode(b'k' * 32).decode('ascii')
"""A valid base64 signing secret."""


def registration(username: str = 'alice', email: str = 'alice@x.com',
                 password: str = 'correct-horse', **kwargs: Any) \
        -> domain.UserRegistration:
    """Build a :class:`.domain.UserRegistration` with sensible defaults."""
    kwargs.setdefault('first_name', username.title())
    kwargs.setdefault('last_name', 'Tester')
    kwargs.setdefault('country_code', '+91')
    kwargs.setdefault('contact_no', '5550100')
    return domain.UserRegistration(username=username, email=email,
                                   password=password, **kwargs)


@contextmanager
def temporary_app(db_uri: str = 'sqlite://', **config: Any) \
        -> Generator[Flask, None, None]:
    """
    Provide an app with a store, a token codec, a session issuer, and a fake
    event bus, inside an application context.
    """
    app = Flask('test')
    app.config['SQLALCHEMY_DATABASE_URI'] = db_uri
    app.config['JWT_SECRET'] = SECRET
    app.config['DEFAULT_ROLE'] = 'GUEST'
    app.config['ADMIN_ROLE'] = 'ADMIN'
    app.config.update(config)

    store.init_app(app)
    tokens.init_app(app)
    connection = fakeredis.FakeStrictRedis(server=fakeredis.FakeServer())
    events.init_app(app, connection=connection)
    issuer.init_app(app)

    with app.app_context():
        store.create_all()
        try:
            yield app
        finally:
            store.drop_all()
