"""Testing helpers for the profiles service."""

from typing import Any, Callable, Generator
from contextlib import contextmanager
from unittest import mock
import os

from flask import Flask

from collab_auth.tests.util import SECRET

from ..services import datastore

ENVIRON = {'REDIS_FAKE': '1', 'JWT_SECRET': SECRET, 'CREATE_DB': '0',
           'PROFILES_DATABASE_URI': 'sqlite://'}


@contextmanager
def temporary_app(factory: Callable[[], Flask], **config: Any) \
        -> Generator[Flask, None, None]:
    """Provide a profiles app with an empty store."""
    with mock.patch.dict(os.environ, ENVIRON):
        app = factory()
    app.config.update(config)
    with app.app_context():
        datastore.create_all()
        try:
            yield app
        finally:
            datastore.drop_all()
