"""Testing helpers."""

from typing import Any, Generator
from contextlib import contextmanager

from flask import Flask

from .. import util


@contextmanager
def temporary_db(db_uri: str = 'sqlite://', create: bool = True,
                 drop: bool = True, **config: Any) -> Generator[Flask, None, None]:
    """Provide an in-memory sqlite database for testing purposes."""
    app = Flask('test')
    app.config['SQLALCHEMY_DATABASE_URI'] = db_uri
    app.config.update(config)
    util.init_app(app)

    with app.app_context():
        if create:
            util.create_all()
        try:
            yield app
        finally:
            if drop:
                util.drop_all()
