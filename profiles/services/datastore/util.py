"""Helpers and Flask application integration for the profile store."""

from typing import Generator
from contextlib import contextmanager
import logging

from flask import Flask
from sqlalchemy.orm.session import Session

from collab_auth.exceptions import StoreUnavailable
from collab_auth.store.util import UNAVAILABLE

from .models import db

logger = logging.getLogger(__name__)


@contextmanager
def transaction() -> Generator[Session, None, None]:
    """Context manager for database transaction."""
    try:
        yield db.session
        if db.session.new or db.session.dirty or db.session.deleted:
            db.session.commit()
    except UNAVAILABLE as e:
        logger.error('Profile store unavailable, rolling back: %s', e)
        db.session.rollback()
        raise StoreUnavailable('Store is temporarily unavailable') from e
    except Exception as e:
        logger.warning('Commit failed, rolling back: %s', str(e))
        db.session.rollback()
        raise


def init_app(app: Flask) -> None:
    """Set configuration defaults and attach session to the application."""
    app.config.setdefault('SQLALCHEMY_DATABASE_URI', 'sqlite://')
    timeout = float(app.config.get('STORE_TIMEOUT', 5))
    options = app.config.setdefault('SQLALCHEMY_ENGINE_OPTIONS', {})
    if not app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
        options.setdefault('pool_timeout', timeout)
        options.setdefault('pool_pre_ping', True)
    db.init_app(app)


def create_all() -> None:
    """Create all tables in the database."""
    db.create_all()


def drop_all() -> None:
    """Drop all tables in the database."""
    db.drop_all()
