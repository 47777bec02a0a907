"""Helpers and Flask application integration."""

from typing import Generator
from contextlib import contextmanager
import logging

from flask import Flask
from sqlalchemy import text
from sqlalchemy.exc import DisconnectionError, OperationalError, \
    TimeoutError as PoolTimeout
from sqlalchemy.orm.session import Session

from ..exceptions import StoreUnavailable
from .models import db

logger = logging.getLogger(__name__)

UNAVAILABLE = (OperationalError, PoolTimeout, DisconnectionError)


@contextmanager
def transaction() -> Generator[Session, None, None]:
    """
    Context manager for database transaction.

    Connection failures and timeouts are raised as
    :class:`.StoreUnavailable`; everything else propagates unchanged after
    the session is rolled back.
    """
    try:
        yield db.session
        # The caller may have explicitly committed already, in order to
        # implement exception handling logic. We only want to commit here if
        # there is anything remaining that is not flushed.
        if db.session.new or db.session.dirty or db.session.deleted:
            db.session.commit()
    except UNAVAILABLE as e:
        logger.error('Store unavailable, rolling back: %s', e)
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
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
        options.setdefault('connect_args', {'timeout': timeout})
    else:
        options.setdefault('pool_timeout', timeout)
        options.setdefault('pool_pre_ping', True)
    db.init_app(app)


def create_all() -> None:
    """Create all tables in the database."""
    db.create_all()


def drop_all() -> None:
    """Drop all tables in the database."""
    db.drop_all()


def is_available() -> bool:
    """Check our connection to the database."""
    try:
        db.session.execute(text('SELECT 1'))
    except Exception as e:
        logger.error('Encountered an error talking to database: %s', e)
        return False
    return True
