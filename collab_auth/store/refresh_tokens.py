"""
Refresh token store.

Each user has at most one live refresh token. Creating a token for a user
deletes the previous one in the same transaction, and the unique constraint
on ``refresh_tokens.user_id`` rejects the loser of a race between two
concurrent creations; the loser retries, so the last writer wins.
"""

from typing import Optional
from datetime import datetime, timedelta
import hashlib
import logging
import secrets
import uuid

from pytz import UTC
from retry import retry
from sqlalchemy.exc import IntegrityError

from .. import domain
from ..exceptions import NoSuchToken, StoreUnavailable
from . import util
from .models import DBRefreshToken

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32
"""Entropy of generated token strings, in bytes."""


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def generate_token() -> str:
    """Generate a new opaque, URL-safe token string."""
    return secrets.token_urlsafe(TOKEN_BYTES)


@retry(IntegrityError, tries=3, delay=0.05, backoff=2, logger=logger)
def _replace(user_id: str, ttl: timedelta) -> domain.RefreshToken:
    token = generate_token()
    expires = datetime.now(tz=UTC) + ttl
    with util.transaction() as session:
        session.query(DBRefreshToken) \
            .filter(DBRefreshToken.user_id == user_id) \
            .delete(synchronize_session=False)
        db_token = DBRefreshToken(
            token_id=str(uuid.uuid4()),
            user_id=user_id,
            token_digest=_digest(token),
            expires=expires
        )
        session.add(db_token)
        record = db_token.to_domain(token)
        session.commit()
    return record


def create(user_id: str, ttl: timedelta) -> domain.RefreshToken:
    """
    Create a new refresh token for a user, replacing any existing token.

    Parameters
    ----------
    user_id : str
    ttl : :class:`timedelta`
        Lifetime of the token.

    Returns
    -------
    :class:`.domain.RefreshToken`
        The only record that carries the plain token string.

    Raises
    ------
    :class:`.StoreUnavailable`
        Raised if the token could not be stored.

    """
    try:
        record = _replace(str(user_id), ttl)
    except IntegrityError as e:
        raise StoreUnavailable('Could not store refresh token') from e
    logger.debug('Created refresh token %s for user %s', record.token_id,
                 user_id)
    return record


@retry(IntegrityError, tries=3, delay=0.05, backoff=2, logger=logger)
def _rotate(token: str, user_id: str,
            ttl: timedelta) -> Optional[domain.RefreshToken]:
    with util.transaction() as session:
        removed = session.query(DBRefreshToken) \
            .filter(DBRefreshToken.token_digest == _digest(token)) \
            .filter(DBRefreshToken.user_id == user_id) \
            .delete(synchronize_session=False)
        if not removed:
            session.rollback()
            return None
        session.query(DBRefreshToken) \
            .filter(DBRefreshToken.user_id == user_id) \
            .delete(synchronize_session=False)
        new_token = generate_token()
        db_token = DBRefreshToken(
            token_id=str(uuid.uuid4()),
            user_id=user_id,
            token_digest=_digest(new_token),
            expires=datetime.now(tz=UTC) + ttl
        )
        session.add(db_token)
        record = db_token.to_domain(new_token)
        session.commit()
    return record


def rotate(token: str, user_id: str,
           ttl: timedelta) -> Optional[domain.RefreshToken]:
    """
    Replace a user's refresh token with a new one, in one transaction.

    Either the presented token is deleted and its successor stored, or
    nothing changes. If the store fails midway the presented token remains
    valid, so the caller may try again with it.

    Returns
    -------
    :class:`.domain.RefreshToken` or None
        ``None`` if ``token`` no longer exists for ``user_id``, e.g. because
        a concurrent call rotated it first.

    Raises
    ------
    :class:`.StoreUnavailable`

    """
    if not token:
        return None
    try:
        record = _rotate(token, str(user_id), ttl)
    except IntegrityError as e:
        raise StoreUnavailable('Could not store refresh token') from e
    if record is not None:
        logger.debug('Rotated refresh token for user %s to %s', user_id,
                     record.token_id)
    return record


def find_by_token(token: str) -> domain.RefreshToken:
    """
    Get the refresh token record for a token string.

    Raises
    ------
    :class:`.NoSuchToken`

    """
    if not token:
        raise NoSuchToken('No such refresh token')
    with util.transaction() as session:
        db_token = session.query(DBRefreshToken) \
            .filter(DBRefreshToken.token_digest == _digest(token)) \
            .first()
        if db_token is None:
            raise NoSuchToken('No such refresh token')
        return db_token.to_domain(token)


def is_expired(record: domain.RefreshToken) -> bool:
    """A token expires once its expiry lies strictly in the past."""
    return record.expired


def count_for_user(user_id: str) -> int:
    """Get the number of refresh tokens stored for a user."""
    with util.transaction() as session:
        return session.query(DBRefreshToken) \
            .filter(DBRefreshToken.user_id == str(user_id)) \
            .count()


def delete_by_user(user_id: str) -> None:
    """Delete the refresh token of a user, if there is one."""
    with util.transaction() as session:
        session.query(DBRefreshToken) \
            .filter(DBRefreshToken.user_id == str(user_id)) \
            .delete(synchronize_session=False)
        session.commit()


def delete_by_token(token: str) -> None:
    """Delete a refresh token, if it exists."""
    if not token:
        return
    with util.transaction() as session:
        session.query(DBRefreshToken) \
            .filter(DBRefreshToken.token_digest == _digest(token)) \
            .delete(synchronize_session=False)
        session.commit()
