"""
Issues, rotates, and revokes access/refresh token pairs.

A session moves from unauthenticated to authenticated on :meth:`.login`, is
renewed by :meth:`.refresh` (which consumes the presented refresh token and
issues a brand-new pair), and ends at :meth:`.logout` or when an expired
refresh token is presented.
"""

from typing import Optional, Tuple
from datetime import timedelta
from functools import wraps
import logging

from flask import Flask, current_app

from ... import domain, events
from ...exceptions import ConfigurationError, ExpiredToken, InvalidToken, \
    NoSuchToken, NoSuchUser
from ...store import accounts, refresh_tokens
from ...store.authenticate import authenticate, to_principal
from .. import tokens
from ..tokens import TokenCodec

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'collab_auth.issuer'


class SessionIssuer(object):
    """Orchestrates registration, login, refresh, and logout."""

    def __init__(self, codec: TokenCodec, access_ttl: timedelta,
                 refresh_ttl: timedelta, default_role: str) -> None:
        self.codec = codec
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.default_role = domain.normalize_role(default_role)

    def register(self, registration: domain.UserRegistration) \
            -> Tuple[domain.User, domain.Principal]:
        """
        Create a new user with the default role.

        Raises
        ------
        :class:`.UsernameExists`
        :class:`.EmailExists`

        """
        user = accounts.register(registration, self.default_role)
        events.user_registered(user)
        return user, to_principal(user)

    def login(self, username_or_email: str, password: str) \
            -> domain.TokenPair:
        """
        Authenticate a user and issue a new token pair.

        Any refresh token the user already holds is revoked.

        Raises
        ------
        :class:`.AuthenticationFailed`

        """
        user, principal = authenticate(username_or_email, password)
        pair = self._issue(user, principal)
        logger.info('User %s logged in', user.user_id)
        return pair

    def refresh(self, token: Optional[str]) -> domain.TokenPair:
        """
        Exchange a refresh token for a brand-new token pair.

        The presented token is consumed; presenting it again fails. The old
        token is replaced in a single transaction, so if the store fails the
        old token is still valid and the call can be repeated.

        Raises
        ------
        :class:`.InvalidToken`
            Raised if the token does not exist (e.g. it was already used),
            or its user is no longer active.
        :class:`.ExpiredToken`
            Raised if the token has expired. The token is deleted, and the
            user must log in again.

        """
        try:
            record = refresh_tokens.find_by_token(token or '')
        except NoSuchToken as e:
            logger.debug('Refresh token not found')
            raise InvalidToken('Invalid refresh token') from e

        if refresh_tokens.is_expired(record):
            refresh_tokens.delete_by_token(record.token)
            logger.debug('Refresh token %s has expired', record.token_id)
            raise ExpiredToken('Refresh token has expired')

        try:
            user = accounts.get_user(record.user_id)
        except NoSuchUser as e:
            refresh_tokens.delete_by_token(record.token)
            raise InvalidToken('Invalid refresh token') from e
        if not user.active or user.deleted:
            refresh_tokens.delete_by_token(record.token)
            raise InvalidToken('Invalid refresh token')

        principal = to_principal(user)
        access_token = self._access_token(principal)
        refresh_token = refresh_tokens.rotate(record.token, user.user_id,
                                              self.refresh_ttl)
        if refresh_token is None:
            logger.debug('Refresh token %s was used concurrently',
                         record.token_id)
            raise InvalidToken('Invalid refresh token')
        return self._pair(user, access_token, refresh_token)

    def logout(self, token: Optional[str]) -> None:
        """Revoke a refresh token. Succeeds whether or not it exists."""
        refresh_tokens.delete_by_token(token or '')

    def _access_token(self, principal: domain.Principal) -> str:
        return self.codec.issue(principal.username, principal.roles,
                                self.access_ttl, user_id=principal.user_id)

    def _pair(self, user: domain.User, access_token: str,
              refresh_token: domain.RefreshToken) -> domain.TokenPair:
        return domain.TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(self.access_ttl.total_seconds()),
            user=user
        )

    def _issue(self, user: domain.User,
               principal: domain.Principal) -> domain.TokenPair:
        access_token = self._access_token(principal)
        refresh_token = refresh_tokens.create(user.user_id, self.refresh_ttl)
        return self._pair(user, access_token, refresh_token)


def _ttl(app: Flask, key: str, default: int) -> timedelta:
    try:
        milliseconds = int(app.config.get(key, default))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f'{key} must be an integer') from e
    if milliseconds <= 0:
        raise ConfigurationError(f'{key} must be positive')
    return timedelta(milliseconds=milliseconds)


def init_app(app: Flask) -> SessionIssuer:
    """Create the :class:`.SessionIssuer` for ``app``."""
    app.config.setdefault('JWT_ACCESS_EXPIRATION_MS', 3600000)
    app.config.setdefault('JWT_REFRESH_EXPIRATION_MS', 86400000)
    app.config.setdefault('DEFAULT_ROLE', 'GUEST')
    codec = app.extensions.get(tokens.EXTENSION_KEY) or tokens.init_app(app)
    issuer = SessionIssuer(
        codec,
        access_ttl=_ttl(app, 'JWT_ACCESS_EXPIRATION_MS', 3600000),
        refresh_ttl=_ttl(app, 'JWT_REFRESH_EXPIRATION_MS', 86400000),
        default_role=app.config['DEFAULT_ROLE']
    )
    app.extensions[EXTENSION_KEY] = issuer
    return issuer


def current_issuer() -> SessionIssuer:
    """Get the :class:`.SessionIssuer` of the current application."""
    try:
        issuer: SessionIssuer = current_app.extensions[EXTENSION_KEY]
    except KeyError as e:
        raise ConfigurationError('Session issuer is not initialized') from e
    return issuer


@wraps(SessionIssuer.register)
def register(registration: domain.UserRegistration) \
        -> Tuple[domain.User, domain.Principal]:
    """Create a new user with the default role."""
    return current_issuer().register(registration)


@wraps(SessionIssuer.login)
def login(username_or_email: str, password: str) -> domain.TokenPair:
    """Authenticate a user and issue a new token pair."""
    return current_issuer().login(username_or_email, password)


@wraps(SessionIssuer.refresh)
def refresh(token: Optional[str]) -> domain.TokenPair:
    """Exchange a refresh token for a brand-new token pair."""
    return current_issuer().refresh(token)


@wraps(SessionIssuer.logout)
def logout(token: Optional[str]) -> None:
    """Revoke a refresh token."""
    current_issuer().logout(token)
