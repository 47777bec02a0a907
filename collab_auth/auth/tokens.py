"""Signing and verification of access tokens."""

from typing import Iterable, Optional
from base64 import b64decode
from datetime import datetime, timedelta
import binascii
import logging

from flask import Flask, current_app
from pytz import UTC
import jwt

from .. import domain
from ..exceptions import ConfigurationError, InvalidToken, ExpiredToken
from . import claims

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'collab_auth.codec'


class TokenEmpty(InvalidToken):
    """No token was provided."""


class TokenMalformed(InvalidToken):
    """The token could not be parsed, or lacks required claims."""


class BadSignature(InvalidToken):
    """The token signature does not match the signing key."""


class TokenExpired(ExpiredToken):
    """The token is past its expiry."""


class TokenCodec(object):
    """
    Issues and verifies compact signed access tokens.

    The signing key is fixed for the lifetime of the codec. A single codec is
    created when the application starts (see :func:`init_app`) and shared by
    all requests; it holds no mutable state, so no locking is needed.
    """

    ALGORITHM = 'HS256'
    REQUIRED_CLAIMS = ['sub', 'iat', 'exp']

    def __init__(self, key: bytes, roles_claim: str = 'roles') -> None:
        if not key:
            raise ConfigurationError('Signing key must not be empty')
        self._key = bytes(key)
        self._roles_claim = roles_claim

    @classmethod
    def from_secret(cls, secret: Optional[str],
                    roles_claim: str = 'roles') -> 'TokenCodec':
        """Create a codec from a base64-encoded secret."""
        if not secret:
            raise ConfigurationError('JWT_SECRET is not set')
        try:
            key = b64decode(secret, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ConfigurationError('JWT_SECRET is not valid base64') from e
        return cls(key, roles_claim=roles_claim)

    @property
    def roles_claim(self) -> str:
        return self._roles_claim

    def issue(self, subject: str, roles: Iterable[str], ttl: timedelta,
              user_id: Optional[str] = None) -> str:
        """
        Mint a signed token for ``subject``.

        Parameters
        ----------
        subject : str
            Username of the principal.
        roles : iterable
            Role names; normalized and sorted in the payload.
        ttl : :class:`timedelta`
            Lifetime of the token.
        user_id : str
            If provided, carried in the ``uid`` claim for ownership checks.

        Returns
        -------
        str

        """
        now = datetime.now(tz=UTC)
        payload = {
            'sub': subject,
            self._roles_claim: sorted(domain.role_set(roles)),
            'iat': now,
            'exp': now + ttl,
        }
        if user_id is not None:
            payload['uid'] = str(user_id)
        return jwt.encode(payload, self._key, algorithm=self.ALGORITHM)

    def verify(self, token: Optional[str]) -> domain.TokenClaims:
        """
        Verify a token and get its claims.

        A token whose expiry equals the current time is already expired.

        Raises
        ------
        :class:`TokenEmpty`
        :class:`TokenMalformed`
        :class:`BadSignature`
        :class:`TokenExpired`

        """
        if token is None or not token.strip():
            raise TokenEmpty('No token provided')
        try:
            data: dict = jwt.decode(
                token, self._key, algorithms=[self.ALGORITHM],
                options={'require': self.REQUIRED_CLAIMS}
            )
        except jwt.exceptions.ExpiredSignatureError as e:
            raise TokenExpired('Token has expired') from e
        except jwt.exceptions.InvalidSignatureError as e:
            raise BadSignature('Token signature is invalid') from e
        except jwt.exceptions.InvalidTokenError as e:
            raise TokenMalformed(f'Token is malformed: {e}') from e

        return domain.TokenClaims(
            subject=str(data['sub']),
            roles=claims.extract_roles(data, self._roles_claim),
            issued_at=datetime.fromtimestamp(data['iat'], tz=UTC),
            expires_at=datetime.fromtimestamp(data['exp'], tz=UTC),
            user_id=data.get('uid')
        )


def init_app(app: Flask) -> TokenCodec:
    """Create the process-wide :class:`TokenCodec` for ``app``."""
    codec = TokenCodec.from_secret(
        app.config.get('JWT_SECRET'),
        roles_claim=app.config.get('JWT_ROLES_CLAIM', 'roles')
    )
    app.extensions[EXTENSION_KEY] = codec
    logger.debug('Token codec initialized')
    return codec


def current_codec() -> TokenCodec:
    """Get the :class:`TokenCodec` of the current application."""
    try:
        codec: TokenCodec = current_app.extensions[EXTENSION_KEY]
    except KeyError as e:
        raise ConfigurationError('Token codec is not initialized') from e
    return codec
