"""Middleware for verifying bearer tokens on requests."""

from typing import Callable, Iterable, Optional, Tuple
import logging

from .tokens import TokenCodec
from ..exceptions import InvalidToken

logger = logging.getLogger(__name__)

WSGIRequest = Tuple[dict, Callable]

BEARER = 'bearer'


class BaseMiddleware(object):
    """Wraps a WSGI application, with a hook before the request is handled."""

    def __init__(self, wsgi_app: Callable) -> None:
        self.app = wsgi_app

    def before(self, environ: dict, start_response: Callable) -> WSGIRequest:
        """Inspect or modify the request environ before it is handled."""
        return environ, start_response

    def __call__(self, environ: dict, start_response: Callable) -> Iterable:
        environ, start_response = self.before(environ, start_response)
        response: Iterable = self.app(environ, start_response)
        return response


def get_bearer_token(header: Optional[str]) -> Optional[str]:
    """
    Get the token from an ``Authorization`` header value.

    Returns ``None`` if the header is absent or does not use the bearer
    scheme.
    """
    if not header:
        return None
    parts = header.strip().split(None, 1)
    if len(parts) != 2 or parts[0].lower() != BEARER:
        return None
    return parts[1].strip() or None


class AuthMiddleware(BaseMiddleware):
    """
    Middleware to handle auth information on requests.

    Before the request is handled by the application, the ``Authorization``
    header is parsed for a bearer token. If the token verifies, the
    :class:`.domain.Principal` it was issued for is attached to the request
    environ as ``auth``; in every other case ``auth`` is ``None``.

    Failures are logged but never raised here. Whether an anonymous request
    is acceptable is decided by the route policy (see
    :mod:`.auth.decorators`).
    """

    def __init__(self, wsgi_app: Callable, codec: TokenCodec) -> None:
        super(AuthMiddleware, self).__init__(wsgi_app)
        self.codec = codec

    def before(self, environ: dict, start_response: Callable) -> WSGIRequest:
        """Verify the bearer token on the request, if there is one."""
        environ['auth'] = None      # Create the auth key, at a minimum.
        environ['token'] = None
        token = get_bearer_token(environ.get('HTTP_AUTHORIZATION'))
        if token is None:
            logger.debug('No bearer token')
            return environ, start_response

        try:
            claims = self.codec.verify(token)
        except InvalidToken as e:   # Let the application decide what to do.
            logger.info('Auth token not valid: %s', type(e).__name__)
            return environ, start_response

        environ['auth'] = claims.to_principal()
        environ['token'] = token
        return environ, start_response
