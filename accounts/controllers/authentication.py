"""
Controllers for registration and the token session lifecycle.

Login and refresh both respond with a token pair and the identity it was
issued for. Logout always succeeds, whether or not the refresh token was
live.
"""

from typing import Any, Mapping, Optional
from http import HTTPStatus
import logging

from flask import current_app
from retry import retry

from collab_auth import domain
from collab_auth.auth import sessions
from collab_auth.exceptions import StoreUnavailable

from . import ResponseData
from .forms import LoginForm, RefreshForm, RegistrationForm
from .users import summarize

logger = logging.getLogger(__name__)


def _default_role() -> str:
    return current_app.config.get('DEFAULT_ROLE', 'GUEST')


def _token_response(pair: domain.TokenPair) -> dict:
    roles = domain.role_set(pair.user.roles)
    principal = domain.Principal(pair.user.username, roles,
                                 pair.user.user_id)
    return {
        'accessToken': pair.access_token,
        'refreshToken': pair.refresh_token.token,
        'tokenType': pair.token_type,
        'expiresIn': pair.expires_in,
        'userId': pair.user.user_id,
        'username': pair.user.username,
        'email': pair.user.email,
        'roles': sorted(roles),
        'role': principal.primary_role(_default_role()),
    }


def register(payload: Optional[Mapping[str, Any]]) -> ResponseData:
    """Create a new account with the default role."""
    form = RegistrationForm.from_json(payload).validated()
    user, _ = sessions.register(form.to_domain())
    logger.info('Registered user %s', user.user_id)
    return summarize(user), HTTPStatus.CREATED, {}


@retry(StoreUnavailable, tries=3, delay=0.5, backoff=2, logger=logger)
def login(payload: Optional[Mapping[str, Any]]) -> ResponseData:
    """Authenticate with a username (or e-mail) and password."""
    form = LoginForm.from_json(payload).validated()
    pair = sessions.login(form.username.data.strip(), form.password.data)
    return _token_response(pair), HTTPStatus.OK, {}


@retry(StoreUnavailable, tries=3, delay=0.5, backoff=2, logger=logger)
def refresh(payload: Optional[Mapping[str, Any]]) -> ResponseData:
    """Exchange a refresh token for a new token pair."""
    form = RefreshForm.from_json(payload).validated()
    pair = sessions.refresh(form.refresh_token.data)
    return _token_response(pair), HTTPStatus.OK, {}


@retry(StoreUnavailable, tries=3, delay=0.5, backoff=2, logger=logger)
def logout(payload: Optional[Mapping[str, Any]]) -> ResponseData:
    """Revoke a refresh token, if it is live."""
    token = (payload or {}).get('refreshToken')
    sessions.logout(token if isinstance(token, str) else None)
    return {'message': 'Logged out'}, HTTPStatus.OK, {}


def me(principal: domain.Principal) -> ResponseData:
    """Describe the principal of the current access token."""
    return {
        'username': principal.username,
        'userId': principal.user_id,
        'roles': sorted(principal.roles),
        'role': principal.primary_role(_default_role()),
    }, HTTPStatus.OK, {}
