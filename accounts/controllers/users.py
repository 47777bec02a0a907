"""Controllers for user administration."""

from typing import Any, Mapping, Optional
from http import HTTPStatus
import logging

from retry import retry

from collab_auth import domain, events, verification
from collab_auth.events import payloads
from collab_auth.exceptions import StoreUnavailable
from collab_auth.store import accounts

from . import ResponseData
from .forms import RoleAssignmentForm

logger = logging.getLogger(__name__)


def summarize(user: domain.User) -> dict:
    """Render a user for a response body. No credentials are included."""
    return {
        'userId': user.user_id,
        'username': user.username,
        'email': user.email,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'countryCode': user.country_code,
        'contactNo': user.contact_no,
        'organization': user.organization,
        'active': user.active,
        'verified': user.verified,
        'roles': sorted(user.roles),
        'created': user.created.isoformat() if user.created else None,
    }


@retry(StoreUnavailable, tries=3, delay=0.5, backoff=2, logger=logger)
def get_user(user_id: str) -> ResponseData:
    """Get a summary of a user account."""
    return summarize(accounts.get_user(user_id)), HTTPStatus.OK, {}


@retry(StoreUnavailable, tries=3, delay=0.5, backoff=2, logger=logger)
def get_roles(user_id: str) -> ResponseData:
    """Get the names of the roles assigned to a user."""
    user = accounts.get_user(user_id)
    return {'userId': user.user_id, 'roles': sorted(user.roles)}, \
        HTTPStatus.OK, {}


def assign_role(user_id: str, payload: Optional[Mapping[str, Any]],
                actor: domain.Principal) -> ResponseData:
    """Assign a role to a user, and announce the change."""
    form = RoleAssignmentForm.from_json(payload).validated()
    role_name = domain.normalize_role(form.role_name.data)
    user = accounts.assign_role(user_id, role_name)
    events.user_role_changed(user, role_name, payloads.ASSIGNED,
                             actor.username)
    logger.info('%s assigned %s to user %s', actor.username, role_name,
                user_id)
    return {'userId': user.user_id, 'roles': sorted(user.roles)}, \
        HTTPStatus.OK, {}


def remove_role(user_id: str, role_name: str,
                actor: domain.Principal) -> ResponseData:
    """Remove a role from a user, and announce the change."""
    role_name = domain.normalize_role(role_name)
    user = accounts.remove_role(user_id, role_name)
    events.user_role_changed(user, role_name, payloads.REMOVED,
                             actor.username)
    logger.info('%s removed %s from user %s', actor.username, role_name,
                user_id)
    return {'userId': user.user_id, 'roles': sorted(user.roles)}, \
        HTTPStatus.OK, {}


def delete_user(user_id: str, actor: domain.Principal,
                hard: bool = False) -> ResponseData:
    """
    Delete a user account, and announce the deletion.

    A soft delete deactivates the account and revokes its refresh token; a
    hard delete removes the account entirely.
    """
    if hard:
        user = accounts.hard_delete_user(user_id)
    else:
        user = accounts.soft_delete_user(user_id)
    events.user_deleted(user, actor.username, hard=hard)
    logger.info('%s deleted user %s (hard=%s)', actor.username, user_id,
                hard)
    return {'userId': user_id, 'deleted': True, 'hardDelete': hard}, \
        HTTPStatus.OK, {}


def request_verification(user_id: str) -> ResponseData:
    """Ask for a verification message to be sent to the user."""
    sent = verification.send_verification(user_id)
    return {'userId': user_id, 'requested': sent}, HTTPStatus.ACCEPTED, {}


@retry(StoreUnavailable, tries=3, delay=0.5, backoff=2, logger=logger)
def get_verification(user_id: str) -> ResponseData:
    """Report whether the user's e-mail address has been verified."""
    return {'userId': user_id,
            'verified': verification.is_verified(user_id)}, \
        HTTPStatus.OK, {}


def confirm_verification(user_id: str) -> ResponseData:
    """Record that the user's e-mail address has been verified."""
    verification.mark_verified(user_id)
    return {'userId': user_id, 'verified': True}, HTTPStatus.OK, {}
