"""Builders for identity event payloads."""

from typing import Any, Dict, Optional
from datetime import datetime
import uuid

from pytz import UTC

from .. import domain

USER_REGISTERED = 'USER_REGISTERED'
USER_DELETED = 'USER_DELETED'
USER_ROLE_CHANGED = 'USER_ROLE_CHANGED'
USER_VERIFICATION_REQUESTED = 'USER_VERIFICATION_REQUESTED'

ASSIGNED = 'ASSIGNED'
REMOVED = 'REMOVED'
ROLE_ACTIONS = (ASSIGNED, REMOVED)

Event = Dict[str, Any]


def epoch_ms(moment: Optional[datetime] = None) -> int:
    """Get a timestamp in milliseconds since the epoch."""
    if moment is None:
        moment = datetime.now(tz=UTC)
    return int(moment.timestamp() * 1000)


def _envelope(event_type: str, user: domain.User) -> Event:
    return {
        'eventId': str(uuid.uuid4()),
        'eventType': event_type,
        'timestamp': epoch_ms(),
        'userId': user.user_id,
        'username': user.username,
    }


def user_registered(user: domain.User) -> Event:
    """Announce a new account, with the fields a profile is seeded from."""
    event = _envelope(USER_REGISTERED, user)
    event.update({
        'email': user.email,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'countryCode': user.country_code,
        'contactNo': user.contact_no,
        'organization': user.organization,
        'roles': sorted(user.roles),
    })
    return event


def user_deleted(user: domain.User, deleted_by: str,
                 hard: bool = False) -> Event:
    """Announce that an account was deleted."""
    event = _envelope(USER_DELETED, user)
    event.update({'deletedBy': deleted_by, 'hardDelete': hard})
    return event


def user_role_changed(user: domain.User, role_name: str, action: str,
                      changed_by: str) -> Event:
    """Announce that a role was assigned to or removed from an account."""
    if action not in ROLE_ACTIONS:
        raise ValueError(f'Unknown role action: {action}')
    event = _envelope(USER_ROLE_CHANGED, user)
    event.update({
        'roleName': domain.normalize_role(role_name),
        'action': action,
        'changedBy': changed_by,
    })
    return event


def verification_requested(user: domain.User) -> Event:
    """Ask the mail collaborator to send a verification message."""
    event = _envelope(USER_VERIFICATION_REQUESTED, user)
    event['email'] = user.email
    return event
