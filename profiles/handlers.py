"""
Applies identity events to the profile store.

Every handler is idempotent, since an event may be delivered more than once.
A handler that raises leaves its event pending, to be delivered again.
"""

from typing import Callable, Dict
import logging

from collab_auth.events import payloads
from collab_auth.events.payloads import Event

from . import domain
from .services import datastore
from .services.datastore import NoSuchProfile

logger = logging.getLogger(__name__)


def user_registered(event: Event) -> None:
    """Create a profile for a newly registered user."""
    profile = domain.Profile(
        profile_id=event['userId'],
        username=event['username'],
        email=event['email'],
        first_name=event.get('firstName'),
        last_name=event.get('lastName'),
        country_code=event.get('countryCode'),
        contact_no=event.get('contactNo'),
        organization=event.get('organization'),
        roles=event.get('roles') or []
    )
    datastore.create_profile(profile)


def user_deleted(event: Event) -> None:
    """Deactivate the user's profile, or remove it if the user is gone."""
    user_id = event['userId']
    try:
        if event.get('hardDelete'):
            datastore.delete_profile(user_id)
        else:
            datastore.deactivate_profile(user_id)
    except NoSuchProfile:
        logger.warning('No profile for deleted user %s; skipping', user_id)


def user_role_changed(event: Event) -> None:
    """Keep the roles recorded on the profile up to date."""
    user_id = event['userId']
    action = event.get('action')
    try:
        if action == payloads.ASSIGNED:
            datastore.add_role(user_id, event['roleName'])
        elif action == payloads.REMOVED:
            datastore.remove_role(user_id, event['roleName'])
        else:
            logger.warning('Unknown role action %r for user %s; skipping',
                           action, user_id)
    except NoSuchProfile:
        logger.warning('No profile for user %s; skipping role change',
                       user_id)


HANDLERS: Dict[str, Callable[[Event], None]] = {
    payloads.USER_REGISTERED: user_registered,
    payloads.USER_DELETED: user_deleted,
    payloads.USER_ROLE_CHANGED: user_role_changed,
}


def handle(stream: str, event: Event) -> None:
    """Dispatch an event by its type."""
    handler = HANDLERS.get(event.get('eventType', ''))
    if handler is None:
        logger.debug('Ignoring %s event from %s', event.get('eventType'),
                     stream)
        return
    logger.info('Handling %s for user %s', event['eventType'],
                event.get('userId'))
    handler(event)
