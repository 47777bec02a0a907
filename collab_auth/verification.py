"""
E-mail verification capability.

Mail delivery belongs to another service. Requesting verification publishes
``user.verification.requested``; whoever delivers the message later calls
back to :func:`mark_verified`.
"""

import logging

from . import events
from .store import accounts

logger = logging.getLogger(__name__)


def send_verification(user_id: str) -> bool:
    """
    Request a verification message for a user.

    Returns
    -------
    bool
        ``False`` if the user is already verified and nothing was sent.

    Raises
    ------
    :class:`.NoSuchUser`

    """
    user = accounts.get_user(user_id)
    if user.verified:
        logger.debug('User %s is already verified', user_id)
        return False
    events.verification_requested(user)
    return True


def is_verified(user_id: str) -> bool:
    """Determine whether the user's e-mail address has been verified."""
    return accounts.get_user(user_id).verified


def mark_verified(user_id: str) -> None:
    """Record that the user's e-mail address has been verified."""
    accounts.set_verified(user_id, True)
    logger.info('Verified e-mail address of user %s', user_id)
