"""Provide an API for user authentication against the credential store."""

from typing import Optional, Tuple
from functools import lru_cache
import logging

from werkzeug.security import check_password_hash, generate_password_hash

from .. import domain
from ..exceptions import AuthenticationFailed
from . import util
from .models import DBUser

logger = logging.getLogger(__name__)

GENERIC_FAILURE = 'Invalid username or password'


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    """A hash to check against when there is no user, to keep timing even."""
    return generate_password_hash('not-a-real-password')


def to_principal(user: domain.User) -> domain.Principal:
    """Build the :class:`.domain.Principal` for a user."""
    return domain.Principal(
        username=user.username,
        roles=domain.role_set(user.roles),
        user_id=user.user_id
    )


def authenticate(username_or_email: Optional[str] = None,
                 password: Optional[str] = None) \
        -> Tuple[domain.User, domain.Principal]:
    """
    Validate username/password. If successful, retrieve user details.

    Parameters
    ----------
    username_or_email : str
        Users may log in with either their username or their email address.
    password : str
        Password (as entered). Never logged.

    Returns
    -------
    :class:`.domain.User`
    :class:`.domain.Principal`

    Raises
    ------
    :class:`.AuthenticationFailed`
        Raised if the user does not exist, the password is incorrect, or the
        account is inactive or deleted. The message is the same in each case.

    """
    if not username_or_email or not password:
        logger.debug('Username and password are required')
        raise AuthenticationFailed(GENERIC_FAILURE)

    with util.transaction() as session:
        db_user: Optional[DBUser] = session.query(DBUser) \
            .filter(DBUser.username == username_or_email) \
            .first()
        if db_user is None and '@' in username_or_email:
            db_user = session.query(DBUser) \
                .filter(DBUser.email == username_or_email.strip().lower()) \
                .first()

        if db_user is None:
            check_password_hash(_dummy_hash(), password)
            logger.debug('No such user: %s', username_or_email)
            raise AuthenticationFailed(GENERIC_FAILURE)

        if not check_password_hash(db_user.password_hash, password):
            logger.debug('Wrong password for user: %s', username_or_email)
            raise AuthenticationFailed(GENERIC_FAILURE)

        if not db_user.active or db_user.deleted:
            logger.debug('User is not active: %s', username_or_email)
            raise AuthenticationFailed(GENERIC_FAILURE)

        user = db_user.to_domain()
    return user, to_principal(user)
