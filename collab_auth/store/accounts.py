"""Provide methods for working with user accounts."""

from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError
from werkzeug.security import generate_password_hash

from .. import domain
from ..exceptions import NoSuchUser, NoSuchRole, UsernameExists, EmailExists
from . import util, roles
from .models import DBUser, DBRole, DBRefreshToken

logger = logging.getLogger(__name__)


def _load(session, user_id: str) -> DBUser:   # type: ignore
    db_user: Optional[DBUser] = session.query(DBUser) \
        .filter(DBUser.user_id == str(user_id)) \
        .first()
    if db_user is None:
        raise NoSuchUser(f'No such user: {user_id}')
    return db_user


def username_exists(username: str) -> bool:
    """
    Determine whether a user with a particular username already exists.

    Parameters
    ----------
    username : str

    Returns
    -------
    bool

    """
    with util.transaction() as session:
        found = session.query(DBUser.user_id) \
            .filter(DBUser.username == username) \
            .first()
    return found is not None


def email_exists(email: str) -> bool:
    """
    Determine whether a user with a particular address already exists.

    Addresses are compared case-insensitively.
    """
    with util.transaction() as session:
        found = session.query(DBUser.user_id) \
            .filter(DBUser.email == email.strip().lower()) \
            .first()
    return found is not None


def register(registration: domain.UserRegistration,
             default_role: str) -> domain.User:
    """
    Create a new user.

    The default role is created as a system-defined role if the registry
    does not have it yet.

    Parameters
    ----------
    registration : :class:`.domain.UserRegistration`
    default_role : str
        Name of the role assigned to every new user.

    Returns
    -------
    :class:`.domain.User`

    Raises
    ------
    :class:`.UsernameExists`
    :class:`.EmailExists`

    """
    if username_exists(registration.username):
        raise UsernameExists('Username is already in use')
    if email_exists(registration.email):
        raise EmailExists('Email is already in use')

    role = roles.ensure_role(default_role, system_defined=True)
    try:
        with util.transaction() as session:
            db_role = session.query(DBRole) \
                .filter(DBRole.role_id == role.role_id) \
                .one()
            db_user = DBUser(
                username=registration.username,
                email=registration.email.strip().lower(),
                password_hash=generate_password_hash(registration.password),
                first_name=registration.first_name,
                last_name=registration.last_name,
                country_code=registration.country_code,
                contact_no=registration.contact_no,
                organization=registration.organization,
                active=True,
                deleted=False,
                verified=False,
                roles=[db_role]
            )
            session.add(db_user)
            session.commit()
            user = db_user.to_domain()
    except IntegrityError as e:
        # Someone else got there first.
        if username_exists(registration.username):
            raise UsernameExists('Username is already in use') from e
        raise EmailExists('Email is already in use') from e
    logger.info('Registered user %s', user.user_id)
    return user


def get_user(user_id: str) -> domain.User:
    """
    Load a user by ID.

    Raises
    ------
    :class:`.NoSuchUser`

    """
    with util.transaction() as session:
        return _load(session, user_id).to_domain()


def get_user_by_username(username: str) -> domain.User:
    """Load a user by username."""
    with util.transaction() as session:
        db_user = session.query(DBUser) \
            .filter(DBUser.username == username) \
            .first()
        if db_user is None:
            raise NoSuchUser(f'No such user: {username}')
        return db_user.to_domain()


def assign_role(user_id: str, role_name: str) -> domain.User:
    """
    Add a role to the user's memberships. Idempotent.

    Raises
    ------
    :class:`.NoSuchUser`
    :class:`.NoSuchRole`
        Raised if the role does not exist or has been deleted.

    """
    name = domain.normalize_role(role_name)
    with util.transaction() as session:
        db_user = _load(session, user_id)
        db_role = session.query(DBRole) \
            .filter(DBRole.name == name) \
            .filter(DBRole.deleted.is_(False)) \
            .first()
        if db_role is None:
            raise NoSuchRole(f'No such role: {name}')
        if db_role not in db_user.roles:
            db_user.roles.append(db_role)
        user = db_user.to_domain()
    return user


def remove_role(user_id: str, role_name: str) -> domain.User:
    """
    Remove a role from the user's memberships.

    Raises
    ------
    :class:`.NoSuchUser`
    :class:`.NoSuchRole`
        Raised if the user does not hold the role.

    """
    name = domain.normalize_role(role_name)
    with util.transaction() as session:
        db_user = _load(session, user_id)
        matching = [r for r in db_user.roles if r.name == name]
        if not matching:
            raise NoSuchRole(f'User does not have role {name}')
        for db_role in matching:
            db_user.roles.remove(db_role)
        user = db_user.to_domain()
    return user


def soft_delete_user(user_id: str) -> domain.User:
    """
    Deactivate a user and flag it as deleted.

    The user's refresh token is revoked in the same transaction.
    """
    with util.transaction() as session:
        db_user = _load(session, user_id)
        db_user.active = False
        db_user.deleted = True
        session.query(DBRefreshToken) \
            .filter(DBRefreshToken.user_id == db_user.user_id) \
            .delete(synchronize_session=False)
        user = db_user.to_domain()
    logger.info('Soft-deleted user %s', user_id)
    return user


def hard_delete_user(user_id: str) -> domain.User:
    """Permanently remove a user, its role memberships, and its token."""
    with util.transaction() as session:
        db_user = _load(session, user_id)
        user = db_user.to_domain()
        session.query(DBRefreshToken) \
            .filter(DBRefreshToken.user_id == db_user.user_id) \
            .delete(synchronize_session=False)
        session.delete(db_user)
    logger.info('Hard-deleted user %s', user_id)
    return user


def set_verified(user_id: str, verified: bool = True) -> domain.User:
    """Set the e-mail verification flag for a user."""
    with util.transaction() as session:
        db_user = _load(session, user_id)
        db_user.verified = verified
        user = db_user.to_domain()
    return user
