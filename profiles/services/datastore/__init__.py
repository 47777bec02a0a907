"""Persistence for user profiles."""

from typing import List, Mapping, Optional, Tuple
from datetime import datetime
import logging

from pytz import UTC
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from collab_auth.domain import normalize_role
from collab_auth.exceptions import Forbidden, NotFound

from . import util
from .models import DBProfile, DBProfileRole
from ... import domain

logger = logging.getLogger(__name__)


class NoSuchProfile(NotFound):
    """A profile was requested that does not exist."""


class ProfileInactive(Forbidden):
    """An inactive profile cannot be changed by its owner."""


init_app = util.init_app
create_all = util.create_all
drop_all = util.drop_all
transaction = util.transaction


def _load(session, profile_id: str) -> DBProfile:   # type: ignore
    db_profile: Optional[DBProfile] = session.query(DBProfile) \
        .filter(DBProfile.profile_id == profile_id) \
        .first()
    if db_profile is None:
        raise NoSuchProfile(f'No such profile: {profile_id}')
    return db_profile


def exists(profile_id: str) -> bool:
    """Determine whether a profile exists for the user."""
    with util.transaction() as session:
        count: int = session.query(func.count(DBProfile.profile_id)) \
            .filter(DBProfile.profile_id == profile_id) \
            .scalar()
    return count > 0


def create_profile(profile: domain.Profile) -> Tuple[domain.Profile, bool]:
    """
    Create a profile, unless one already exists for the same user.

    Returns
    -------
    :class:`domain.Profile`
        The new profile, or the one that already existed.
    bool
        Whether a profile was created.

    """
    if exists(profile.profile_id):
        logger.info('Profile already exists for user %s', profile.profile_id)
        return get_profile(profile.profile_id), False
    try:
        with util.transaction() as session:
            db_profile = DBProfile(
                profile_id=profile.profile_id,
                username=profile.username,
                email=profile.email,
                active=True,
                roles=[DBProfileRole(name=name)
                       for name in sorted(set(map(normalize_role,
                                                  profile.roles)))]
            )
            for field in domain.EDITABLE_FIELDS:
                setattr(db_profile, field, getattr(profile, field))
            db_profile.update_completion()
            session.add(db_profile)
            session.commit()
            created = db_profile.to_domain()
    except IntegrityError:
        # Someone else created it first.
        logger.info('Lost race to create profile %s', profile.profile_id)
        return get_profile(profile.profile_id), False
    logger.info('Created profile for user %s', profile.profile_id)
    return created, True


def get_profile(profile_id: str) -> domain.Profile:
    """Get a profile by user ID."""
    with util.transaction() as session:
        return _load(session, profile_id).to_domain()


def get_profile_by_username(username: str) -> domain.Profile:
    """Get a profile by username."""
    with util.transaction() as session:
        db_profile: Optional[DBProfile] = session.query(DBProfile) \
            .filter(DBProfile.username == username) \
            .first()
        if db_profile is None:
            raise NoSuchProfile(f'No such profile: {username}')
        return db_profile.to_domain()


def update_profile(profile_id: str,
                   changes: Mapping[str, Optional[str]]) -> domain.Profile:
    """
    Change some of the editable fields of an active profile.

    Fields not in ``changes`` are left alone. Completion is recalculated.

    Raises
    ------
    :class:`NoSuchProfile`
    :class:`ProfileInactive`
    ValueError
        Raised if ``changes`` names a field that is not editable.

    """
    unknown = set(changes) - set(domain.EDITABLE_FIELDS)
    if unknown:
        raise ValueError(f'Not editable: {", ".join(sorted(unknown))}')
    with util.transaction() as session:
        db_profile = _load(session, profile_id)
        if not db_profile.active:
            raise ProfileInactive('Cannot update an inactive profile')
        for field, value in changes.items():
            setattr(db_profile, field, value)
        db_profile.update_completion()
        session.commit()
        return db_profile.to_domain()


def deactivate_profile(profile_id: str) -> domain.Profile:
    """Mark a profile inactive. Idempotent."""
    with util.transaction() as session:
        db_profile = _load(session, profile_id)
        db_profile.active = False
        session.commit()
        logger.info('Deactivated profile %s', profile_id)
        return db_profile.to_domain()


def reactivate_profile(profile_id: str) -> domain.Profile:
    """Mark a profile active again. Idempotent."""
    with util.transaction() as session:
        db_profile = _load(session, profile_id)
        db_profile.active = True
        session.commit()
        logger.info('Reactivated profile %s', profile_id)
        return db_profile.to_domain()


def delete_profile(profile_id: str) -> None:
    """Permanently remove a profile."""
    with util.transaction() as session:
        session.delete(_load(session, profile_id))
    logger.info('Deleted profile %s', profile_id)


def add_role(profile_id: str, role_name: str) -> domain.Profile:
    """Record that the user holds a role. Idempotent."""
    name = normalize_role(role_name)
    with util.transaction() as session:
        db_profile = _load(session, profile_id)
        if name not in {role.name for role in db_profile.roles}:
            db_profile.roles.append(DBProfileRole(name=name))
            session.commit()
        return db_profile.to_domain()


def remove_role(profile_id: str, role_name: str) -> domain.Profile:
    """Record that the user no longer holds a role. Idempotent."""
    name = normalize_role(role_name)
    with util.transaction() as session:
        db_profile = _load(session, profile_id)
        db_profile.roles = [role for role in db_profile.roles
                            if role.name != name]
        session.commit()
        return db_profile.to_domain()


def get_statistics() -> domain.Statistics:
    """Calculate aggregate figures across all profiles."""
    with util.transaction() as session:
        count = session.query(func.count(DBProfile.profile_id))
        total = count.scalar()
        active = count.filter(DBProfile.active.is_(True)).scalar()
        completed = count.filter(DBProfile.completed.is_(True)).scalar()
        average = session.query(func.avg(DBProfile.completion)).scalar()
    return domain.Statistics(total=total, active=active, completed=completed,
                             average_completion=round(average or 0))


def list_incomplete() -> List[domain.Profile]:
    """Get the active profiles that are not yet complete."""
    with util.transaction() as session:
        return [db_profile.to_domain() for db_profile
                in session.query(DBProfile)
                .filter(DBProfile.active.is_(True))
                .filter(DBProfile.completed.is_(False))
                .order_by(DBProfile.username)]


def list_active() -> List[domain.Profile]:
    """Get every active profile."""
    with util.transaction() as session:
        return [db_profile.to_domain() for db_profile
                in session.query(DBProfile)
                .filter(DBProfile.active.is_(True))
                .order_by(DBProfile.username)]


def list_by_organization(organization: str) -> List[domain.Profile]:
    """Get the profiles that name exactly this organization."""
    with util.transaction() as session:
        return [db_profile.to_domain() for db_profile
                in session.query(DBProfile)
                .filter(DBProfile.organization == organization)
                .order_by(DBProfile.username)]


def _like(term: str) -> str:
    escaped = term.replace('\\', '\\\\').replace('%', '\\%') \
        .replace('_', '\\_')
    return f'%{escaped}%'


def search_profiles(term: Optional[str]) -> List[domain.Profile]:
    """
    Find profiles by part of the username, e-mail, or name.

    Matching is case-insensitive. A blank term matches nothing.
    """
    if not term or not term.strip():
        return []
    pattern = _like(term.strip())
    with util.transaction() as session:
        return [db_profile.to_domain() for db_profile
                in session.query(DBProfile)
                .filter(or_(DBProfile.username.ilike(pattern, escape='\\'),
                            DBProfile.email.ilike(pattern, escape='\\'),
                            DBProfile.first_name.ilike(pattern, escape='\\'),
                            DBProfile.last_name.ilike(pattern, escape='\\')))
                .order_by(DBProfile.username)]


def record_login(profile_id: str) -> domain.Profile:
    """Set the time of the user's most recent login to now."""
    with util.transaction() as session:
        db_profile = _load(session, profile_id)
        db_profile.last_login = datetime.now(tz=UTC)
        session.commit()
        return db_profile.to_domain()
