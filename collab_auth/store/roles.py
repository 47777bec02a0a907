"""
Role registry.

Role names are normalized (see :func:`.domain.normalize_role`) before they
are stored or looked up. System-defined roles can never be deleted.
"""

from typing import Iterable, List
import logging

from sqlalchemy.exc import IntegrityError

from .. import domain
from ..exceptions import NoSuchRole, RoleExists, SystemRoleViolation, \
    ValidationFailed
from . import util
from .models import DBRole, DBUser

logger = logging.getLogger(__name__)


def _load(session, role_id: int) -> DBRole:   # type: ignore
    db_role: DBRole = session.query(DBRole) \
        .filter(DBRole.role_id == role_id) \
        .first()
    if db_role is None:
        raise NoSuchRole(f'No such role: {role_id}')
    return db_role


def _clean(name: str) -> str:
    normalized = domain.normalize_role(name or '')
    if not normalized:
        raise ValidationFailed('Role name is required',
                               {'name': ['Role name is required']})
    return normalized


def role_exists(name: str) -> bool:
    """Determine whether a role with this name exists, deleted or not."""
    with util.transaction() as session:
        found = session.query(DBRole.role_id) \
            .filter(DBRole.name == _clean(name)) \
            .first()
    return found is not None


def create_role(name: str, system_defined: bool = False) -> domain.Role:
    """
    Create a new role.

    Raises
    ------
    :class:`.RoleExists`
        Raised if a role with the (normalized) name already exists.

    """
    name = _clean(name)
    if role_exists(name):
        raise RoleExists(f'Role {name} already exists')
    try:
        with util.transaction() as session:
            db_role = DBRole(name=name, system_defined=system_defined,
                             deleted=False)
            session.add(db_role)
            session.commit()
            role = db_role.to_domain()
    except IntegrityError as e:
        raise RoleExists(f'Role {name} already exists') from e
    logger.info('Created role %s (system: %s)', name, system_defined)
    return role


def ensure_role(name: str, system_defined: bool = False) -> domain.Role:
    """
    Get a role by name, creating it if it does not exist yet.

    Safe to call concurrently: if another worker creates the same role in the
    meantime, the uniqueness constraint rejects our insert and the existing
    role is returned.
    """
    name = _clean(name)
    try:
        return get_role_by_name(name)
    except NoSuchRole:
        pass
    try:
        return create_role(name, system_defined=system_defined)
    except RoleExists:
        logger.debug('Role %s was created concurrently', name)
        return get_role_by_name(name)


def seed_roles(names: Iterable[str]) -> List[domain.Role]:
    """Make sure that the system-defined roles exist."""
    return [ensure_role(name, system_defined=True) for name in names]


def list_roles() -> List[domain.Role]:
    """Get all roles that have not been deleted, ordered by name."""
    with util.transaction() as session:
        return [db_role.to_domain() for db_role
                in session.query(DBRole)
                .filter(DBRole.deleted.is_(False))
                .order_by(DBRole.name)]


def get_role(role_id: int) -> domain.Role:
    """Get a role by ID, deleted or not."""
    with util.transaction() as session:
        return _load(session, role_id).to_domain()


def get_role_by_name(name: str) -> domain.Role:
    """Get a role that has not been deleted by its name."""
    name = _clean(name)
    with util.transaction() as session:
        db_role = session.query(DBRole) \
            .filter(DBRole.name == name) \
            .filter(DBRole.deleted.is_(False)) \
            .first()
        if db_role is None:
            raise NoSuchRole(f'No such role: {name}')
        return db_role.to_domain()


def holders(role_id: int) -> List[str]:
    """Get the IDs of the users, not deleted, who hold a role."""
    with util.transaction() as session:
        return [user_id for user_id, in session.query(DBUser.user_id)
                .filter(DBUser.roles.any(DBRole.role_id == role_id))
                .filter(DBUser.deleted.is_(False))
                .order_by(DBUser.user_id)]


def soft_delete_role(role_id: int) -> domain.Role:
    """
    Flag a role as deleted.

    Raises
    ------
    :class:`.NoSuchRole`
    :class:`.SystemRoleViolation`
        Raised if the role is system-defined.

    """
    with util.transaction() as session:
        db_role = _load(session, role_id)
        if db_role.system_defined:
            raise SystemRoleViolation(
                f'Cannot delete system role {db_role.name}'
            )
        db_role.deleted = True
        role = db_role.to_domain()
    logger.info('Soft-deleted role %s', role.name)
    return role


def hard_delete_role(role_id: int) -> None:
    """
    Permanently remove a role and its assignments.

    Raises
    ------
    :class:`.NoSuchRole`
    :class:`.SystemRoleViolation`
        Raised if the role is system-defined.

    """
    with util.transaction() as session:
        db_role = _load(session, role_id)
        if db_role.system_defined:
            raise SystemRoleViolation(
                f'Cannot delete system role {db_role.name}'
            )
        name = db_role.name
        session.delete(db_role)
    logger.info('Hard-deleted role %s', name)
