"""Controllers for the role registry."""

from typing import Any, Mapping, Optional
from http import HTTPStatus
import logging

from retry import retry

from collab_auth import domain, events
from collab_auth.events import payloads
from collab_auth.exceptions import StoreUnavailable
from collab_auth.store import accounts, roles

from . import ResponseData
from .forms import RoleForm

logger = logging.getLogger(__name__)


def _role(role: domain.Role) -> dict:
    return {'roleId': role.role_id, 'name': role.name,
            'systemDefined': role.system_defined}


@retry(StoreUnavailable, tries=3, delay=0.5, backoff=2, logger=logger)
def list_roles() -> ResponseData:
    """List the roles that have not been deleted."""
    return {'roles': [_role(role) for role in roles.list_roles()]}, \
        HTTPStatus.OK, {}


def create_role(payload: Optional[Mapping[str, Any]],
                actor: domain.Principal) -> ResponseData:
    """Create a user-defined role."""
    form = RoleForm.from_json(payload).validated()
    role = roles.create_role(form.name.data)
    logger.info('%s created role %s', actor.username, role.name)
    return _role(role), HTTPStatus.CREATED, {}


def delete_role(role_id: int, actor: domain.Principal,
                hard: bool = False) -> ResponseData:
    """
    Delete a user-defined role. System roles are never deleted.

    The role is no longer held by anyone afterwards, so a removal is
    announced for each user who held it.
    """
    name = roles.get_role(role_id).name
    user_ids = roles.holders(role_id)
    if hard:
        roles.hard_delete_role(role_id)
    else:
        roles.soft_delete_role(role_id)
    logger.info('%s deleted role %s (hard=%s)', actor.username, name, hard)
    for user_id in user_ids:
        events.user_role_changed(accounts.get_user(user_id), name,
                                 payloads.REMOVED, actor.username)
    return {'roleId': role_id, 'deleted': True, 'hardDelete': hard}, \
        HTTPStatus.OK, {}
