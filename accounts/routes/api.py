"""Provides the JSON API for the accounts service."""

from typing import Any, Dict, Optional

from flask import Blueprint, Response, current_app, jsonify, request

from collab_auth import store
from collab_auth.auth.decorators import scoped, is_admin, self_or_admin

from ..controllers import authentication, roles, users

blueprint = Blueprint('api', __name__)


def _payload() -> Optional[Dict[str, Any]]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _hard() -> bool:
    return request.args.get('hard', '').lower() in ('1', 'true', 'yes')


def _respond(data: dict, status_code: int, headers: dict) -> Response:
    response: Response = jsonify(data)
    response.status_code = int(status_code)
    response.headers.extend(headers)
    return response


@blueprint.route('/auth/register', methods=['POST'])
def register() -> Response:
    """Create a new account."""
    return _respond(*authentication.register(_payload()))


@blueprint.route('/auth/login', methods=['POST'])
def login() -> Response:
    """Log in with a username or e-mail address, and a password."""
    return _respond(*authentication.login(_payload()))


@blueprint.route('/auth/refresh', methods=['POST'])
def refresh() -> Response:
    """Rotate the refresh token, and get a new access token."""
    return _respond(*authentication.refresh(_payload()))


@blueprint.route('/auth/logout', methods=['POST'])
def logout() -> Response:
    """Revoke the refresh token."""
    return _respond(*authentication.logout(_payload()))


@blueprint.route('/auth/me', methods=['GET'])
@scoped()
def me() -> Response:
    """Describe the authenticated principal."""
    return _respond(*authentication.me(request.auth))


@blueprint.route('/roles', methods=['GET'])
@scoped(authorizer=is_admin)
def list_roles() -> Response:
    return _respond(*roles.list_roles())


@blueprint.route('/roles', methods=['POST'])
@scoped(authorizer=is_admin)
def create_role() -> Response:
    return _respond(*roles.create_role(_payload(), request.auth))


@blueprint.route('/roles/<int:role_id>', methods=['DELETE'])
@scoped(authorizer=is_admin)
def delete_role(role_id: int) -> Response:
    return _respond(*roles.delete_role(role_id, request.auth, hard=_hard()))


@blueprint.route('/users/<string:user_id>', methods=['GET'])
@scoped(authorizer=self_or_admin)
def get_user(user_id: str) -> Response:
    return _respond(*users.get_user(user_id))


@blueprint.route('/users/<string:user_id>', methods=['DELETE'])
@scoped(authorizer=is_admin)
def delete_user(user_id: str) -> Response:
    return _respond(*users.delete_user(user_id, request.auth, hard=_hard()))


@blueprint.route('/users/<string:user_id>/roles', methods=['GET'])
@scoped(authorizer=self_or_admin)
def get_user_roles(user_id: str) -> Response:
    return _respond(*users.get_roles(user_id))


@blueprint.route('/users/<string:user_id>/roles', methods=['POST'])
@scoped(authorizer=is_admin)
def assign_role(user_id: str) -> Response:
    return _respond(*users.assign_role(user_id, _payload(), request.auth))


@blueprint.route('/users/<string:user_id>/roles/<string:role_name>',
                 methods=['DELETE'])
@scoped(authorizer=is_admin)
def remove_role(user_id: str, role_name: str) -> Response:
    return _respond(*users.remove_role(user_id, role_name, request.auth))


@blueprint.route('/users/<string:user_id>/verification', methods=['GET'])
@scoped(authorizer=self_or_admin)
def get_verification(user_id: str) -> Response:
    return _respond(*users.get_verification(user_id))


@blueprint.route('/users/<string:user_id>/verification', methods=['POST'])
@scoped(authorizer=self_or_admin)
def request_verification(user_id: str) -> Response:
    """Ask for a verification message to be sent."""
    return _respond(*users.request_verification(user_id))


@blueprint.route('/users/<string:user_id>/verification', methods=['PUT'])
@scoped(authorizer=is_admin)
def confirm_verification(user_id: str) -> Response:
    """Called back once the user has followed the verification link."""
    return _respond(*users.confirm_verification(user_id))


@blueprint.route('/status', methods=['GET'])
def status() -> Response:
    """Health check."""
    available = store.is_available()
    return _respond({'service': current_app.config.get('SERVICE_NAME'),
                     'store': available}, 200 if available else 503, {})
