"""Provides the JSON API for the profiles service."""

from typing import Any, Dict, Optional

from flask import Blueprint, Response, jsonify, request

from collab_auth.auth.decorators import scoped, is_admin, self_or_admin

from . import controllers

blueprint = Blueprint('profiles', __name__)


def _payload() -> Optional[Dict[str, Any]]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _respond(data: dict, status_code: int, headers: dict) -> Response:
    response: Response = jsonify(data)
    response.status_code = int(status_code)
    response.headers.extend(headers)
    return response


@blueprint.route('/profiles/statistics', methods=['GET'])
@scoped(authorizer=is_admin)
def statistics() -> Response:
    return _respond(*controllers.get_statistics())


@blueprint.route('/profiles/incomplete', methods=['GET'])
@scoped(authorizer=is_admin)
def incomplete() -> Response:
    return _respond(*controllers.list_incomplete())


@blueprint.route('/profiles', methods=['GET'])
@scoped(authorizer=is_admin)
def list_active() -> Response:
    return _respond(*controllers.list_active())


@blueprint.route('/profiles/search', methods=['GET'])
@scoped()
def search() -> Response:
    return _respond(*controllers.search(request.args))


@blueprint.route('/profiles/organization/<string:organization>',
                 methods=['GET'])
@scoped(authorizer=is_admin)
def by_organization(organization: str) -> Response:
    return _respond(*controllers.list_by_organization(organization))


@blueprint.route('/profiles/me', methods=['GET'])
@scoped()
def own_profile() -> Response:
    return _respond(*controllers.get_own_profile(request.auth))


@blueprint.route('/profiles/username/<string:username>', methods=['GET'])
@scoped()
def by_username(username: str) -> Response:
    return _respond(*controllers.get_profile_by_username(username))


@blueprint.route('/profiles/<string:user_id>', methods=['GET'])
@scoped(authorizer=self_or_admin)
def get_profile(user_id: str) -> Response:
    return _respond(*controllers.get_profile(user_id))


@blueprint.route('/profiles/<string:user_id>', methods=['PATCH'])
@scoped(authorizer=self_or_admin)
def update_profile(user_id: str) -> Response:
    """Partial update; only the fields in the body are changed."""
    return _respond(*controllers.update_profile(user_id, _payload()))


@blueprint.route('/profiles/<string:user_id>', methods=['DELETE'])
@scoped(authorizer=is_admin)
def deactivate_profile(user_id: str) -> Response:
    """Soft delete: the profile is kept, but marked inactive."""
    return _respond(*controllers.deactivate_profile(user_id, request.auth))


@blueprint.route('/profiles/<string:user_id>/reactivate', methods=['POST'])
@scoped(authorizer=is_admin)
def reactivate_profile(user_id: str) -> Response:
    return _respond(*controllers.reactivate_profile(user_id, request.auth))


@blueprint.route('/profiles/<string:user_id>/last-login', methods=['POST'])
@scoped(authorizer=self_or_admin)
def record_login(user_id: str) -> Response:
    return _respond(*controllers.record_login(user_id))
