"""Tests for :mod:`collab_auth.auth.decorators`."""

from unittest import TestCase, mock

import pytest

from ... import domain
from ...exceptions import Unauthorized, AccessDenied, Forbidden
from .. import decorators

ADMIN = domain.Principal('root', frozenset({'ADMIN'}), 'u-admin')
ALICE = domain.Principal('alice', frozenset({'GUEST'}), 'u-alice')


def protected(*args, **kwargs):
    """A protected function."""
    return 'ok'


@pytest.mark.usefixtures('request_context')
@mock.patch(f'{decorators.__name__}.current_app',
            mock.MagicMock(config={'ADMIN_ROLE': 'ADMIN'}))
class TestScoped(TestCase):
    """Tests for :func:`.decorators.scoped`."""

    @mock.patch(f'{decorators.__name__}.request')
    def test_no_principal(self, mock_request):
        """No principal is present on the request."""
        mock_request.auth = None
        with self.assertRaises(Unauthorized):
            decorators.scoped()(protected)()

    @mock.patch(f'{decorators.__name__}.request')
    def test_authenticated(self, mock_request):
        """Any principal is accepted when no role is required."""
        mock_request.auth = ALICE
        self.assertEqual(decorators.scoped()(protected)(), 'ok')

    @mock.patch(f'{decorators.__name__}.request')
    def test_role_is_missing(self, mock_request):
        """Principal does not have the required role."""
        mock_request.auth = ALICE
        with self.assertRaises(AccessDenied):
            decorators.scoped('ADMIN')(protected)()

    @mock.patch(f'{decorators.__name__}.request')
    def test_role_is_present(self, mock_request):
        mock_request.auth = ADMIN
        self.assertEqual(decorators.scoped('admin')(protected)(), 'ok')

    @mock.patch(f'{decorators.__name__}.request')
    def test_authorizer_returns_false(self, mock_request):
        """Principal has the role, but the authorizer says no."""
        mock_request.auth = ADMIN
        with self.assertRaises(Forbidden):
            decorators.scoped('ADMIN', lambda p, **kw: False)(protected)()

    @mock.patch(f'{decorators.__name__}.request')
    def test_self_or_admin(self, mock_request):
        """Users may access their own resources; admins any resource."""
        route = decorators.scoped(authorizer=decorators.self_or_admin)(
            protected
        )
        mock_request.auth = ALICE
        self.assertEqual(route(user_id='u-alice'), 'ok')
        with self.assertRaises(AccessDenied):
            route(user_id='u-bob')

        mock_request.auth = ADMIN
        self.assertEqual(route(user_id='u-bob'), 'ok')

    @mock.patch(f'{decorators.__name__}.request')
    def test_is_admin(self, mock_request):
        route = decorators.scoped(authorizer=decorators.is_admin)(protected)
        mock_request.auth = ALICE
        with self.assertRaises(AccessDenied):
            route()
        mock_request.auth = ADMIN
        self.assertEqual(route(), 'ok')
