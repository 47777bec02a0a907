"""Unit tests for :mod:`accounts.controllers`, with the stores mocked."""

from unittest import TestCase, mock
from datetime import datetime, timedelta
from http import HTTPStatus

from flask import Flask
from pytz import UTC

from collab_auth import domain
from collab_auth.exceptions import NoSuchRole, ValidationFailed

from accounts.controllers import authentication, forms, users

USER = domain.User('alice', 'alice@x.com', user_id='u-1',
                   roles=['GUEST', 'EDITOR'])
ROOT = domain.Principal('root', frozenset({'ADMIN'}), 'u-0')


class TestForms(TestCase):
    """JSON bodies are mapped onto the forms' fields."""

    def test_registration_aliases(self):
        form = forms.RegistrationForm.from_json({
            'username': 'alice', 'email': 'alice@x.com',
            'password': 'correct-horse', 'firstName': 'Alice',
            'countryCode': 91, 'contactNo': None
        })
        self.assertTrue(form.validate(), form.errors)
        registration = form.to_domain()
        self.assertEqual(registration.first_name, 'Alice')
        self.assertEqual(registration.country_code, '91')
        self.assertEqual(registration.contact_no, '')
        self.assertIsNone(registration.organization)

    def test_bad_username(self):
        form = forms.RegistrationForm.from_json({
            'username': 'a b', 'email': 'alice@x.com',
            'password': 'correct-horse', 'firstName': 'Alice'
        })
        with self.assertRaises(ValidationFailed) as caught:
            form.validated()
        self.assertIn('username', caught.exception.errors)


class TestAuthenticationController(TestCase):

    def setUp(self):
        self.app = Flask('test')
        self.app.config['DEFAULT_ROLE'] = 'GUEST'

    @mock.patch(f'{authentication.__name__}.sessions')
    def test_login(self, mock_sessions):
        expires = datetime.now(tz=UTC) + timedelta(days=1)
        mock_sessions.login.return_value = domain.TokenPair(
            'access', domain.RefreshToken('t-1', 'u-1', 'refresh', expires),
            3600, USER
        )
        with self.app.app_context():
            data, code, headers = authentication.login(
                {'username': ' alice ', 'password': 'pw'}
            )
        self.assertEqual(code, HTTPStatus.OK)
        mock_sessions.login.assert_called_once_with('alice', 'pw')
        self.assertEqual(data['refreshToken'], 'refresh')
        self.assertEqual(data['roles'], ['EDITOR', 'GUEST'])
        self.assertEqual(data['role'], 'EDITOR')

    @mock.patch(f'{authentication.__name__}.sessions')
    def test_logout_ignores_garbage(self, mock_sessions):
        data, code, _ = authentication.logout({'refreshToken': 42})
        self.assertEqual(code, HTTPStatus.OK)
        mock_sessions.logout.assert_called_once_with(None)

    def test_me_without_roles(self):
        with self.app.app_context():
            data, _, _ = authentication.me(domain.Principal('alice'))
        self.assertEqual(data['role'], 'GUEST')
        self.assertEqual(data['roles'], [])


class TestUsersController(TestCase):

    @mock.patch(f'{users.__name__}.events')
    @mock.patch(f'{users.__name__}.accounts')
    def test_delete_announces(self, mock_accounts, mock_events):
        mock_accounts.soft_delete_user.return_value = USER
        data, code, _ = users.delete_user('u-1', ROOT)
        self.assertEqual(code, HTTPStatus.OK)
        mock_events.user_deleted.assert_called_once_with(USER, 'root',
                                                         hard=False)
        mock_accounts.hard_delete_user.assert_not_called()

    @mock.patch(f'{users.__name__}.events')
    @mock.patch(f'{users.__name__}.accounts')
    def test_failed_assignment_is_not_announced(self, mock_accounts,
                                                mock_events):
        mock_accounts.assign_role.side_effect = NoSuchRole('nope')
        with self.assertRaises(NoSuchRole):
            users.assign_role('u-1', {'roleName': 'WIZARD'}, ROOT)
        mock_events.user_role_changed.assert_not_called()
