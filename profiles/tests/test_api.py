"""Tests for :mod:`profiles.routes`, through the app."""

from unittest import TestCase
from datetime import timedelta
from http import HTTPStatus
import json

from collab_auth.auth.tokens import TokenCodec
from collab_auth.tests.util import SECRET

from .. import domain
from ..factory import create_web_app
from ..services import datastore
from .util import temporary_app

CODEC = TokenCodec.from_secret(SECRET)


def bearer(username, roles, user_id):
    token = CODEC.issue(username, roles, timedelta(minutes=5), user_id)
    return {'Authorization': f'Bearer {token}'}


ALICE = bearer('alice', ['GUEST'], 'u-1')
BOB = bearer('bob', ['GUEST'], 'u-2')
ROOT = bearer('root', ['ADMIN'], 'u-0')


class ProfilesTestCase(TestCase):

    def setUp(self):
        self._context = temporary_app(create_web_app)
        self.app = self._context.__enter__()
        self.client = self.app.test_client()
        datastore.create_profile(domain.Profile(
            'u-1', 'alice', 'alice@x.com', first_name='Alice',
            last_name='Tester', country_code='+91', contact_no='5550100',
            roles=['GUEST']
        ))

    def tearDown(self):
        self._context.__exit__(None, None, None)

    def patch(self, path, body, headers):
        return self.client.patch(path, data=json.dumps(body),
                                 content_type='application/json',
                                 headers=headers)


class TestGetProfile(ProfilesTestCase):
    """Profiles are visible to their owners and administrators."""

    def test_own_profile(self):
        response = self.client.get('/profiles/u-1', headers=ALICE)
        self.assertEqual(response.status_code, HTTPStatus.OK)
        data = response.get_json()
        self.assertEqual(data['username'], 'alice')
        self.assertEqual(data['profileCompletionPercentage'], 50)
        self.assertFalse(data['profileCompleted'])

    def test_someone_else(self):
        response = self.client.get('/profiles/u-1', headers=BOB)
        self.assertEqual(response.status_code, HTTPStatus.FORBIDDEN)

    def test_admin(self):
        response = self.client.get('/profiles/u-1', headers=ROOT)
        self.assertEqual(response.status_code, HTTPStatus.OK)

    def test_anonymous(self):
        response = self.client.get('/profiles/u-1')
        self.assertEqual(response.status_code, HTTPStatus.UNAUTHORIZED)
        self.assertEqual(response.get_json()['service'], 'profiles')

    def test_not_found(self):
        response = self.client.get('/profiles/u-9', headers=ROOT)
        self.assertEqual(response.status_code, HTTPStatus.NOT_FOUND)


class TestUpdateProfile(ProfilesTestCase):
    """PATCH changes only the fields in the body."""

    def test_update(self):
        response = self.patch('/profiles/u-1', {
            'organization': 'Collabrix',
            'githubUrl': 'https://github.com/alice',
            'bio': 'Hello',
            'avatarUrl': 'https://img.example.com/alice.png',
        }, ALICE)
        self.assertEqual(response.status_code, HTTPStatus.OK)
        data = response.get_json()
        self.assertEqual(data['firstName'], 'Alice')
        self.assertEqual(data['githubUrl'], 'https://github.com/alice')
        self.assertEqual(data['profileCompletionPercentage'], 83)
        self.assertTrue(data['profileCompleted'])

    def test_invalid(self):
        response = self.patch('/profiles/u-1',
                              {'githubUrl': 'https://gitlab.com/alice',
                               'contactNo': 'call me'}, ALICE)
        self.assertEqual(response.status_code, HTTPStatus.BAD_REQUEST)
        errors = response.get_json()['errors']
        self.assertIn('github_url', errors)
        self.assertIn('contact_no', errors)

    def test_someone_else(self):
        response = self.patch('/profiles/u-1', {'bio': 'Hacked'}, BOB)
        self.assertEqual(response.status_code, HTTPStatus.FORBIDDEN)

    def test_inactive(self):
        datastore.deactivate_profile('u-1')
        response = self.patch('/profiles/u-1', {'bio': 'Hi'}, ALICE)
        self.assertEqual(response.status_code, HTTPStatus.FORBIDDEN)


class TestAdministration(ProfilesTestCase):

    def test_statistics(self):
        response = self.client.get('/profiles/statistics', headers=ROOT)
        self.assertEqual(response.status_code, HTTPStatus.OK)
        data = response.get_json()
        self.assertEqual(data['totalUsers'], 1)
        self.assertEqual(data['activeUsers'], 1)
        self.assertEqual(data['averageProfileCompletion'], 50)

        response = self.client.get('/profiles/statistics', headers=ALICE)
        self.assertEqual(response.status_code, HTTPStatus.FORBIDDEN)

    def test_incomplete(self):
        response = self.client.get('/profiles/incomplete', headers=ROOT)
        self.assertEqual(
            [p['username'] for p in response.get_json()['profiles']],
            ['alice']
        )


class TestLookup(ProfilesTestCase):
    """Signed-in users can look profiles up."""

    def setUp(self):
        super().setUp()
        datastore.create_profile(domain.Profile(
            'u-2', 'bob', 'bob@y.org', first_name='Robert',
            organization='Collabrix', roles=['GUEST']
        ))

    def test_me(self):
        response = self.client.get('/profiles/me', headers=ALICE)
        self.assertEqual(response.status_code, HTTPStatus.OK)
        self.assertEqual(response.get_json()['userId'], 'u-1')

        response = self.client.get('/profiles/me')
        self.assertEqual(response.status_code, HTTPStatus.UNAUTHORIZED)

    def test_me_without_user_id(self):
        """Tokens without a user ID are resolved by username."""
        headers = bearer('bob', ['GUEST'], None)
        response = self.client.get('/profiles/me', headers=headers)
        self.assertEqual(response.get_json()['userId'], 'u-2')

    def test_by_username(self):
        response = self.client.get('/profiles/username/bob', headers=ALICE)
        self.assertEqual(response.status_code, HTTPStatus.OK)
        self.assertEqual(response.get_json()['firstName'], 'Robert')

        response = self.client.get('/profiles/username/carol', headers=ALICE)
        self.assertEqual(response.status_code, HTTPStatus.NOT_FOUND)

    def test_search(self):
        response = self.client.get('/profiles/search?q=ROB', headers=ALICE)
        self.assertEqual(response.status_code, HTTPStatus.OK)
        self.assertEqual(
            [p['username'] for p in response.get_json()['profiles']], ['bob']
        )

        response = self.client.get('/profiles/search?q=x.com', headers=BOB)
        self.assertEqual(
            [p['username'] for p in response.get_json()['profiles']],
            ['alice']
        )

        response = self.client.get('/profiles/search', headers=BOB)
        self.assertEqual(response.get_json()['profiles'], [])

    def test_organization(self):
        response = self.client.get('/profiles/organization/Collabrix',
                                   headers=ROOT)
        self.assertEqual(
            [p['username'] for p in response.get_json()['profiles']], ['bob']
        )
        response = self.client.get('/profiles/organization/Collabrix',
                                   headers=ALICE)
        self.assertEqual(response.status_code, HTTPStatus.FORBIDDEN)

    def test_list_active(self):
        datastore.deactivate_profile('u-2')
        response = self.client.get('/profiles', headers=ROOT)
        self.assertEqual(
            [p['username'] for p in response.get_json()['profiles']],
            ['alice']
        )
        response = self.client.get('/profiles', headers=ALICE)
        self.assertEqual(response.status_code, HTTPStatus.FORBIDDEN)


class TestActivation(ProfilesTestCase):
    """Administrators can deactivate and reactivate profiles."""

    def test_deactivate_and_reactivate(self):
        response = self.client.delete('/profiles/u-1', headers=ROOT)
        self.assertEqual(response.status_code, HTTPStatus.OK)
        self.assertEqual(response.get_json()['userId'], 'u-1')
        self.assertFalse(datastore.get_profile('u-1').active)

        response = self.patch('/profiles/u-1', {'bio': 'Hi'}, ALICE)
        self.assertEqual(response.status_code, HTTPStatus.FORBIDDEN)

        response = self.client.post('/profiles/u-1/reactivate', headers=ROOT)
        self.assertEqual(response.status_code, HTTPStatus.OK)
        self.assertTrue(response.get_json()['active'])

        response = self.patch('/profiles/u-1', {'bio': 'Hi'}, ALICE)
        self.assertEqual(response.status_code, HTTPStatus.OK)

    def test_owner_cannot_deactivate(self):
        response = self.client.delete('/profiles/u-1', headers=ALICE)
        self.assertEqual(response.status_code, HTTPStatus.FORBIDDEN)
        response = self.client.post('/profiles/u-1/reactivate',
                                    headers=ALICE)
        self.assertEqual(response.status_code, HTTPStatus.FORBIDDEN)

    def test_not_found(self):
        response = self.client.delete('/profiles/u-9', headers=ROOT)
        self.assertEqual(response.status_code, HTTPStatus.NOT_FOUND)


class TestLastLogin(ProfilesTestCase):

    def test_record_login(self):
        self.assertIsNone(
            self.client.get('/profiles/u-1', headers=ALICE)
            .get_json()['lastLoginAt']
        )
        response = self.client.post('/profiles/u-1/last-login',
                                    headers=ALICE)
        self.assertEqual(response.status_code, HTTPStatus.OK)
        self.assertTrue(response.get_json()['lastLoginAt'])
        self.assertIsNotNone(datastore.get_profile('u-1').last_login)

    def test_someone_else(self):
        response = self.client.post('/profiles/u-1/last-login', headers=BOB)
        self.assertEqual(response.status_code, HTTPStatus.FORBIDDEN)
