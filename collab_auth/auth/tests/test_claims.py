"""Tests for :mod:`collab_auth.auth.claims`."""

from unittest import TestCase

from .. import claims


class TestExtractRoles(TestCase):
    """All claim shapes reduce to one set of role names."""

    def test_flat(self):
        self.assertEqual(claims.extract_roles({'roles': ['admin', 'GUEST']}),
                         frozenset({'ADMIN', 'GUEST'}))

    def test_flat_string(self):
        """A space-delimited string is a list of roles."""
        self.assertEqual(claims.extract_roles({'roles': 'admin guest'}),
                         frozenset({'ADMIN', 'GUEST'}))

    def test_custom_claim_name(self):
        data = {'groups': ['editor'], 'roles': ['ignored']}
        self.assertEqual(claims.extract_roles(data, 'groups'),
                         frozenset({'EDITOR'}))

    def test_realm(self):
        data = {'realm_access': {'roles': ['ROLE_ADMIN']}}
        self.assertEqual(claims.extract_roles(data), frozenset({'ADMIN'}))

    def test_per_client(self):
        data = {'resource_access': {
            'web': {'roles': ['editor']},
            'api': {'roles': ['reader', 'editor']},
            'broken': 'not a mapping',
        }}
        self.assertEqual(claims.extract_roles(data),
                         frozenset({'EDITOR', 'READER'}))

    def test_all_shapes(self):
        data = {
            'roles': ['GUEST'],
            'realm_access': {'roles': ['ADMIN']},
            'resource_access': {'web': {'roles': ['EDITOR']}},
        }
        self.assertEqual(claims.extract_roles(data),
                         frozenset({'GUEST', 'ADMIN', 'EDITOR'}))

    def test_none(self):
        self.assertEqual(claims.extract_roles({'sub': 'alice'}), frozenset())
