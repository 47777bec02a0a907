"""Flask configuration."""
import os
import secrets
from base64 import b64encode

SERVICE_NAME = os.environ.get('SERVICE_NAME', 'accounts')
"""Name reported in error responses."""

LOGLEVEL = int(os.environ.get('LOGLEVEL', '20'))
"""Level of the root logger, as a stdlib logging level number."""

#################### Tokens ####################
JWT_SECRET = os.environ.get(
    'JWT_SECRET',
    b64encode(secrets.token_bytes(32)).decode('ascii')
)
"""Base64-encoded HMAC secret used to sign access tokens.

The default is random per process, so tokens issued by one process are not
accepted by another. Set this explicitly in any real deployment."""

JWT_ACCESS_EXPIRATION_MS = int(
    os.environ.get('JWT_ACCESS_EXPIRATION_MS', '3600000')
)
"""Lifetime of an access token, in milliseconds."""

JWT_REFRESH_EXPIRATION_MS = int(
    os.environ.get('JWT_REFRESH_EXPIRATION_MS', '86400000')
)
"""Lifetime of a refresh token, in milliseconds."""

JWT_ROLES_CLAIM = os.environ.get('JWT_ROLES_CLAIM', 'roles')
"""Name of the flat roles claim in access tokens."""

#################### Roles ####################
DEFAULT_ROLE = os.environ.get('DEFAULT_ROLE', 'GUEST')
"""Role assigned to every newly registered user."""

ADMIN_ROLE = os.environ.get('ADMIN_ROLE', 'ADMIN')
"""Role required for the administrative routes."""

#################### Store ####################
SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI',
                                         'sqlite://')
"""Credential, role and refresh token store."""

SQLALCHEMY_TRACK_MODIFICATIONS = False

STORE_TIMEOUT = float(os.environ.get('STORE_TIMEOUT', '5'))
"""Seconds to wait for a store connection before giving up."""

CREATE_DB = bool(int(os.environ.get('CREATE_DB', '0')))
"""Create tables and seed the system roles when the app starts."""

#################### Events ####################
REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_TIMEOUT = os.environ.get('REDIS_TIMEOUT', '5')

REDIS_FAKE = bool(int(os.environ.get('REDIS_FAKE', '0')))
"""Use the FakeRedis library instead of a redis service.

Useful for testing and development."""

EVENT_TOPIC_USER_REGISTERED = os.environ.get('EVENT_TOPIC_USER_REGISTERED',
                                             'user.registered')
EVENT_TOPIC_USER_DELETED = os.environ.get('EVENT_TOPIC_USER_DELETED',
                                          'user.deleted')
EVENT_TOPIC_USER_ROLE_CHANGED = os.environ.get(
    'EVENT_TOPIC_USER_ROLE_CHANGED',
    'user.role.changed'
)
EVENT_TOPIC_VERIFICATION_REQUESTED = os.environ.get(
    'EVENT_TOPIC_VERIFICATION_REQUESTED',
    'user.verification.requested'
)
