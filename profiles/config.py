"""Flask configuration."""
import os
import secrets
import socket
from base64 import b64encode

SERVICE_NAME = os.environ.get('SERVICE_NAME', 'profiles')
"""Name reported in error responses."""

LOGLEVEL = int(os.environ.get('LOGLEVEL', '20'))

#################### Tokens ####################
JWT_SECRET = os.environ.get(
    'JWT_SECRET',
    b64encode(secrets.token_bytes(32)).decode('ascii')
)
"""Base64-encoded HMAC secret used to verify access tokens.

Must be the same secret the accounts service signs with."""

JWT_ROLES_CLAIM = os.environ.get('JWT_ROLES_CLAIM', 'roles')

DEFAULT_ROLE = os.environ.get('DEFAULT_ROLE', 'GUEST')
ADMIN_ROLE = os.environ.get('ADMIN_ROLE', 'ADMIN')

#################### Store ####################
SQLALCHEMY_DATABASE_URI = os.environ.get('PROFILES_DATABASE_URI',
                                         'sqlite://')
"""Profile store. Separate from the accounts service's store."""

SQLALCHEMY_TRACK_MODIFICATIONS = False

STORE_TIMEOUT = float(os.environ.get('STORE_TIMEOUT', '5'))

CREATE_DB = bool(int(os.environ.get('CREATE_DB', '0')))
"""Create tables when the app starts."""

#################### Events ####################
REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_TIMEOUT = os.environ.get('REDIS_TIMEOUT', '5')

REDIS_FAKE = bool(int(os.environ.get('REDIS_FAKE', '0')))
"""Use the FakeRedis library instead of a redis service."""

EVENT_TOPIC_USER_REGISTERED = os.environ.get('EVENT_TOPIC_USER_REGISTERED',
                                             'user.registered')
EVENT_TOPIC_USER_DELETED = os.environ.get('EVENT_TOPIC_USER_DELETED',
                                          'user.deleted')
EVENT_TOPIC_USER_ROLE_CHANGED = os.environ.get(
    'EVENT_TOPIC_USER_ROLE_CHANGED',
    'user.role.changed'
)

CONSUMER_GROUP = os.environ.get('CONSUMER_GROUP', 'profiles')
"""Redis consumer group shared by all profile workers."""

CONSUMER_NAME = os.environ.get('CONSUMER_NAME', socket.gethostname())
"""Name of this worker within the group. Must be stable across restarts, so
that entries left pending by a crash are delivered to it again."""

CONSUMER_BATCH_SIZE = int(os.environ.get('CONSUMER_BATCH_SIZE', '10'))
CONSUMER_BLOCK_MS = int(os.environ.get('CONSUMER_BLOCK_MS', '5000'))

CONSUMER_MAX_ATTEMPTS = int(os.environ.get('CONSUMER_MAX_ATTEMPTS', '5'))
"""Failures of one entry before it is moved to the ``.dead`` stream."""

CONSUMER_RETRY_INTERVAL = float(
    os.environ.get('CONSUMER_RETRY_INTERVAL', '30')
)
"""Seconds to wait before retrying entries whose handler failed."""
