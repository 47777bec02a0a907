"""
Identity events, for downstream consistency.

Services call the module-level functions here (e.g. :func:`user_registered`)
from inside an application context; the process-wide :class:`.EventEmitter`
is created by :func:`init_app`.
"""

from typing import Any, Dict, Mapping
import logging

import redis
from flask import Flask, current_app

from .. import domain
from . import payloads
from .consumer import EventConsumer
from .emitter import EventEmitter

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'collab_auth.events'

TOPIC_DEFAULTS = {
    'EVENT_TOPIC_USER_REGISTERED': 'user.registered',
    'EVENT_TOPIC_USER_DELETED': 'user.deleted',
    'EVENT_TOPIC_USER_ROLE_CHANGED': 'user.role.changed',
    'EVENT_TOPIC_VERIFICATION_REQUESTED': 'user.verification.requested',
}

REGISTERED = 'EVENT_TOPIC_USER_REGISTERED'
DELETED = 'EVENT_TOPIC_USER_DELETED'
ROLE_CHANGED = 'EVENT_TOPIC_USER_ROLE_CHANGED'
VERIFICATION_REQUESTED = 'EVENT_TOPIC_VERIFICATION_REQUESTED'


def get_topics(config: Mapping) -> Dict[str, str]:
    """Get the stream name for each logical topic."""
    return {key: config.get(key, default)
            for key, default in TOPIC_DEFAULTS.items()}


def get_connection(config: Mapping) -> Any:
    """Get a redis connection, or a fake one if ``REDIS_FAKE`` is set."""
    if config.get('REDIS_FAKE'):
        import fakeredis
        logger.debug('Using fake redis')
        return fakeredis.FakeStrictRedis(server=fakeredis.FakeServer())
    host = config.get('REDIS_HOST', 'localhost')
    port = int(config.get('REDIS_PORT', '6379'))
    db = int(config.get('REDIS_DATABASE', '0'))
    timeout = float(config.get('REDIS_TIMEOUT', 5))
    logger.debug('New Redis connection at %s, port %s', host, port)
    return redis.StrictRedis(host=host, port=port, db=db,
                             socket_timeout=timeout,
                             socket_connect_timeout=timeout)


def init_app(app: Flask, connection: Any = None) -> EventEmitter:
    """Create the process-wide :class:`.EventEmitter` for ``app``."""
    for key, default in TOPIC_DEFAULTS.items():
        app.config.setdefault(key, default)
    if connection is None:
        connection = get_connection(app.config)
    maxlen = app.config.get('EVENT_STREAM_MAXLEN')
    emitter = EventEmitter(connection, get_topics(app.config),
                           maxlen=int(maxlen) if maxlen else None)
    app.extensions[EXTENSION_KEY] = emitter
    return emitter


def current_emitter() -> EventEmitter:
    """Get the :class:`.EventEmitter` of the current application."""
    if EXTENSION_KEY not in current_app.extensions:
        return init_app(current_app)
    emitter: EventEmitter = current_app.extensions[EXTENSION_KEY]
    return emitter


def user_registered(user: domain.User) -> None:
    """Publish ``user.registered``."""
    current_emitter().emit(REGISTERED, payloads.user_registered(user))


def user_deleted(user: domain.User, deleted_by: str,
                 hard: bool = False) -> None:
    """Publish ``user.deleted``."""
    current_emitter().emit(DELETED,
                           payloads.user_deleted(user, deleted_by, hard))


def user_role_changed(user: domain.User, role_name: str, action: str,
                      changed_by: str) -> None:
    """Publish ``user.role.changed``."""
    event = payloads.user_role_changed(user, role_name, action, changed_by)
    current_emitter().emit(ROLE_CHANGED, event)


def verification_requested(user: domain.User) -> None:
    """Publish ``user.verification.requested``."""
    current_emitter().emit(VERIFICATION_REQUESTED,
                           payloads.verification_requested(user))
