"""
Publishes identity events to redis streams.

Each topic is a stream. Entries carry the user ID as ``key`` and the JSON
event as ``payload``. Emitting is fire-and-forget: a failure to publish is
logged, and never fails the operation that produced the event.
"""

from typing import Any, Mapping, Optional
import json
import logging

import redis

from .payloads import Event

logger = logging.getLogger(__name__)


class EventEmitter(object):
    """
    Publishes events on a redis connection.

    The StrictRedis instance is thread safe and connections are attached at
    the time a command is executed, so one emitter serves the whole process.
    """

    def __init__(self, connection: Any, topics: Mapping[str, str],
                 maxlen: Optional[int] = None) -> None:
        self.r = connection
        self.topics = dict(topics)
        self.maxlen = maxlen

    def topic(self, name: str) -> str:
        """Get the stream name for a logical topic."""
        return self.topics.get(name, name)

    def emit(self, name: str, event: Event) -> Optional[str]:
        """
        Publish an event, keyed by its user ID.

        Returns
        -------
        str or None
            The stream entry ID, or ``None`` if the event was not published.

        """
        stream = self.topic(name)
        fields = {
            'key': str(event.get('userId', '')),
            'type': event.get('eventType', ''),
            'payload': json.dumps(event),
        }
        try:
            entry_id = self.r.xadd(stream, fields, maxlen=self.maxlen,
                                   approximate=True)
        except redis.exceptions.RedisError as e:
            logger.error('Could not publish %s to %s: %s',
                         event.get('eventType'), stream, e)
            return None
        logger.debug('Published %s %s to %s', event.get('eventType'),
                     event.get('eventId'), stream)
        if isinstance(entry_id, bytes):
            return entry_id.decode('utf-8')
        return str(entry_id)
