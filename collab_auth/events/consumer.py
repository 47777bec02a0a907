"""
Consumes identity events from redis streams with a consumer group.

An entry is acknowledged only after the handler returns. If the handler
raises, the entry stays pending. Pending entries are swept again after
``retry_interval`` seconds (and on restart), each sweep moving past entries
it has already tried, so one failing entry cannot hold up the rest of the
stream. After ``max_attempts`` failures the entry is copied to a dead-letter
stream (``<stream>.dead``) and acknowledged. Handlers must be idempotent.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
import json
import logging
import time

import redis

from .payloads import Event

logger = logging.getLogger(__name__)

Handler = Callable[[str, Event], None]

PENDING = '0'
NEW = '>'
DEAD_LETTER_SUFFIX = '.dead'


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode('utf-8')
    return str(value)


class EventConsumer(object):
    """Reads and acknowledges events on behalf of one group member."""

    def __init__(self, connection: Any, streams: Iterable[str], group: str,
                 name: str, max_attempts: int = 5,
                 retry_interval: float = 30.0) -> None:
        self.r = connection
        self.streams = list(streams)
        self.group = group
        self.name = name
        self.max_attempts = max_attempts
        self.retry_interval = retry_interval
        self._attempts: Dict[Tuple[str, str], int] = {}
        self._retry_at: Optional[float] = None
        self._start_backlog()

    def ensure_groups(self) -> None:
        """Create the consumer group on each stream, if necessary."""
        for stream in self.streams:
            try:
                self.r.xgroup_create(stream, self.group, id='0',
                                     mkstream=True)
                logger.info('Created group %s on %s', self.group, stream)
            except redis.exceptions.ResponseError as e:
                if 'BUSYGROUP' not in str(e):
                    raise

    def _start_backlog(self) -> None:
        self._backlog = True
        self._cursors = {stream: PENDING for stream in self.streams}
        self._retry_at = None

    def _read(self, count: int, block: int) \
            -> List[Tuple[str, List[Tuple[str, Dict]]]]:
        if self._backlog:
            response = self.r.xreadgroup(self.group, self.name,
                                         dict(self._cursors), count=count)
        else:
            response = self.r.xreadgroup(
                self.group, self.name, {s: NEW for s in self.streams},
                count=count, block=block
            )
        return response or []

    def _failed(self, stream: str, entry_id: str, payload: str,
                error: Exception) -> None:
        key = (stream, entry_id)
        attempts = self._attempts.get(key, 0) + 1
        if attempts < self.max_attempts:
            self._attempts[key] = attempts
            if self._retry_at is None:
                self._retry_at = time.monotonic() + self.retry_interval
            return
        self._attempts.pop(key, None)
        logger.error('Giving up on %s on %s after %i attempts', entry_id,
                     stream, attempts)
        self.r.xadd(stream + DEAD_LETTER_SUFFIX,
                    {'entry': entry_id, 'payload': payload,
                     'error': str(error)})
        self.r.xack(stream, self.group, entry_id)

    def poll(self, handler: Handler, count: int = 10,
             block: int = 1000) -> int:
        """
        Deliver one batch of events to ``handler``.

        Pending entries (left by an earlier run, or by a failed handler) are
        delivered first; once the sweep reaches the end of the pending list,
        new entries are read.

        Returns
        -------
        int
            The number of entries acknowledged.

        """
        if not self._backlog and self._retry_at is not None \
                and time.monotonic() >= self._retry_at:
            self._start_backlog()

        batches = self._read(count, block)
        if self._backlog:
            delivered = 0
            for raw_stream, entries in batches:
                if entries:
                    self._cursors[_text(raw_stream)] = _text(entries[-1][0])
                    delivered += len(entries)
            if delivered == 0:
                self._backlog = False
                batches = self._read(count, block)

        acked = 0
        for raw_stream, entries in batches:
            stream = _text(raw_stream)
            for raw_id, fields in entries:
                entry_id = _text(raw_id)
                if not fields:     # Deleted from the stream while pending.
                    self.r.xack(stream, self.group, entry_id)
                    continue
                fields = {_text(k): _text(v) for k, v in fields.items()}
                try:
                    event: Event = json.loads(fields['payload'])
                except (KeyError, ValueError) as e:
                    logger.error('Discarding malformed entry %s on %s: %s',
                                 entry_id, stream, e)
                    self.r.xack(stream, self.group, entry_id)
                    continue
                try:
                    handler(stream, event)
                except Exception as e:
                    logger.exception('Failed to handle %s on %s: %s',
                                     entry_id, stream, e)
                    self._failed(stream, entry_id, fields['payload'], e)
                    continue
                self.r.xack(stream, self.group, entry_id)
                self._attempts.pop((stream, entry_id), None)
                acked += 1
        return acked
