"""Tests for :mod:`collab_auth.events`."""

from unittest import TestCase, mock
import json

import fakeredis
from flask import Flask
from redis.exceptions import ConnectionError

from ... import domain
from .. import payloads, EventEmitter, EventConsumer
from ... import events

USER = domain.User(
    user_id='u-1',
    username='alice',
    email='alice@x.com',
    first_name='Alice',
    last_name='Tester',
    country_code='+91',
    contact_no='5550100',
    roles=['GUEST']
)

TOPICS = {
    events.REGISTERED: 'user.registered',
    events.DELETED: 'user.deleted',
    events.ROLE_CHANGED: 'user.role.changed',
}


class TestPayloads(TestCase):
    """Event payloads carry the documented fields."""

    def test_user_registered(self):
        event = payloads.user_registered(USER)
        self.assertEqual(event['eventType'], payloads.USER_REGISTERED)
        self.assertEqual(event['userId'], 'u-1')
        self.assertEqual(event['username'], 'alice')
        self.assertEqual(event['email'], 'alice@x.com')
        self.assertEqual(event['firstName'], 'Alice')
        self.assertEqual(event['roles'], ['GUEST'])
        self.assertIsInstance(event['timestamp'], int)
        self.assertTrue(event['eventId'])

    def test_user_deleted(self):
        event = payloads.user_deleted(USER, 'root')
        self.assertEqual(event['deletedBy'], 'root')
        self.assertFalse(event['hardDelete'])

    def test_user_role_changed(self):
        event = payloads.user_role_changed(USER, 'role_editor',
                                           payloads.ASSIGNED, 'root')
        self.assertEqual(event['roleName'], 'EDITOR')
        self.assertEqual(event['action'], 'ASSIGNED')
        self.assertEqual(event['changedBy'], 'root')
        with self.assertRaises(ValueError):
            payloads.user_role_changed(USER, 'EDITOR', 'TOGGLED', 'root')

    def test_event_ids_are_unique(self):
        self.assertNotEqual(payloads.user_registered(USER)['eventId'],
                            payloads.user_registered(USER)['eventId'])


class TestEventEmitter(TestCase):
    """Events are appended to a stream per topic, keyed by user."""

    def setUp(self):
        self.r = fakeredis.FakeStrictRedis(server=fakeredis.FakeServer())
        self.emitter = EventEmitter(self.r, TOPICS)

    def test_emit(self):
        entry_id = self.emitter.emit(events.REGISTERED,
                                     payloads.user_registered(USER))
        self.assertIsNotNone(entry_id)
        entries = self.r.xrange('user.registered')
        self.assertEqual(len(entries), 1)
        _, fields = entries[0]
        self.assertEqual(fields[b'key'], b'u-1')
        self.assertEqual(json.loads(fields[b'payload'])['username'], 'alice')

    def test_emit_failure_is_swallowed(self):
        """Publishing never fails the operation that produced the event."""
        connection = mock.MagicMock()
        connection.xadd.side_effect = ConnectionError
        emitter = EventEmitter(connection, TOPICS)
        self.assertIsNone(
            emitter.emit(events.DELETED, payloads.user_deleted(USER, 'root'))
        )

    def test_module_functions(self):
        app = Flask('test')
        events.init_app(app, connection=self.r)
        with app.app_context():
            events.user_registered(USER)
            events.user_role_changed(USER, 'EDITOR', payloads.REMOVED,
                                     'root')
            events.user_deleted(USER, 'root', hard=True)
            events.verification_requested(USER)
        for stream in ('user.registered', 'user.role.changed',
                       'user.deleted', 'user.verification.requested'):
            self.assertEqual(self.r.xlen(stream), 1, stream)

    def test_topic_names_are_configurable(self):
        app = Flask('test')
        app.config['EVENT_TOPIC_USER_DELETED'] = 'accounts.deleted'
        events.init_app(app, connection=self.r)
        with app.app_context():
            events.user_deleted(USER, 'root')
        self.assertEqual(self.r.xlen('accounts.deleted'), 1)


class TestEventConsumer(TestCase):
    """Entries are acknowledged only after they are handled."""

    def setUp(self):
        self.r = fakeredis.FakeStrictRedis(server=fakeredis.FakeServer())
        self.emitter = EventEmitter(self.r, TOPICS)
        self.streams = list(TOPICS.values())

    def consumer(self, name='worker-1'):
        consumer = EventConsumer(self.r, self.streams, 'profiles', name)
        consumer.ensure_groups()
        return consumer

    def test_consume(self):
        consumer = self.consumer()
        consumer.ensure_groups()    # Idempotent.
        self.emitter.emit(events.REGISTERED, payloads.user_registered(USER))
        self.emitter.emit(events.DELETED, payloads.user_deleted(USER, 'x'))

        seen = []
        acked = consumer.poll(lambda stream, event: seen.append(
            (stream, event['eventType'])
        ), block=10)
        self.assertEqual(acked, 2)
        self.assertEqual(sorted(seen),
                         [('user.deleted', payloads.USER_DELETED),
                          ('user.registered', payloads.USER_REGISTERED)])
        self.assertEqual(consumer.poll(mock.MagicMock(), block=10), 0)

    def test_failed_entries_are_redelivered(self):
        """An entry whose handler fails stays pending for the next run."""
        consumer = self.consumer()
        self.emitter.emit(events.REGISTERED, payloads.user_registered(USER))

        handler = mock.MagicMock(side_effect=RuntimeError('boom'))
        self.assertEqual(consumer.poll(handler, block=10), 0)
        self.assertEqual(handler.call_count, 1)
        pending = self.r.xpending('user.registered', 'profiles')
        self.assertEqual(pending['pending'], 1)

        restarted = EventConsumer(self.r, self.streams, 'profiles',
                                  'worker-1')
        handler = mock.MagicMock()
        self.assertEqual(restarted.poll(handler, block=10), 1)
        self.assertEqual(handler.call_args[0][1]['userId'], 'u-1')
        pending = self.r.xpending('user.registered', 'profiles')
        self.assertEqual(pending['pending'], 0)

    def test_malformed_entries_are_discarded(self):
        consumer = self.consumer()
        self.r.xadd('user.registered', {'key': 'u-1', 'payload': '{nope'})
        handler = mock.MagicMock()
        self.assertEqual(consumer.poll(handler, block=10), 0)
        self.assertEqual(handler.call_count, 0)
        pending = self.r.xpending('user.registered', 'profiles')
        self.assertEqual(pending['pending'], 0)

    def test_failed_entries_are_retried_while_running(self):
        """A failed entry is swept again once the retry interval passes."""
        consumer = EventConsumer(self.r, self.streams, 'profiles',
                                 'worker-1', retry_interval=0)
        consumer.ensure_groups()
        self.emitter.emit(events.REGISTERED, payloads.user_registered(USER))

        handler = mock.MagicMock(side_effect=[RuntimeError('boom'), None])
        self.assertEqual(consumer.poll(handler, block=10), 0)
        self.assertEqual(consumer.poll(handler, block=10), 1)
        self.assertEqual(handler.call_count, 2)
        pending = self.r.xpending('user.registered', 'profiles')
        self.assertEqual(pending['pending'], 0)

    def test_retry_waits_for_interval(self):
        consumer = EventConsumer(self.r, self.streams, 'profiles',
                                 'worker-1', retry_interval=3600)
        consumer.ensure_groups()
        self.emitter.emit(events.REGISTERED, payloads.user_registered(USER))

        handler = mock.MagicMock(side_effect=RuntimeError('boom'))
        self.assertEqual(consumer.poll(handler, block=10), 0)
        self.assertEqual(consumer.poll(handler, block=10), 0)
        self.assertEqual(handler.call_count, 1)

    def test_failing_entry_does_not_block_others(self):
        """Later entries are delivered while a bad one keeps failing."""
        self.consumer()
        self.emitter.emit(events.REGISTERED, payloads.user_registered(USER))
        seen = []

        def handler(stream, event):
            seen.append(event['userId'])
            if event['userId'] == 'u-1':
                raise RuntimeError('boom')

        first = EventConsumer(self.r, self.streams, 'profiles', 'worker-1')
        self.assertEqual(first.poll(handler, block=10), 0)

        bob = USER._replace(user_id='u-2', username='bob',
                            email='bob@x.com')
        self.emitter.emit(events.REGISTERED, payloads.user_registered(bob))

        restarted = EventConsumer(self.r, self.streams, 'profiles',
                                  'worker-1', max_attempts=3,
                                  retry_interval=0)
        acked = sum(restarted.poll(handler, block=10) for _ in range(10))

        self.assertEqual(acked, 1)
        self.assertEqual(seen.count('u-2'), 1)
        self.assertEqual(seen.count('u-1'), 4)
        pending = self.r.xpending('user.registered', 'profiles')
        self.assertEqual(pending['pending'], 0)

        (_, fields), = self.r.xrange('user.registered.dead')
        self.assertEqual(json.loads(fields[b'payload'])['userId'], 'u-1')
        self.assertEqual(fields[b'error'], b'boom')
