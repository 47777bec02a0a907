"""
Consumes identity events into the profile store.

Run with ``python -m profiles.worker``. Each worker in the consumer group
should have its own ``CONSUMER_NAME``.
"""

from typing import Optional
import logging

import click
from flask import Flask
from redis.exceptions import ConnectionError as RedisConnectionError, \
    TimeoutError as RedisTimeoutError
from retry import retry

from collab_auth import events
from collab_auth.events import EventConsumer

from . import handlers
from .factory import create_worker_app

logger = logging.getLogger(__name__)

STREAMS = (events.REGISTERED, events.DELETED, events.ROLE_CHANGED)


def get_consumer(app: Flask, name: Optional[str] = None) -> EventConsumer:
    """Create a consumer for the identity topics, and its group."""
    topics = events.get_topics(app.config)
    consumer = EventConsumer(
        app.extensions['profiles.redis'],
        [topics[key] for key in STREAMS],
        app.config['CONSUMER_GROUP'],
        name or app.config['CONSUMER_NAME'],
        max_attempts=app.config['CONSUMER_MAX_ATTEMPTS'],
        retry_interval=app.config['CONSUMER_RETRY_INTERVAL']
    )
    consumer.ensure_groups()
    return consumer


def consume(app: Flask, consumer: EventConsumer) -> int:
    """Handle one batch of events. Returns the number acknowledged."""
    with app.app_context():
        return consumer.poll(handlers.handle,
                             count=app.config['CONSUMER_BATCH_SIZE'],
                             block=app.config['CONSUMER_BLOCK_MS'])


@retry((RedisConnectionError, RedisTimeoutError), delay=1, backoff=2,
       max_delay=30, logger=logger)
def run(app: Flask, name: Optional[str] = None) -> None:
    """Consume events until interrupted."""
    consumer = get_consumer(app, name)
    logger.info('Consuming %s as %s/%s', ', '.join(consumer.streams),
                consumer.group, consumer.name)
    while True:
        consume(app, consumer)


@click.command()
@click.option('--name', default=None, help='Consumer name in the group.')
def main(name: Optional[str]) -> None:
    """Start a profile worker."""
    run(create_worker_app(), name)


if __name__ == '__main__':
    main()
