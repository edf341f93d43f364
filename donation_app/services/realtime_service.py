"""
Real-time appointment events for staff dashboards.

Each subscriber (an open Server-Sent Events stream) owns a bounded queue.
Delivery is at-most-once: a subscriber whose queue is full misses the event.
"""
import json
import logging
import queue
import threading
from datetime import datetime

import redis

logger = logging.getLogger(__name__)

APPOINTMENT_CREATED = 'appointment_created'
APPOINTMENT_UPDATED = 'appointment_updated'
APPOINTMENT_STATUS_CHANGED = 'appointment_status_changed'
NEW_ARRIVAL = 'new_arrival'

EVENT_TYPES = (APPOINTMENT_CREATED, APPOINTMENT_UPDATED, APPOINTMENT_STATUS_CHANGED, NEW_ARRIVAL)


class EventBroadcaster:
    def __init__(self, max_queue_size=100):
        self.max_queue_size = max_queue_size
        self._subscribers = set()
        self._lock = threading.Lock()

    @property
    def subscriber_count(self):
        with self._lock:
            return len(self._subscribers)

    def subscribe(self):
        subscriber = queue.Queue(maxsize=self.max_queue_size)
        with self._lock:
            self._subscribers.add(subscriber)
        logger.info("Appointment stream client connected. Total: %s", self.subscriber_count)
        return subscriber

    def unsubscribe(self, subscriber):
        with self._lock:
            self._subscribers.discard(subscriber)
        logger.info("Appointment stream client disconnected. Total: %s", self.subscriber_count)

    def publish(self, event_type, payload):
        """Fan an event out to every subscriber; returns how many received it"""
        if event_type not in EVENT_TYPES:
            raise ValueError(f'Unknown event type: {event_type}')

        event = {
            'type': event_type,
            'data': payload,
            'timestamp': datetime.utcnow().isoformat(),
        }
        with self._lock:
            subscribers = list(self._subscribers)

        delivered = 0
        for subscriber in subscribers:
            try:
                subscriber.put_nowait(event)
                delivered += 1
            except queue.Full:
                logger.warning("Dropping %s event for slow stream client", event_type)
        return delivered

    def stream(self, subscriber, heartbeat_seconds=15):
        """
        Yield Server-Sent Events frames for one subscriber until the client goes away.

        A comment frame is sent whenever no event arrives within ``heartbeat_seconds``
        so proxies keep the connection open.
        """
        try:
            yield format_sse({'type': 'connected', 'message': 'Connected to appointment stream'})
            while True:
                try:
                    event = subscriber.get(timeout=heartbeat_seconds)
                except queue.Empty:
                    yield ': heartbeat\n\n'
                    continue
                yield format_sse(event)
        finally:
            self.unsubscribe(subscriber)


def format_sse(event):
    return f"data: {json.dumps(event, default=str)}\n\n"


# Process-wide broadcaster used by the HTTP layer
broadcaster = EventBroadcaster()


# ----------------------------------------------------------------------
# Cross-process relay
# ----------------------------------------------------------------------

EVENT_CHANNEL = 'appointment_events'


class RedisEventPublisher:
    """
    Publishes appointment events to a Redis channel instead of local queues.

    Used by processes with no stream clients of their own (the Celery worker);
    web processes running ``start_event_relay`` forward them to their subscribers.
    """

    def __init__(self, client, channel=EVENT_CHANNEL):
        self.client = client
        self.channel = channel

    @classmethod
    def from_url(cls, redis_url, channel=EVENT_CHANNEL):
        return cls(redis.Redis.from_url(redis_url, decode_responses=True), channel=channel)

    def publish(self, event_type, payload):
        if event_type not in EVENT_TYPES:
            raise ValueError(f'Unknown event type: {event_type}')
        message = json.dumps({'type': event_type, 'data': payload}, default=str)
        return self.client.publish(self.channel, message)


def relay_events(pubsub, target):
    """Forward messages from a Redis subscription to a local broadcaster until it closes"""
    for message in pubsub.listen():
        if message.get('type') != 'message':
            continue
        try:
            event = json.loads(message['data'])
            target.publish(event['type'], event['data'])
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring malformed relayed event: %s", e)


def start_event_relay(redis_url, target=None, channel=EVENT_CHANNEL):
    """Subscribe to the event channel and relay in a daemon thread"""
    client = redis.Redis.from_url(redis_url, decode_responses=True)
    pubsub = client.pubsub(ignore_subscribe_messages=True)
    pubsub.subscribe(channel)
    thread = threading.Thread(
        target=relay_events,
        args=(pubsub, target if target is not None else broadcaster),
        name='appointment-event-relay',
        daemon=True,
    )
    thread.start()
    logger.info("Relaying appointment events from Redis channel %s", channel)
    return thread


def init_event_relay(app):
    """Start the relay for a web process when enabled; streams stay local-only if Redis is down"""
    if not app.config.get('EVENT_RELAY_ENABLED'):
        return None
    try:
        return start_event_relay(app.config['EVENT_RELAY_REDIS_URL'])
    except redis.RedisError as e:
        logger.error(f"Appointment event relay unavailable, worker events will not reach streams: {e}")
        return None
