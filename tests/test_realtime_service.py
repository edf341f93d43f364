# tests/test_realtime_service.py
import json

import pytest

from donation_app.services.realtime_service import (
    APPOINTMENT_CREATED,
    APPOINTMENT_STATUS_CHANGED,
    EVENT_CHANNEL,
    NEW_ARRIVAL,
    EventBroadcaster,
    RedisEventPublisher,
    format_sse,
    init_event_relay,
    relay_events,
)


def decode(frame):
    assert frame.startswith("data: ") and frame.endswith("\n\n")
    return json.loads(frame[len("data: "):])


def test_publish_reaches_every_subscriber():
    broadcaster = EventBroadcaster()
    first = broadcaster.subscribe()
    second = broadcaster.subscribe()

    delivered = broadcaster.publish(APPOINTMENT_CREATED, {"appointment": {"id": "a-1"}})

    assert delivered == 2
    for subscriber in (first, second):
        event = subscriber.get_nowait()
        assert event["type"] == APPOINTMENT_CREATED
        assert event["data"] == {"appointment": {"id": "a-1"}}
        assert "timestamp" in event


def test_full_queue_drops_event_for_that_subscriber_only():
    broadcaster = EventBroadcaster(max_queue_size=1)
    slow = broadcaster.subscribe()
    broadcaster.publish(NEW_ARRIVAL, {"appointment_id": "a-1"})
    fast = broadcaster.subscribe()

    delivered = broadcaster.publish(NEW_ARRIVAL, {"appointment_id": "a-2"})

    assert delivered == 1
    assert slow.get_nowait()["data"]["appointment_id"] == "a-1"
    assert slow.empty()
    assert fast.get_nowait()["data"]["appointment_id"] == "a-2"


def test_no_subscribers():
    assert EventBroadcaster().publish(APPOINTMENT_CREATED, {}) == 0


def test_unknown_event_type():
    with pytest.raises(ValueError):
        EventBroadcaster().publish("appointment_deleted", {})


def test_stream_frames_and_cleanup():
    broadcaster = EventBroadcaster()
    subscriber = broadcaster.subscribe()
    frames = broadcaster.stream(subscriber, heartbeat_seconds=0.01)

    assert decode(next(frames))["type"] == "connected"
    assert next(frames) == ": heartbeat\n\n"

    broadcaster.publish(APPOINTMENT_CREATED, {"appointment": {"id": "a-9"}})
    assert decode(next(frames))["data"]["appointment"]["id"] == "a-9"

    frames.close()
    assert broadcaster.subscriber_count == 0


def test_format_sse_serialises_non_json_values():
    from datetime import datetime

    frame = format_sse({"at": datetime(2024, 6, 1, 10, 0)})
    assert decode(frame) == {"at": "2024-06-01 10:00:00"}


class FakeRedis:
    def __init__(self):
        self.published = []

    def publish(self, channel, message):
        self.published.append((channel, message))
        return 1


class FakePubSub:
    def __init__(self, messages):
        self.messages = messages

    def listen(self):
        return iter(self.messages)


def test_redis_publisher_sends_event_to_channel():
    client = FakeRedis()
    publisher = RedisEventPublisher(client)

    publisher.publish(APPOINTMENT_STATUS_CHANGED, {"previous_status": "scheduled"})

    channel, message = client.published[0]
    assert channel == EVENT_CHANNEL
    assert json.loads(message) == {
        "type": APPOINTMENT_STATUS_CHANGED,
        "data": {"previous_status": "scheduled"},
    }


def test_redis_publisher_rejects_unknown_event_type():
    with pytest.raises(ValueError):
        RedisEventPublisher(FakeRedis()).publish("appointment_deleted", {})


def test_relay_forwards_to_local_subscribers():
    local = EventBroadcaster()
    subscriber = local.subscribe()
    pubsub = FakePubSub([
        {"type": "subscribe", "data": 1},
        {"type": "message", "data": "not json"},
        {"type": "message", "data": json.dumps({"type": "appointment_deleted", "data": {}})},
        {"type": "message", "data": json.dumps({"type": APPOINTMENT_STATUS_CHANGED, "data": {"id": "a-3"}})},
    ])

    relay_events(pubsub, local)

    event = subscriber.get_nowait()
    assert event["type"] == APPOINTMENT_STATUS_CHANGED
    assert event["data"] == {"id": "a-3"}
    assert subscriber.empty()


def test_relay_not_started_when_disabled(app):
    assert init_event_relay(app) is None
