import threading

from app.core.events import EventBroadcaster, event_room, role_room

from tests.conftest import RecordingChannel


def connect(broadcaster, user_id, *rooms, alive=True):
    channel = RecordingChannel(user_id, alive=alive)
    broadcaster.connect(channel, rooms)
    return channel


def test_event_room_scoping():
    broadcaster = EventBroadcaster()
    in_room = connect(broadcaster, "u1", event_room("e1"))
    other_room = connect(broadcaster, "u2", event_room("e2"))

    delivered = broadcaster.emit("agent:location", {"lat": 1}, user_id="a1", event_id="e1")

    assert delivered == 1
    assert in_room.events() == ["agent:location"]
    assert other_room.messages == []


def test_user_direct_delivery_reaches_every_connection_of_user():
    broadcaster = EventBroadcaster()
    phone = connect(broadcaster, "a1")
    tablet = connect(broadcaster, "a1")
    stranger = connect(broadcaster, "a2")

    broadcaster.emit("notification:created", {"title": "hi"}, user_id="a1")

    assert phone.events() == tablet.events() == ["notification:created"]
    assert stranger.messages == []


def test_global_events_reach_everyone():
    broadcaster = EventBroadcaster()
    channels = [connect(broadcaster, f"u{i}") for i in range(3)]

    assert broadcaster.emit("attendance:checked_in", {}, user_id="u0", event_id="e1") == 3
    assert all(c.events() == ["attendance:checked_in"] for c in channels)


def test_overlapping_targets_deliver_once():
    broadcaster = EventBroadcaster()
    channel = connect(broadcaster, "s1", role_room("supervisor"), event_room("e1"))

    broadcaster.emit("tracking:alert", {}, user_id="a1", event_id="e1", supervisor_id="s1")

    assert len(channel.messages) == 1


def test_staff_routes_skip_agents():
    broadcaster = EventBroadcaster()
    admin = connect(broadcaster, "adm", role_room("admin"))
    agent = connect(broadcaster, "a1")

    broadcaster.emit("fraud:signal", {}, user_id="a1")

    assert admin.events() == ["fraud:signal"]
    assert agent.messages == []


def test_envelope_shape():
    broadcaster = EventBroadcaster()
    channel = connect(broadcaster, "u1")

    broadcaster.publish("attendance:updated", {"id": "r1"})

    message = channel.messages[0]
    assert message["type"] == "sync"
    assert message["event"] == "attendance:updated"
    assert message["data"] == {"id": "r1"}
    assert "timestamp" in message


def test_disconnect_cleans_every_index():
    broadcaster = EventBroadcaster()
    channel = connect(broadcaster, "u1", event_room("e1"), role_room("admin"))

    broadcaster.disconnect(channel.channel_id)

    assert channel.closed
    assert broadcaster.stats() == {"connections": 0, "users": 0, "rooms": {}}
    assert not broadcaster.is_user_online("u1")
    assert broadcaster.rooms_of(channel.channel_id) == set()


def test_failed_push_drops_channel():
    broadcaster = EventBroadcaster()
    dead = connect(broadcaster, "u1", event_room("e1"), alive=False)
    live = connect(broadcaster, "u2", event_room("e1"))

    delivered = broadcaster.publish_to_room(event_room("e1"), "agent:location", {})

    assert delivered == 1
    assert live.events() == ["agent:location"]
    stats = broadcaster.stats()
    assert stats["connections"] == 1
    assert stats["rooms"] == {event_room("e1"): 1}
    assert dead.closed


def test_join_and_leave_room():
    broadcaster = EventBroadcaster()
    channel = connect(broadcaster, "u1")

    assert broadcaster.join_room(channel.channel_id, event_room("e9"))
    broadcaster.publish_to_room(event_room("e9"), "agent:location", {})
    assert broadcaster.leave_room(channel.channel_id, event_room("e9"))
    broadcaster.publish_to_room(event_room("e9"), "agent:location", {})

    assert len(channel.messages) == 1
    assert not broadcaster.leave_room(channel.channel_id, event_room("e9"))
    assert not broadcaster.join_room("unknown", event_room("e9"))


def test_concurrent_connect_publish_disconnect():
    broadcaster = EventBroadcaster()
    errors = []

    def churn(n):
        try:
            for i in range(50):
                channel = connect(broadcaster, f"user-{n}", event_room("e1"))
                broadcaster.publish_to_room(event_room("e1"), "agent:location", {"i": i})
                broadcaster.disconnect(channel.channel_id)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=churn, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert broadcaster.stats() == {"connections": 0, "users": 0, "rooms": {}}
