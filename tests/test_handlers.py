import json

import pytest

from handlers import EVENT_HANDLERS, dispatch_frame, handle_event


def frame(event, data=None, ack=None):
    message = {"event": event, "data": data}
    if ack is not None:
        message["ack"] = ack
    return json.dumps(message)


@pytest.fixture
def sockets(relay):
    for connection_id in ("a", "b"):
        relay.connect(connection_id)
    return relay


def test_all_client_events_are_registered():
    assert set(EVENT_HANDLERS) == {
        "joinRoom",
        "leaveRoom",
        "register",
        "message",
        "privateMessage",
        "broadcast_comment_new",
        "broadcast_players_updated",
    }


def test_join_and_leave_room(sockets):
    dispatch_frame(sockets, "a", frame("joinRoom", "game_1"))
    assert sockets.is_member("a", "game_1")

    dispatch_frame(sockets, "a", frame("leaveRoom", "game_1"))
    assert not sockets.is_member("a", "game_1")


def test_register_accepts_numeric_and_string_ids(sockets):
    dispatch_frame(sockets, "a", frame("register", 42))
    dispatch_frame(sockets, "b", frame("register", "abc"))

    assert sockets.is_member("a", "user_42")
    assert sockets.is_member("b", "user_abc")


def test_message_is_tagged_with_sender(sockets, transport):
    sockets.join("a", "lobby")
    sockets.join("b", "lobby")

    dispatch_frame(sockets, "a", frame("message", {"room": "lobby", "message": "hi"}))

    expected = ("message", {"room": "lobby", "message": "hi", "from": "a"})
    assert transport.received("a") == [expected]
    assert transport.received("b") == [expected]


def test_private_message_goes_to_target_room_only(sockets, transport):
    sockets.register("b", 9)

    dispatch_frame(sockets, "a", frame("privateMessage", {"to": "user_9", "message": "psst"}))

    assert transport.received("b") == [("privateMessage", {"to": "user_9", "message": "psst", "from": "a"})]
    assert transport.received("a") == []


def test_comment_new_from_member(sockets, transport):
    sockets.join("a", "game_42")
    sockets.join("b", "game_42")
    comment = {"id": 1, "text": "nice", "user": {"id": 2, "username": "bo", "avatar": "x.png"}}

    dispatch_frame(sockets, "a", frame("broadcast_comment_new", {"gameId": 42, "comment": comment}))

    assert transport.received("b") == [("game_comment_new", comment)]


def test_comment_new_from_non_member_reaches_nobody(sockets, transport):
    sockets.join("b", "game_42")

    dispatch_frame(sockets, "a", frame("broadcast_comment_new", {"gameId": 42, "comment": {"id": 1, "text": "x"}}))

    assert transport.frames == []


def test_players_updated(sockets, transport):
    sockets.join("b", "game_5")

    dispatch_frame(sockets, "a", frame("broadcast_players_updated", {"gameId": 5}))

    assert transport.received("b") == [("game_players_updated", {"gameId": 5})]


@pytest.mark.parametrize(
    "event,data",
    [
        ("joinRoom", ""),
        ("joinRoom", 5),
        ("joinRoom", None),
        ("message", {"message": "no room"}),
        ("privateMessage", {"message": "no target"}),
        ("broadcast_comment_new", {"gameId": 1}),
        ("broadcast_players_updated", {}),
        ("register", True),
        ("broadcast_players_updated", {"gameId": True}),
        ("broadcast_comment_new", {"gameId": False, "comment": {"id": 1}}),
        ("noSuchEvent", {}),
    ],
)
def test_invalid_events_are_ignored(sockets, transport, event, data):
    assert handle_event(sockets, "a", event, data) is False
    assert sockets.channel_count() == 0
    assert transport.frames == []


def test_garbage_frames_are_ignored(sockets, transport):
    dispatch_frame(sockets, "a", "not json")
    dispatch_frame(sockets, "a", json.dumps(["joinRoom", "game_1"]))
    dispatch_frame(sockets, "a", json.dumps({"data": "game_1"}))

    assert sockets.channel_count() == 0
    assert transport.frames == []


def test_ack_is_sent_after_handling(sockets, transport):
    sockets.join("b", "lobby")
    sockets.join("a", "lobby")

    dispatch_frame(sockets, "a", frame("message", {"room": "lobby", "message": "yo"}, ack=3))

    assert [event for event, _ in transport.received("a")] == ["message", "ack"]
    assert transport.received("a")[-1] == ("ack", {"id": 3})


def test_ack_does_not_reveal_rejected_relay(sockets, transport):
    dispatch_frame(sockets, "a", frame("broadcast_comment_new", {"gameId": 1, "comment": {"id": 1}}, ack="x"))

    assert transport.frames == [("a", "ack", {"id": "x"})]
