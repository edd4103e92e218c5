from registry import ConnectionRegistry


def test_on_connect_creates_record_with_no_channels():
    registry = ConnectionRegistry()

    record = registry.on_connect("c1", "10.0.0.1:5000")

    assert record.connection_id == "c1"
    assert record.remote_address == "10.0.0.1:5000"
    assert record.channels == set()
    assert record.user_id is None
    assert registry.get("c1") is record
    assert registry.snapshot() == 1


def test_on_register_overwrites_user_id():
    registry = ConnectionRegistry()
    registry.on_connect("c1")

    registry.on_register("c1", 7)
    record = registry.on_register("c1", 8)

    assert record.user_id == 8


def test_on_register_unknown_connection_returns_none():
    assert ConnectionRegistry().on_register("ghost", 1) is None


def test_on_disconnect_returns_record_and_forgets_it():
    registry = ConnectionRegistry()
    registry.on_connect("c1")

    record = registry.on_disconnect("c1")

    assert record.connection_id == "c1"
    assert "c1" not in registry
    assert registry.snapshot() == 0


def test_on_disconnect_unknown_connection_is_noop():
    registry = ConnectionRegistry()
    registry.on_connect("c1")

    assert registry.on_disconnect("ghost") is None
    assert registry.snapshot() == 1


def test_to_dict_lists_channels_sorted():
    registry = ConnectionRegistry()
    record = registry.on_connect("c1", "127.0.0.1:1")
    record.channels.update({"user_1", "game_2"})

    data = record.to_dict()

    assert data["channels"] == ["game_2", "user_1"]
    assert data["connection_id"] == "c1"
    assert "connected_at" in data
