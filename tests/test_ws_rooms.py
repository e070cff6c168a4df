"""End-to-end tests for the room WebSocket route and HTTP endpoints."""
import json

from roomrelay.runtime.rooms import registry


def chat_event(type_: str, msg_id: str, content: str, **extra) -> str:
    event = {
        "type": type_,
        "id": msg_id,
        "user": "Alice",
        "role": "user",
        "content": content,
        "timestamp": "2024-01-01T00:00:00Z",
    }
    event.update(extra)
    return json.dumps(event)


def test_two_clients_share_a_room(api_client):
    with api_client.websocket_connect("/r1") as ws_a, \
         api_client.websocket_connect("/r1") as observer:

        assert ws_a.receive_json() == {"type": "all", "messages": []}
        assert observer.receive_json() == {"type": "all", "messages": []}

        add = chat_event("add", "m1", "hi")
        ws_a.send_text(add)
        # once a peer has the relay, the merge is already ordered ahead of any join
        assert observer.receive_text() == add

        with api_client.websocket_connect("/r1") as ws_b:
            snapshot = ws_b.receive_json()
            assert snapshot["type"] == "all"
            assert [(m["id"], m["content"]) for m in snapshot["messages"]] == [("m1", "hi")]

            update = chat_event("update", "m1", "hi!")
            ws_a.send_text(update)
            assert ws_b.receive_text() == update
            assert observer.receive_text() == update

            resp = api_client.get("/v1/rooms/r1/messages")
            assert resp.status_code == 200
            assert [m["content"] for m in resp.json()["messages"]] == ["hi!"]


def test_rooms_are_isolated(api_client):
    with api_client.websocket_connect("/iso-a") as ws_a, \
         api_client.websocket_connect("/iso-a") as peer_a, \
         api_client.websocket_connect("/iso-b") as ws_b:
        for ws in (ws_a, peer_a, ws_b):
            ws.receive_json()

        ws_a.send_text(chat_event("add", "only-a", "in a"))
        peer_a.receive_text()

    assert [m["id"] for m in api_client.get("/v1/rooms/iso-a/messages").json()["messages"]] == ["only-a"]
    assert api_client.get("/v1/rooms/iso-b/messages").json() == {"type": "all", "messages": []}


def test_garbage_frame_is_relayed_and_connection_survives(api_client):
    with api_client.websocket_connect("/garbage") as ws_a, \
         api_client.websocket_connect("/garbage") as ws_b:
        ws_a.receive_json()
        ws_b.receive_json()

        ws_a.send_text("not even json")
        assert ws_b.receive_text() == "not even json"

        ws_a.send_text(chat_event("add", "m1", "after garbage"))
        assert json.loads(ws_b.receive_text())["content"] == "after garbage"

    messages = api_client.get("/v1/rooms/garbage/messages").json()["messages"]
    assert [m["id"] for m in messages] == ["m1"]


def test_joined_connections_are_counted(api_client):
    with api_client.websocket_connect("/counted") as ws_a, \
         api_client.websocket_connect("/counted") as ws_b:
        # a connection is registered before its snapshot can be read
        ws_a.receive_json()
        ws_b.receive_json()

        assert registry.participant_count("counted") == 2


def test_list_rooms_reports_participants(api_client):
    with api_client.websocket_connect("/listed") as ws:
        ws.receive_json()

        resp = api_client.get("/v1/rooms")
        assert resp.status_code == 200
        rooms = {r["room_id"]: r for r in resp.json()["rooms"]}
        assert rooms["listed"]["participant_count"] == 1


def test_root_redirects_to_new_room(api_client):
    first = api_client.get("/", follow_redirects=False)
    second = api_client.get("/", follow_redirects=False)

    assert first.status_code == 307
    location = first.headers["location"]
    assert location.startswith("/")
    assert len(location) == 1 + 21
    assert location != second.headers["location"]


def test_unknown_room_snapshot_is_not_found_and_not_created(api_client):
    resp = api_client.get("/v1/rooms/never-joined/messages")

    assert resp.status_code == 404
    assert "never-joined" not in registry
    listed = [r["room_id"] for r in api_client.get("/v1/rooms").json()["rooms"]]
    assert "never-joined" not in listed
