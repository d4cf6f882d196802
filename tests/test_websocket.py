"""
WebSocket tests - room subscriptions and live delivery
"""
from classchat.services import MessageService, chat_service


def connect(client):
    websocket = client.websocket_connect("/ws")
    session = websocket.__enter__()
    hello = session.receive_json()
    assert hello["type"] == "connected"
    return websocket, session, hello["connection_id"]


def join(session, room_id):
    session.send_json({"type": "join_room", "room_id": room_id})
    assert session.receive_json() == {"type": "room_joined", "room_id": room_id}


def assert_nothing_pending(session):
    """The next frame is the pong, so nothing was queued before it"""
    session.send_json({"type": "ping"})
    assert session.receive_json() == {"type": "pong"}


def setup_classroom(client):
    teacher = client.post("/api/users", json={"name": "Ms. Frizzle", "role": "teacher"}).json()
    return client.post("/api/classrooms/create", json={
        "name": "Biology",
        "teacher_id": teacher["id"],
    }).json()


class TestWebSocket:

    def test_ping(self, client):
        with client.websocket_connect("/ws") as websocket:
            assert websocket.receive_json()["type"] == "connected"
            assert_nothing_pending(websocket)

    def test_posted_message_reaches_room_but_not_sender(self, client):
        classroom = setup_classroom(client)
        sender_ctx, sender, sender_id = connect(client)
        listener_ctx, listener, _ = connect(client)
        outsider_ctx, outsider, _ = connect(client)
        try:
            join(sender, classroom["id"])
            join(listener, classroom["id"])

            response = client.post(
                "/api/messages",
                data={"classroom_id": classroom["id"], "author": "Arnold", "content": "hello"},
                headers={"X-Connection-ID": sender_id},
            )
            assert response.status_code == 201
            message = response.json()

            event = listener.receive_json()
            assert event["type"] == "receive_message"
            assert event["room_id"] == classroom["id"]
            assert event["message"]["id"] == message["id"]
            assert event["message"]["content"] == "hello"

            assert_nothing_pending(sender)
            assert_nothing_pending(outsider)

            # The client re-emit of an already delivered message is a no-op
            sender.send_json({"type": "send_message", "message_id": message["id"]})
            assert_nothing_pending(sender)
            assert_nothing_pending(listener)
        finally:
            outsider_ctx.__exit__(None, None, None)
            listener_ctx.__exit__(None, None, None)
            sender_ctx.__exit__(None, None, None)

    def test_global_room(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            join(websocket, "global")

            client.post("/api/messages/global", data={"author": "Ada", "content": "hi all"})

            event = websocket.receive_json()
            assert event["room_id"] == "global"
            assert event["message"]["classroom_id"] is None

    def test_re_emit_publishes_stored_record(self, client, db):
        classroom = setup_classroom(client)
        stored = MessageService.append_classroom_message(db, classroom["id"], "Arnold", "from storage")

        sender_ctx, sender, _ = connect(client)
        listener_ctx, listener, _ = connect(client)
        try:
            join(sender, classroom["id"])
            join(listener, classroom["id"])

            sender.send_json({"type": "send_message", "message_id": stored.id, "content": "forged"})

            event = listener.receive_json()
            assert event["message"]["id"] == stored.id
            assert event["message"]["content"] == "from storage"
            assert_nothing_pending(sender)
        finally:
            listener_ctx.__exit__(None, None, None)
            sender_ctx.__exit__(None, None, None)

    def test_leave_room_stops_delivery(self, client):
        classroom = setup_classroom(client)
        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            join(websocket, classroom["id"])

            websocket.send_json({"type": "leave_room", "room_id": classroom["id"]})
            assert websocket.receive_json() == {"type": "room_left", "room_id": classroom["id"]}

            client.post("/api/messages", data={"classroom_id": classroom["id"], "author": "A", "content": "hi"})
            assert_nothing_pending(websocket)

    def test_bad_signals_get_errors(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()

            websocket.send_text("not json")
            assert websocket.receive_json()["type"] == "error"

            websocket.send_json({"type": "join_room"})
            assert websocket.receive_json()["type"] == "error"

            websocket.send_json({"type": "send_message", "message_id": "abc"})
            assert websocket.receive_json()["type"] == "error"

            websocket.send_json({"type": "send_message", "message_id": 424242})
            assert websocket.receive_json()["type"] == "error"

            websocket.send_json({"type": "dance"})
            assert websocket.receive_json()["type"] == "error"

    def test_disconnect_clears_subscriptions(self, client):
        classroom = setup_classroom(client)
        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            join(websocket, classroom["id"])
            assert client.get("/stats/websocket").json()["subscriptions"] == 1

        stats = client.get("/stats/websocket").json()
        assert stats["active_connections"] == 0
        assert stats["subscriptions"] == 0

    def test_join_after_drop_reports_error(self, client):
        with client.websocket_connect("/ws") as websocket:
            connection_id = websocket.receive_json()["connection_id"]

            # What the broadcaster does to a connection whose send failed
            chat_service.broadcaster.disconnect(connection_id)

            websocket.send_json({"type": "join_room", "room_id": "global"})
            event = websocket.receive_json()

            assert event["type"] == "error"
            assert "reconnect" in event["message"]
            assert chat_service.broadcaster.subscribers("global") == set()
