import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.api import deps
from app.core.security.jwt_handler import JWTManager
from app.db.session import get_db
from app.main import create_app

from tests.conftest import EVENT_CENTER

API = "/api/v1"


@pytest.fixture
def app(settings, session_factory, clock):
    application = create_app(settings, init_database=False)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[deps.get_clock] = lambda: clock
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def tokens(world):
    jwt = JWTManager("test-secret")
    return {
        "agent": jwt.create_access_token(world.agent.id, world.agent.role),
        "other_agent": jwt.create_access_token(world.other_agent.id, world.other_agent.role),
        "supervisor": jwt.create_access_token(world.supervisor.id, world.supervisor.role),
        "admin": jwt.create_access_token(world.admin.id, world.admin.role),
    }


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def check_in_body(world, **extra):
    body = {"eventId": world.event.id, "latitude": EVENT_CENTER[0], "longitude": EVENT_CENTER[1]}
    body.update(extra)
    return body


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["realtime"]["connections"] == 0
    assert "X-Request-ID" in response.headers


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


class TestAttendanceEndpoints:
    def test_check_in(self, client, world, tokens):
        response = client.post(f"{API}/attendance/check-in", json=check_in_body(world), headers=auth(tokens["agent"]))

        assert response.status_code == 201
        body = response.json()
        assert body["attendance"]["status"] == "present"
        assert body["attendance"]["check_in_source"] == "self"
        assert body["geofence"]["is_within_geofence"] is True

    def test_duplicate_returns_conflict_with_attribution(self, client, world, tokens):
        client.post(
            f"{API}/attendance/check-in",
            json=check_in_body(world, agentId=world.agent.id),
            headers=auth(tokens["supervisor"]),
        )

        response = client.post(f"{API}/attendance/check-in", json=check_in_body(world), headers=auth(tokens["agent"]))

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "ATTENDANCE_CONFLICT"
        assert error["details"]["attribution"]["source"] == "supervisor"
        assert error["details"]["attribution"]["actor_name"] == "Samir Bennani"
        assert error["details"]["existing"]["agent_id"] == world.agent.id

    def test_mock_location_is_forbidden(self, client, world, tokens):
        response = client.post(
            f"{API}/attendance/check-in",
            json=check_in_body(world, deviceInfo={"isMockLocation": True}),
            headers=auth(tokens["agent"]),
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "MOCK_LOCATION_DETECTED"

    def test_invalid_latitude(self, client, world, tokens):
        response = client.post(
            f"{API}/attendance/check-in",
            json=check_in_body(world, latitude=91),
            headers=auth(tokens["agent"]),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_missing_token(self, client, world):
        response = client.post(f"{API}/attendance/check-in", json=check_in_body(world))
        assert response.status_code == 401

    def test_invalid_token(self, client, world):
        response = client.post(f"{API}/attendance/check-in", json=check_in_body(world), headers=auth("garbage"))
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "TOKEN_INVALID"

    def test_unknown_attendance(self, client, tokens):
        response = client.get(f"{API}/attendance/missing", headers=auth(tokens["admin"]))
        assert response.status_code == 404

    def test_check_out_flow(self, client, world, tokens, clock):
        created = client.post(f"{API}/attendance/check-in", json=check_in_body(world), headers=auth(tokens["agent"]))
        attendance_id = created.json()["attendance"]["id"]
        clock.set(18, 0)

        response = client.post(
            f"{API}/attendance/{attendance_id}/check-out",
            json={"latitude": EVENT_CENTER[0], "longitude": EVENT_CENTER[1]},
            headers=auth(tokens["agent"]),
        )
        assert response.status_code == 200
        assert response.json()["total_hours"] == 8.92

        again = client.post(
            f"{API}/attendance/{attendance_id}/check-out",
            json={"latitude": EVENT_CENTER[0], "longitude": EVENT_CENTER[1]},
            headers=auth(tokens["agent"]),
        )
        assert again.status_code == 400
        assert again.json()["error"]["code"] == "ALREADY_CHECKED_OUT"

    def test_absence_and_correction(self, client, world, tokens):
        absent = client.post(
            f"{API}/attendance/absent",
            json={"agentId": world.agent.id, "eventId": world.event.id},
            headers=auth(tokens["supervisor"]),
        )
        assert absent.status_code == 201

        corrected = client.patch(
            f"{API}/attendance/{absent.json()['id']}",
            json={"status": "excused", "notes": "Medical certificate"},
            headers=auth(tokens["admin"]),
        )
        assert corrected.status_code == 200
        assert corrected.json()["status"] == "excused"

        forbidden = client.patch(
            f"{API}/attendance/{absent.json()['id']}",
            json={"notes": "Not me"},
            headers=auth(tokens["agent"]),
        )
        assert forbidden.status_code == 403

    def test_listing_and_stats(self, client, world, tokens):
        client.post(f"{API}/attendance/check-in", json=check_in_body(world), headers=auth(tokens["agent"]))

        listing = client.get(
            f"{API}/attendance",
            params={"eventId": world.event.id, "status": "present"},
            headers=auth(tokens["supervisor"]),
        )
        assert listing.status_code == 200
        assert listing.json()["pagination"]["total"] == 1

        stats = client.get(f"{API}/attendance/stats", headers=auth(tokens["other_agent"]))
        assert stats.json()["total"] == 0

        today = client.get(f"{API}/attendance/today/{world.event.id}", headers=auth(tokens["agent"]))
        assert today.json()["checked_in"] is True


class TestTrackingEndpoints:
    def test_report_location(self, client, world, tokens):
        response = client.post(
            f"{API}/tracking/location",
            json={"eventId": world.event.id, "latitude": EVENT_CENTER[0], "longitude": EVENT_CENTER[1], "accuracy": 8},
            headers=auth(tokens["agent"]),
        )
        assert response.status_code == 200
        assert response.json()["is_within_geofence"] is True

    def test_validate_position(self, client, world, tokens):
        response = client.post(
            f"{API}/tracking/validate",
            json={"eventId": world.event.id, "latitude": EVENT_CENTER[0] + 0.009, "longitude": EVENT_CENTER[1]},
            headers=auth(tokens["agent"]),
        )
        assert response.status_code == 200
        assert response.json()["direction"] == "S"

    def test_alerts_are_staff_only(self, client, tokens):
        assert client.get(f"{API}/tracking/alerts", headers=auth(tokens["agent"])).status_code == 403
        assert client.get(f"{API}/tracking/alerts", headers=auth(tokens["supervisor"])).status_code == 200

    def test_realtime_stats_are_admin_only(self, client, tokens):
        assert client.get(f"{API}/realtime/stats", headers=auth(tokens["supervisor"])).status_code == 403
        assert client.get(f"{API}/realtime/stats", headers=auth(tokens["admin"])).status_code == 200


class TestRealtimeSocket:
    def test_connect_ping_and_rooms(self, client, world):
        with client.websocket_connect(f"{API}/realtime/ws?userId={world.agent.id}&rooms=event:{world.event.id}") as ws:
            connected = ws.receive_json()
            assert connected["type"] == "connected"
            assert connected["userId"] == world.agent.id
            assert connected["rooms"] == [f"event:{world.event.id}"]

            ws.send_json({"type": "ping"})
            assert ws.receive_json()["type"] == "pong"

            ws.send_json({"type": "join_room", "room": "event:other"})
            joined = ws.receive_json()
            assert joined["type"] == "room_joined"
            assert joined["room"] == "event:other"

    def test_invalid_json_and_role_rooms(self, client, world):
        with client.websocket_connect(f"{API}/realtime/ws?userId={world.agent.id}") as ws:
            ws.receive_json()

            ws.send_text("not json")
            error = ws.receive_json()
            assert error["type"] == "error"
            assert error["message"] == "Invalid JSON"

            ws.send_json({"type": "join_room", "room": "role:admin"})
            denied = ws.receive_json()
            assert denied["type"] == "error"
            assert denied["message"] == "Cannot join room role:admin"

    def test_token_joins_role_room(self, client, world, tokens):
        with client.websocket_connect(f"{API}/realtime/ws?token={tokens['supervisor']}") as ws:
            connected = ws.receive_json()
            assert connected["userId"] == world.supervisor.id
            assert "role:supervisor" in connected["rooms"]

    def test_rejects_mismatched_user(self, client, world, tokens):
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect(f"{API}/realtime/ws?userId={world.agent.id}&token={tokens['admin']}") as ws:
                ws.receive_json()
        assert exc.value.code == 1008

    def test_rejects_anonymous(self, client):
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect(f"{API}/realtime/ws") as ws:
                ws.receive_json()
        assert exc.value.code == 1008

    def test_check_in_reaches_supervisor_console(self, client, world, tokens):
        url = f"{API}/realtime/ws?token={tokens['supervisor']}&rooms=event:{world.event.id}"
        with client.websocket_connect(url) as ws:
            assert ws.receive_json()["type"] == "connected"

            response = client.post(
                f"{API}/attendance/check-in",
                json=check_in_body(world),
                headers=auth(tokens["agent"]),
            )
            assert response.status_code == 201

            received = []
            for _ in range(10):
                message = ws.receive_json()
                received.append(message.get("event"))
                if message.get("event") == "attendance:checked_in":
                    break

            assert received[-1] == "attendance:checked_in"
            assert received.count("attendance:checked_in") == 1
            assert message["data"]["attendance"]["agent_id"] == world.agent.id
