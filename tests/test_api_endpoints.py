"""Tests for the permission request endpoints of the consent service."""

from __future__ import annotations

from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from health_consent.consent.manager import ConsentFlowManager
from health_consent.main import app
import health_consent.main as main_mod
from health_consent.platform import InMemoryPermissionStorage


client = TestClient(app)

P = "android.permission.health."
PACKAGE = "com.example.fitness"
STEPS = P + "READ_STEPS"
DISTANCE = P + "WRITE_DISTANCE"


@pytest.fixture(autouse=True)
def in_memory_services():
    """Swap the module level services for in-memory ones."""
    platform = InMemoryPermissionStorage()
    platform.register_app(PACKAGE, "Fitness", [STEPS, DISTANCE])

    original_platform, original_manager = main_mod.permission_platform, main_mod.flow_manager
    main_mod.permission_platform = platform
    main_mod.flow_manager = ConsentFlowManager(platform)
    try:
        yield platform
    finally:
        main_mod.permission_platform = original_platform
        main_mod.flow_manager = original_manager


def start(permissions) -> Dict[str, Any]:
    response = client.post(
        "/permissions/requests",
        json={"target_package": PACKAGE, "requested_permissions": permissions},
    )
    assert response.status_code == 200
    return response.json()


def send(session_id: str, **event: Any):
    return client.post(f"/permissions/requests/{session_id}/events", json=event)


def test_health() -> None:
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["components"]["flow_manager"] is True


def test_config_exposes_feature_flags() -> None:
    response = client.get("/config")

    assert response.status_code == 200
    data = response.json()
    assert "history_read_enabled" in data
    assert "database_url" not in data


def test_allow_flow_over_http(in_memory_services) -> None:
    started = start([STEPS, DISTANCE])
    session_id = started["session_id"]
    assert started["action"] == {"type": "show_screen", "category": "fitness"}
    assert "result" not in started

    state = client.get(f"/permissions/requests/{session_id}").json()
    assert state["screen"]["permissions"] == [STEPS, DISTANCE]
    assert state["screen"]["allow_enabled"] is False
    assert state["app"]["display_name"] == "Fitness"

    assert send(session_id, type="toggle_permission", permission=STEPS, granted=True).status_code == 200
    response = send(session_id, type="allow", category="fitness")

    assert response.status_code == 200
    data = response.json()
    assert data["action"] == {"type": "finish", "result_code": "ok"}
    assert data["result"]["permission_identifiers"] == [STEPS, DISTANCE]
    assert data["result"]["results"] == [0, -1]
    assert in_memory_services.granted_permissions(PACKAGE) == {STEPS}


def test_empty_request_finishes_at_once() -> None:
    started = start([])

    assert started["action"]["type"] == "finish"
    assert started["result"] == {"result_code": "ok", "permission_identifiers": [], "results": []}


def test_missing_package_is_canceled() -> None:
    response = client.post("/permissions/requests", json={"requested_permissions": [STEPS]})

    assert response.status_code == 200
    assert response.json()["result"]["result_code"] == "canceled"


def test_unparsable_identifiers_are_dropped() -> None:
    started = start([STEPS, "com.vendor.perm-CUSTOM", "", "bad identifier!"])
    session_id = started["session_id"]

    assert started["action"] == {"type": "show_screen", "category": "fitness"}
    state = client.get(f"/permissions/requests/{session_id}").json()
    assert state["screen"]["permissions"] == [STEPS]

    send(session_id, type="toggle_all", category="fitness", granted=True)
    response = send(session_id, type="allow", category="fitness")

    assert response.status_code == 200
    assert response.json()["result"]["permission_identifiers"] == [STEPS]


def test_oversized_identifier_list_rejected() -> None:
    response = client.post(
        "/permissions/requests",
        json={"target_package": PACKAGE, "requested_permissions": [STEPS] * 501},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "VALIDATION_ERROR"


def test_toggle_event_returns_next_action() -> None:
    session_id = start([STEPS, DISTANCE])["session_id"]

    response = send(session_id, type="toggle_permission", permission=DISTANCE, granted=True)

    assert response.status_code == 200
    data = response.json()
    assert data["action"] == {"type": "show_screen", "category": "fitness"}
    assert "result" not in data


def test_unknown_session_returns_404() -> None:
    assert client.get("/permissions/requests/req_missing").status_code == 404

    response = send("req_missing", type="cancel")
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "SESSION_NOT_FOUND"


def test_invalid_event_returns_409() -> None:
    session_id = start([STEPS])["session_id"]

    response = send(session_id, type="allow", category="fitness")

    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "INVALID_FLOW_EVENT"


def test_bad_event_payload_returns_400() -> None:
    session_id = start([STEPS])["session_id"]

    assert send(session_id, type="jump").status_code == 400
    assert send(session_id, type="allow").status_code == 400
    assert send(session_id, type="toggle_permission", permission="bogus", granted=True).status_code == 400


def test_close_request() -> None:
    session_id = start([STEPS])["session_id"]

    assert client.delete(f"/permissions/requests/{session_id}").status_code == 200
    assert client.delete(f"/permissions/requests/{session_id}").status_code == 404


def test_returns_503_when_manager_missing() -> None:
    original = main_mod.flow_manager
    try:
        main_mod.flow_manager = None
        response = client.post("/permissions/requests", json={"target_package": PACKAGE})
        assert response.status_code == 503
        assert "not available" in response.json().get("detail", "")
    finally:
        main_mod.flow_manager = original
