from __future__ import annotations

from fastapi.testclient import TestClient

from onboarding_resume.presentation.dependencies import get_uow
from tests.api.conftest import bearer, identity
from tests.fakes import CODE, DownUoW


def _resume(client: TestClient) -> str:
    client.post("/v1/resume/request", json=identity())
    r = client.post("/v1/resume/confirm", json=identity(code=CODE))
    assert r.status_code == 200, r.text
    return r.json()["session_token"]


def test_session_lookup_slides_expiry(client: TestClient, tracker, clock):
    token = _resume(client)
    clock.advance(minutes=10)

    r = client.get("/v1/session", headers=bearer(token))

    assert r.status_code == 200, r.text
    body = r.json()
    assert body["tracker_id"] == tracker.id
    assert body["onboarding_context"]["current_step"] == "driving_history"


def test_missing_token_is_401_with_challenge(client: TestClient):
    r = client.get("/v1/session")

    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"
    assert r.json()["detail"]["error"] == "NotFound"


def test_idle_session_is_expired(client: TestClient, tracker, clock):
    token = _resume(client)
    clock.advance(minutes=31)

    r = client.get("/v1/session", headers=bearer(token))

    assert r.status_code == 401
    assert r.json()["detail"]["error"] == "Expired"


def test_revoke_then_use_is_revoked(client: TestClient, tracker):
    token = _resume(client)

    r = client.post("/v1/session/revoke", json={"session_token": token})
    assert r.status_code == 200
    assert r.json() == {"revoked": True}

    r2 = client.get("/v1/session", headers=bearer(token))
    assert r2.status_code == 401
    assert r2.json()["detail"]["error"] == "Revoked"


def test_revoke_unknown_token_is_a_no_op(client: TestClient):
    r = client.post("/v1/session/revoke", json={"session_token": "not-a-token"})
    assert r.status_code == 200


def test_resuming_again_ends_the_previous_session(client: TestClient, tracker, clock):
    first = _resume(client)
    clock.advance(minutes=2)
    second = _resume(client)

    assert client.get("/v1/session", headers=bearer(first)).status_code == 401
    assert client.get("/v1/session", headers=bearer(second)).status_code == 200


def test_onboarding_context_is_scoped_to_the_session_tracker(
    client: TestClient, tracker, make_tracker
):
    make_tracker("trk-other", sin="130692544")
    token = _resume(client)

    own = client.get(f"/v1/onboarding/{tracker.id}/context", headers=bearer(token))
    other = client.get("/v1/onboarding/trk-other/context", headers=bearer(token))

    assert own.status_code == 200
    assert own.json()["id"] == tracker.id
    assert other.status_code == 403
    assert other.json()["detail"]["error"] == "TrackerMismatch"


def test_session_of_completed_application_is_closed(client: TestClient, tracker):
    token = _resume(client)
    tracker.completed = True

    r = client.get(f"/v1/onboarding/{tracker.id}/context", headers=bearer(token))

    assert r.status_code == 401
    assert r.json()["detail"]["error"] == "TrackerClosed"
    assert client.get("/v1/session", headers=bearer(token)).json()["detail"]["error"] == "Revoked"


def test_storage_outage_is_503(client: TestClient, app_and_deps):
    app_and_deps.dependency_overrides[get_uow] = lambda: DownUoW()

    r = client.post("/v1/resume/confirm", json=identity(code=CODE))

    assert r.status_code == 503
    assert "retry" in r.json()["detail"]


def test_healthz(client: TestClient):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
