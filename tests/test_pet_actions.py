from __future__ import annotations

import asyncio
import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from conftest import UPSTREAM_BASE_URL, USER, cookie_cleared, log_in_as
from pets_ui_bff import actions
from pets_ui_bff.api_client import UpstreamApi
from pets_ui_bff.session_data import ActionFailure, SessionData, SessionUser

JSON = {"Accept": "application/json"}
PET_FORM = {"name": "Rex", "species": "dog", "breed": "beagle", "age": "3"}


def test_add_pet_success(client, upstream) -> None:
    log_in_as(client, USER, token="tok-user")
    upstream.reply("POST", "/pets", 201, {"id": 9, **PET_FORM, "age": 3})

    r = client.post("/dashboard/pets", data=PET_FORM, headers=JSON)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["message"] == "Pet added successfully!"
    assert body["pet"]["id"] == 9

    (call,) = upstream.called("POST", "/pets")
    assert call.headers["Authorization"] == "Bearer tok-user"
    assert json.loads(call.content) == {"name": "Rex", "species": "dog", "breed": "beagle", "age": 3}


def test_add_pet_upstream_rejection_carries_status_and_message(client, upstream) -> None:
    log_in_as(client, USER)
    upstream.reply("POST", "/pets", 400, {"error": "duplicate"})

    r = client.post("/dashboard/pets", data=PET_FORM, headers=JSON)
    assert r.status_code == 400
    assert r.json()["error"] == "duplicate"
    assert r.json()["status"] == 400


def test_add_pet_uninformative_error_body_falls_back(client, upstream) -> None:
    log_in_as(client, USER)
    upstream.reply("POST", "/pets", 502)

    r = client.post("/dashboard/pets", data=PET_FORM, headers=JSON)
    assert r.status_code == 502
    assert r.json()["error"] == "Failed to add pet"


def test_add_pet_rejects_non_numeric_age_before_upstream(client, upstream) -> None:
    log_in_as(client, USER)

    r = client.post("/dashboard/pets", data={**PET_FORM, "age": "three"}, headers=JSON)
    assert r.status_code == 400
    assert r.json()["error"] == "Age must be a number"
    assert upstream.calls == []


def test_add_pet_browser_form_redirects_with_flash(client, upstream) -> None:
    log_in_as(client, USER)
    upstream.reply("POST", "/pets", 201, {"id": 9})

    r = client.post("/dashboard/pets", data=PET_FORM, follow_redirects=False)
    assert r.status_code == 303
    location = urlparse(r.headers["location"])
    assert location.path == "/dashboard"
    assert parse_qs(location.query) == {"msg": ["Pet added successfully!"], "kind": ["ok"]}


def test_update_pet_uses_put(client, upstream) -> None:
    log_in_as(client, USER)
    upstream.reply("PUT", "/pets/4", 200, {"id": 4, "name": "Rexy"})

    r = client.post("/dashboard/pets/4/update", data={**PET_FORM, "name": "Rexy", "age": "4.5"}, headers=JSON)
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert r.json()["id"] == 4

    (call,) = upstream.called("PUT", "/pets/4")
    assert json.loads(call.content)["age"] == 4.5


def test_update_pet_not_found(client, upstream) -> None:
    log_in_as(client, USER)
    upstream.reply("PUT", "/pets/4", 404, {"message": "Pet not found"})

    r = client.post("/dashboard/pets/4/update", data=PET_FORM, headers=JSON)
    assert r.status_code == 404
    assert r.json()["error"] == "Pet not found"


def test_delete_pet_success_returns_removed_id(client, upstream) -> None:
    log_in_as(client, USER)
    upstream.reply("DELETE", "/pets/12", 204)

    r = client.post("/dashboard/pets/12/delete", headers=JSON)
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Pet deleted successfully!", "id": 12}


def test_delete_pet_network_error_is_a_500_failure(client, upstream) -> None:
    log_in_as(client, USER)
    upstream.fail("DELETE", "/pets/12")

    r = client.post("/dashboard/pets/12/delete", headers=JSON)
    assert r.status_code == 500
    assert r.json()["error"] == "Network error. Please try again."


def test_delete_pet_with_rejected_token_ends_session(client, upstream) -> None:
    log_in_as(client, USER)
    upstream.reply("DELETE", "/pets/12", 401, {"error": "invalid token"})

    r = client.post("/dashboard/pets/12/delete", headers=JSON, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/login"
    assert cookie_cleared(r, "auth_token")


def test_logout_clears_cookies_without_upstream_call(client, upstream) -> None:
    log_in_as(client, USER)

    r = client.post("/logout", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/login"
    assert cookie_cleared(r, "auth_token")
    assert cookie_cleared(r, "user")
    assert upstream.calls == []


@pytest.mark.parametrize("raw_id", ["1%3Fall=true", "%2E%2E", "%00"])
@pytest.mark.parametrize("action", ["update", "delete"])
def test_non_numeric_pet_id_is_rejected_before_upstream(client, upstream, raw_id: str, action: str) -> None:
    log_in_as(client, USER)

    r = client.post(f"/dashboard/pets/{raw_id}/{action}", data=PET_FORM, headers=JSON)
    assert r.status_code == 422
    assert upstream.calls == []


def _captured_paths(pet_id: str) -> list[bytes]:
    seen: list[bytes] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.raw_path)
        return httpx.Response(204)

    api = UpstreamApi(UPSTREAM_BASE_URL, transport=httpx.MockTransport(_handler))
    asyncio.run(api.delete_pet("tok", pet_id))
    asyncio.run(api.update_pet("tok", pet_id, {"name": "Rex"}))
    return seen


@pytest.mark.parametrize(
    ("pet_id", "expected"),
    [
        ("1?all=true", b"/api/pets/1%3Fall%3Dtrue"),
        ("..", b"/api/pets/%2E%2E"),
        ("\x00", b"/api/pets/%00"),
        ("a/b", b"/api/pets/a%2Fb"),
    ],
)
def test_upstream_client_keeps_pet_id_in_one_path_segment(pet_id: str, expected: bytes) -> None:
    assert _captured_paths(pet_id) == [expected, expected]


def test_invalid_upstream_url_is_a_500_failure() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

    api = UpstreamApi(UPSTREAM_BASE_URL, transport=httpx.MockTransport(_handler))
    session = SessionData(token="tok", user=SessionUser.model_validate(USER))

    outcome = asyncio.run(actions.delete_pet(session, 1, api))
    assert isinstance(outcome, ActionFailure)
    assert outcome.status == 500
    assert outcome.error == "Network error. Please try again."
