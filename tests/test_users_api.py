"""End-to-end tests for the users HTTP API."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from usersapi.api import create_app
from usersapi.config import Settings
from usersapi.storage import UserStore

ANN = {"firstName": "Ann", "lastName": "Lee", "age": 30, "email": "a@b.com"}


def _build_app(tmp_path: Path, *, locale: str = "en"):
    data_file = tmp_path / "users.json"
    settings = Settings(host="127.0.0.1", port=3000, data_file=data_file, locale=locale)
    store = UserStore(data_file)
    return create_app(settings=settings, store=store), store


@pytest.fixture()
def client(tmp_path: Path):
    app, _ = _build_app(tmp_path)
    with TestClient(app) as test_client:
        yield test_client


def _create(client: TestClient, **overrides) -> dict:
    response = client.post("/v1/users", json={**ANN, **overrides})
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_create_applies_defaults_and_assigns_identity(client: TestClient) -> None:
    response = client.post("/v1/users", json=ANN)

    assert response.status_code == 201
    payload = response.json()
    assert payload["status"] == "success"
    data = payload["data"]
    assert data["hobbies"] == []
    assert data["isActive"] is True
    assert data["createdAt"] == data["updatedAt"]
    assert list(data) == [
        "id",
        "firstName",
        "lastName",
        "age",
        "email",
        "hobbies",
        "isActive",
        "createdAt",
        "updatedAt",
    ]

    fetched = client.get(f"/v1/users/{data['id']}")
    assert fetched.status_code == 200
    assert fetched.json() == {"status": "success", "data": data}


def test_create_persists_to_file(tmp_path: Path) -> None:
    app, store = _build_app(tmp_path)
    with TestClient(app) as client:
        created = _create(client, city="Paris", hobbies=["chess"])

    on_disk = json.loads(store.path.read_text(encoding="utf-8"))
    assert on_disk == [created]
    assert store.path.read_text(encoding="utf-8").startswith("[\n  {\n    \"id\"")


def test_create_ignores_client_supplied_system_fields(client: TestClient) -> None:
    data = _create(client, id="forged", createdAt="1999-01-01T00:00:00.000Z", extra="dropped")

    assert data["id"] != "forged"
    assert data["createdAt"] != "1999-01-01T00:00:00.000Z"
    assert "extra" not in data


def test_create_reports_all_field_errors_and_persists_nothing(tmp_path: Path) -> None:
    app, store = _build_app(tmp_path)
    with TestClient(app) as client:
        response = client.post("/v1/users", json={"firstName": "A", "age": 200, "email": "bad"})
        listing = client.get("/v1/users")

    assert response.status_code == 422
    body = response.json()
    assert body["status"] == "error"
    assert [error["field"] for error in body["errors"]] == ["firstName", "lastName", "age", "email"]
    assert listing.json()["data"] == []
    assert store.load() == []


def test_create_with_empty_body_reports_required_fields(client: TestClient) -> None:
    response = client.post("/v1/users")

    assert response.status_code == 422
    assert [error["field"] for error in response.json()["errors"]] == [
        "firstName",
        "lastName",
        "age",
        "email",
    ]


def test_malformed_json_is_rejected(client: TestClient) -> None:
    response = client.post(
        "/v1/users",
        content=b"{broken",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 422
    assert response.json() == {
        "status": "error",
        "errors": [{"field": "body", "message": "Request body must be a JSON object"}],
    }


def test_list_filters_combine(client: TestClient) -> None:
    paris_active = _create(client, firstName="Marie", lastName="Curie", city="Paris")
    _create(client, firstName="Pierre", lastName="Curie", city="paris", isActive=False)
    _create(client, firstName="Ann", lastName="Lee", city="London")
    _create(client, firstName="Bob", lastName="Stone")

    response = client.get("/v1/users", params={"city": "PARIS", "isActive": "true"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["data"] == [paris_active]
    assert payload["meta"] == {"total": 1, "returned": 1}

    by_name = client.get("/v1/users", params={"q": "cUrI"}).json()
    assert [user["firstName"] for user in by_name["data"]] == ["Marie", "Pierre"]

    inactive = client.get("/v1/users", params={"isActive": "false"}).json()
    assert [user["firstName"] for user in inactive["data"]] == ["Pierre"]

    everything = client.get("/v1/users", params={"q": "", "city": ""}).json()
    assert everything["meta"] == {"total": 4, "returned": 4}


def test_get_unknown_user_returns_404(client: TestClient) -> None:
    response = client.get("/v1/users/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"status": "error", "message": "User not found"}


def test_put_replaces_fields_but_keeps_identity(client: TestClient) -> None:
    created = _create(client, city="Paris", hobbies=["chess"])

    replacement = {"firstName": "Anna", "lastName": "Lee", "age": 31, "email": "anna@b.com"}
    response = client.put(f"/v1/users/{created['id']}", json=replacement)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == created["id"]
    assert data["createdAt"] == created["createdAt"]
    assert data["updatedAt"] >= created["updatedAt"]
    assert data["firstName"] == "Anna"
    assert data["hobbies"] == []
    assert "city" not in data


def test_repeated_put_only_advances_updated_at(client: TestClient) -> None:
    created = _create(client)
    body = {**ANN, "city": "Oslo"}

    first = client.put(f"/v1/users/{created['id']}", json=body).json()["data"]
    second = client.put(f"/v1/users/{created['id']}", json=body).json()["data"]

    assert second["updatedAt"] >= first["updatedAt"]
    first.pop("updatedAt")
    second.pop("updatedAt")
    assert first == second


def test_put_validates_before_looking_up_the_record(client: TestClient) -> None:
    invalid = client.put("/v1/users/missing", json={"firstName": "Ann"})
    assert invalid.status_code == 422

    missing = client.put("/v1/users/missing", json=ANN)
    assert missing.status_code == 404


def test_patch_merges_and_revalidates(client: TestClient) -> None:
    created = _create(client, city="Paris")

    response = client.patch(f"/v1/users/{created['id']}", json={"age": 42, "hobbies": ["go"]})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["age"] == 42
    assert data["hobbies"] == ["go"]
    assert data["city"] == "Paris"
    assert data["firstName"] == "Ann"
    assert data["createdAt"] == created["createdAt"]

    invalid = client.patch(f"/v1/users/{created['id']}", json={"age": "old", "email": "nope"})
    assert invalid.status_code == 422
    assert [error["field"] for error in invalid.json()["errors"]] == ["age", "email"]

    unchanged = client.get(f"/v1/users/{created['id']}").json()["data"]
    assert unchanged == data


def test_patch_cannot_change_identity(client: TestClient) -> None:
    created = _create(client)

    data = client.patch(
        f"/v1/users/{created['id']}",
        json={"id": "other", "createdAt": "2000-01-01T00:00:00.000Z"},
    ).json()["data"]

    assert data["id"] == created["id"]
    assert data["createdAt"] == created["createdAt"]


def test_patch_unknown_user_returns_404_before_validation(client: TestClient) -> None:
    response = client.patch("/v1/users/missing", json={"age": "invalid"})
    assert response.status_code == 404


def test_delete_removes_record(client: TestClient) -> None:
    created = _create(client)
    other = _create(client, firstName="Bob")

    response = client.delete(f"/v1/users/{created['id']}")

    assert response.status_code == 200
    assert response.json() == {
        "status": "success",
        "data": created,
        "message": "User deleted successfully",
    }
    assert client.get(f"/v1/users/{created['id']}").status_code == 404
    assert client.delete(f"/v1/users/{created['id']}").status_code == 404
    assert client.get("/v1/users").json()["data"] == [other]


def test_unknown_routes_use_error_envelope(client: TestClient) -> None:
    for response in (
        client.get("/v2/users"),
        client.post("/v1/users/some-id", json=ANN),
        client.delete("/v1/users"),
    ):
        assert response.status_code == 404
        assert response.json() == {"status": "error", "message": "Requested resource not found"}


def test_storage_failure_returns_generic_500(tmp_path: Path) -> None:
    app, store = _build_app(tmp_path)
    store.path.write_text("{corrupt", encoding="utf-8")

    with TestClient(app) as client:
        listing = client.get("/v1/users")
        created = client.post("/v1/users", json=ANN)

    assert listing.status_code == 500
    assert listing.json() == {"status": "error", "message": "Failed to fetch the list of users"}
    assert created.status_code == 500
    assert created.json() == {"status": "error", "message": "Failed to create user"}
    assert store.path.read_text(encoding="utf-8") == "{corrupt"


def test_unexpected_error_is_hidden_from_caller(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    app, store = _build_app(tmp_path)

    def _explode():
        raise RuntimeError("secret internals")

    monkeypatch.setattr(store, "load", _explode)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/v1/users")

    assert response.status_code == 500
    assert response.json() == {"status": "error", "message": "Internal server error"}
    assert "secret" not in response.text
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "SAMEORIGIN"


def test_responses_carry_security_headers(client: TestClient) -> None:
    response = client.get("/v1/users")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "SAMEORIGIN"


def test_messages_follow_configured_locale(tmp_path: Path) -> None:
    app, _ = _build_app(tmp_path, locale="ru")

    with TestClient(app) as client:
        response = client.get("/v1/users/missing")

    assert response.json() == {"status": "error", "message": "Пользователь не найден"}


def test_email_round_trips_unchanged(client: TestClient) -> None:
    created = _create(client, email="Ann.Lee@Example.COM")

    assert created["email"] == "Ann.Lee@Example.COM"
    fetched = client.get(f"/v1/users/{created['id']}").json()["data"]
    assert fetched["email"] == "Ann.Lee@Example.COM"


@pytest.mark.parametrize("content", [b"[\xff\xfe]", b"[1]"])
def test_unreadable_records_report_storage_failure(tmp_path: Path, content: bytes) -> None:
    app, store = _build_app(tmp_path)
    store.path.write_bytes(content)

    with TestClient(app) as client:
        response = client.get("/v1/users")

    assert response.status_code == 500
    assert response.json() == {"status": "error", "message": "Failed to fetch the list of users"}
