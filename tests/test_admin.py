import pytest

from app.core.config import settings


def test_login_returns_api_key(client):
    response = client.post("/api/admin/login", json={
        "username": settings.ADMIN_USERNAME,
        "password": settings.ADMIN_PASSWORD,
    })

    assert response.status_code == 200
    assert response.json() == {"apiKey": settings.ADMIN_API_KEY}


def test_login_rejects_bad_credentials(client):
    response = client.post("/api/admin/login", json={"username": settings.ADMIN_USERNAME, "password": "wrong"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


@pytest.mark.parametrize("path", ["/api/admin/stats", "/api/admin/characters", "/api/admin/characters/123"])
def test_protected_endpoints_require_api_key(client, path):
    response = client.get(path)

    assert response.status_code == 401
    assert response.json()["detail"] == "Unauthorized. Please provide a valid API key."


def test_wrong_api_key_is_rejected(client):
    assert client.get("/api/admin/stats", headers={"x-api-key": "nope"}).status_code == 401


def test_api_key_accepted_from_query_and_cookie(client):
    assert client.get("/api/admin/stats", params={"apiKey": settings.ADMIN_API_KEY}).status_code == 200

    client.cookies.set("apiKey", settings.ADMIN_API_KEY)
    assert client.get("/api/admin/stats").status_code == 200


def test_stats_count_characters(client, create_character, admin_headers):
    create_character(name="One")
    doomed = create_character(name="Two")
    client.delete(f"/api/characters/{doomed['id']}")

    stats = client.get("/api/admin/stats", headers=admin_headers).json()

    assert stats["totalCharacters"] == 2
    assert stats["activeCharacters"] == 1
    assert stats["inactiveCharacters"] == 1
    assert stats["databaseConnection"] == "connected"
    assert stats["serverUptime"] >= 0
    assert stats["pythonVersion"]
    assert stats["environment"] == settings.ENVIRONMENT


def test_status_reports_components(client):
    body = client.get("/api/admin/status").json()

    assert body["database"] == {"connected": True, "dialect": "sqlite"}
    assert body["llm"]["status"] == "healthy"
    assert body["system"]["cpus"] >= 1
    assert body["runtime"]["pid"] > 0


def test_models_lists_provider_models(client):
    body = client.get("/api/admin/models").json()

    assert body["models"] == ["models/gemini-2.0-flash", "models/gemini-1.5-pro"]
    assert body["count"] == 2
    assert body["error"] is None


def test_models_without_provider(client, llm_service):
    llm_service.client = None

    body = client.get("/api/admin/models").json()

    assert body["models"] == []
    assert body["count"] == 0
    assert "not configured" in body["error"]


def test_admin_lists_inactive_characters_as_records(client, create_character, admin_headers):
    kept = create_character(name="Kept")
    hidden = create_character(name="Hidden")
    client.delete(f"/api/characters/{hidden['id']}")

    records = client.get("/api/admin/characters", headers=admin_headers).json()

    by_id = {r["id"]: r for r in records}
    assert set(by_id) == {kept["id"], hidden["id"]}
    assert by_id[hidden["id"]]["isActive"] is False
    assert by_id[kept["id"]]["imageUrl"] == kept["image"]["uri"]
    assert "createdAt" in by_id[kept["id"]]


def test_admin_create_update_and_delete(client, png_bytes, admin_headers):
    created = client.post(
        "/api/admin/characters",
        headers=admin_headers,
        data={"name": "Admin Made", "description": "d", "personality": "p", "textColor": "#000000"},
        files={"image": ("avatar.png", png_bytes, "image/png")},
    )
    assert created.status_code == 201
    record = created.json()
    assert record["textColor"] == "#000000"
    assert record["isActive"] is True

    updated = client.put(
        f"/api/admin/characters/{record['id']}",
        headers=admin_headers,
        data={"location": "Osaka"},
    )
    assert updated.status_code == 200
    assert updated.json()["location"] == "Osaka"

    deleted = client.delete(f"/api/admin/characters/{record['id']}", headers=admin_headers)
    assert deleted.json() == {"message": "Character deleted successfully"}
    assert client.get(f"/api/admin/characters/{record['id']}", headers=admin_headers).json()["isActive"] is False


def test_admin_create_requires_api_key(client, png_bytes, storage_session):
    response = client.post(
        "/api/admin/characters",
        data={"name": "Nope", "description": "d", "personality": "p"},
        files={"image": ("avatar.png", png_bytes, "image/png")},
    )

    assert response.status_code == 401
    assert storage_session.calls == []


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"
