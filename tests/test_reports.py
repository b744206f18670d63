import asyncio
from datetime import datetime, timezone

import pytest

from app.models.reports import Report
from app.services.reports import ReportService


@pytest.fixture
def submit_report(client):
    """Factory fixture submitting a report through the public API."""

    def _submit(character_id, reason="offensive_language", headers=None, **fields):
        payload = {"characterId": character_id, "messageContent": "something rude", "reason": reason, **fields}
        return client.post("/api/reports", json=payload, headers=headers or {})

    return _submit


# ============================================================================
# Submission
# ============================================================================


def test_submit_report_stores_reporter_and_metadata(client, create_character, submit_report, admin_headers):
    created = create_character()

    response = submit_report(
        created["id"],
        details="It insulted me",
        metadata={"conversationId": "conv-1", "messageId": "msg-7"},
        headers={"x-device-id": "device-42", "x-app-version": "2.3.0", "user-agent": "LeomeApp/2.3"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Report submitted successfully"

    report = client.get(f"/api/reports/{body['reportId']}", headers=admin_headers).json()
    assert report["characterId"] == created["id"]
    assert report["reporterId"] == "device-42"
    assert report["reason"] == "offensive_language"
    assert report["details"] == "It insulted me"
    assert report["status"] == "pending"
    assert report["adminReview"] is None
    assert report["metadata"] == {
        "conversationId": "conv-1",
        "messageId": "msg-7",
        "appVersion": "2.3.0",
        "deviceInfo": "LeomeApp/2.3",
    }


def test_reporter_falls_back_to_client_address(client, create_character, submit_report, admin_headers):
    created = create_character()

    report_id = submit_report(created["id"]).json()["reportId"]

    report = client.get(f"/api/reports/{report_id}", headers=admin_headers).json()
    assert report["reporterId"] == "testclient"
    assert report["metadata"]["appVersion"] == "unknown"


def test_soft_deleted_character_can_still_be_reported(client, create_character, submit_report):
    created = create_character()
    client.delete(f"/api/characters/{created['id']}")

    assert submit_report(created["id"]).status_code == 201


@pytest.mark.parametrize("missing", ["characterId", "messageContent", "reason"])
def test_submit_requires_core_fields(client, create_character, missing):
    created = create_character()
    payload = {"characterId": created["id"], "messageContent": "rude", "reason": "other"}
    payload.pop(missing)

    response = client.post("/api/reports", json=payload)

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Missing required fields")


def test_submit_rejects_unknown_reason(create_character, submit_report):
    created = create_character()

    response = submit_report(created["id"], reason="boring")

    assert response.status_code == 400


def test_submit_for_unknown_character(submit_report, db_session):
    response = submit_report("0000000000")

    assert response.status_code == 404
    assert db_session.query(Report).count() == 0


# ============================================================================
# Review
# ============================================================================


@pytest.mark.parametrize("path", ["/api/reports", "/api/reports/stats", "/api/reports/abc"])
def test_review_endpoints_require_admin_key(client, path):
    assert client.get(path).status_code == 401
    assert client.get(path, headers={"x-api-key": "wrong"}).status_code == 401


def test_status_update_requires_admin_key(client):
    assert client.put("/api/reports/abc/status", json={"status": "resolved"}).status_code == 401


def test_list_reports_filters_and_paginates(client, create_character, submit_report, admin_headers):
    first = create_character(name="First")
    second = create_character(name="Second")
    for _ in range(3):
        submit_report(first["id"])
    submit_report(second["id"], reason="other")

    body = client.get("/api/reports", params={"characterId": first["id"], "limit": 2}, headers=admin_headers).json()

    assert body["pagination"] == {"total": 3, "page": 1, "limit": 2, "pages": 2}
    assert len(body["reports"]) == 2
    assert {r["characterId"] for r in body["reports"]} == {first["id"]}

    page_two = client.get("/api/reports", params={"characterId": first["id"], "limit": 2, "page": 2}, headers=admin_headers).json()
    assert len(page_two["reports"]) == 1


def test_list_reports_by_status(client, create_character, submit_report, admin_headers):
    created = create_character()
    kept = submit_report(created["id"]).json()["reportId"]
    closed = submit_report(created["id"]).json()["reportId"]
    client.put(f"/api/reports/{closed}/status", json={"status": "dismissed"}, headers=admin_headers)

    body = client.get("/api/reports", params={"status": "pending"}, headers=admin_headers).json()

    assert [r["id"] for r in body["reports"]] == [kept]


def test_get_unknown_report(client, admin_headers):
    response = client.get("/api/reports/does-not-exist", headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["detail"] == "Report not found"


def test_resolving_records_admin_review(client, create_character, submit_report, admin_headers):
    created = create_character()
    report_id = submit_report(created["id"]).json()["reportId"]

    response = client.put(
        f"/api/reports/{report_id}/status",
        json={"status": "resolved", "notes": "Prompt adjusted"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    report = response.json()["report"]
    assert report["status"] == "resolved"
    review = report["adminReview"]
    assert review["reviewedBy"] == "admin"
    assert review["resolution"] == "resolved"
    assert review["notes"] == "Prompt adjusted"
    assert review["reviewedAt"] is not None


def test_reviewing_status_leaves_review_empty(client, create_character, submit_report, admin_headers):
    created = create_character()
    report_id = submit_report(created["id"]).json()["reportId"]

    response = client.put(f"/api/reports/{report_id}/status", json={"status": "reviewing"}, headers=admin_headers)

    assert response.json()["report"]["status"] == "reviewing"
    assert response.json()["report"]["adminReview"] is None


@pytest.mark.parametrize("payload", [{}, {"status": "archived"}])
def test_invalid_status_is_rejected(client, create_character, submit_report, admin_headers, payload):
    created = create_character()
    report_id = submit_report(created["id"]).json()["reportId"]

    response = client.put(f"/api/reports/{report_id}/status", json=payload, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid status value"


def test_status_update_for_unknown_report(client, admin_headers):
    response = client.put("/api/reports/does-not-exist/status", json={"status": "resolved"}, headers=admin_headers)

    assert response.status_code == 404


# ============================================================================
# Stats
# ============================================================================


def _report(created_at, status="pending", reason="other"):
    return Report(
        character_id="4821937562",
        reporter_id="device",
        message_content="m",
        reason=reason,
        status=status,
        report_metadata={},
        created_at=created_at,
    )


def test_stats_group_by_status_reason_and_day(db_session):
    db_session.add_all([
        _report(datetime(2024, 5, 9, 8, tzinfo=timezone.utc), reason="offensive_language"),
        _report(datetime(2024, 5, 9, 20, tzinfo=timezone.utc), status="resolved"),
        _report(datetime(2024, 5, 10, 9, tzinfo=timezone.utc)),
        _report(datetime(2024, 3, 1, 9, tzinfo=timezone.utc), status="dismissed"),
    ])
    db_session.commit()

    stats = asyncio.run(ReportService(db_session).get_stats(now=datetime(2024, 5, 10, 12, tzinfo=timezone.utc)))

    assert stats.total_reports == 4
    assert stats.status_stats == {"pending": 2, "resolved": 1, "dismissed": 1}
    assert stats.reason_stats == {"offensive_language": 1, "other": 3}
    assert [(d.date, d.count) for d in stats.daily_reports] == [("2024-05-09", 2), ("2024-05-10", 1)]


def test_stats_endpoint(client, create_character, submit_report, admin_headers):
    created = create_character()
    submit_report(created["id"])

    response = client.get("/api/reports/stats", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["totalReports"] == 1
    assert body["statusStats"] == {"pending": 1}
    assert body["reasonStats"] == {"offensive_language": 1}
    assert len(body["dailyReports"]) == 1
