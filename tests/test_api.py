"""
Tests for the Flask REST API using the test client and an in-memory store.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from grievance_portal.api.app import create_app
from grievance_portal.api.auth import generate_token, verify_token
from grievance_portal.config import SESSION_JWT_AUDIENCE, SESSION_JWT_SECRET
from grievance_portal.errors import StoreUnavailable

WIFI_SUBMISSION = {
    "category": "Facility",
    "subcategory": "WiFi",
    "title": "No signal in Lab 1",
    "description": "WiFi has been down in Lab 1 since Monday.",
    "details": {"building": "Main Block", "floor": "2nd", "location": "Lab 1"},
}


# ── Helpers ──────────────────────────────────────────────────────────

@pytest.fixture
def client(engine, users):
    app = create_app(engine)
    app.config["TESTING"] = True
    return app.test_client()


def auth(user_id):
    return {"Authorization": f"Bearer {generate_token(user_id)}"}


def submit(client, user_id="u-student", body=None):
    return client.post("/api/grievances", json=body or WIFI_SUBMISSION, headers=auth(user_id))


# ── Tests: tokens ────────────────────────────────────────────────────

def test_verify_token_roundtrip_and_rejections():
    assert verify_token(generate_token("u1"))["sub"] == "u1"
    assert verify_token("garbage") is None

    expired = jwt.encode(
        {"sub": "u1", "aud": SESSION_JWT_AUDIENCE,
         "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        SESSION_JWT_SECRET, algorithm="HS256",
    )
    assert verify_token(expired) is None

    wrong_aud = jwt.encode({"sub": "u1", "aud": "other"}, SESSION_JWT_SECRET, algorithm="HS256")
    assert verify_token(wrong_aud) is None

    wrong_key = jwt.encode({"sub": "u1", "aud": SESSION_JWT_AUDIENCE}, "x" * 32, algorithm="HS256")
    assert verify_token(wrong_key) is None


def test_missing_and_malformed_tokens(client):
    assert client.get("/api/grievances").status_code == 401
    assert client.get("/api/grievances", headers={"Authorization": "Token abc"}).status_code == 401
    assert client.get("/api/grievances", headers={"Authorization": "Bearer nope"}).status_code == 401


# ── Tests: public endpoints ──────────────────────────────────────────

def test_index_health_and_taxonomy(client):
    assert client.get("/").json["status"] == "running"
    assert client.get("/health").json["checks"]["database"] is True
    tax = client.get("/api/taxonomy").json
    assert "WiFi" in tax["categories"]["Facility"]
    assert tax["transitions"]["Resolved"] == ["Closed"]


# ── Tests: identity ──────────────────────────────────────────────────

def test_register_then_profile(client):
    headers = auth("u-new")
    profile = client.get("/api/user/profile", headers=headers).json
    assert profile["user"]["role"] is None

    resp = client.post("/api/auth/register", headers=headers, json={
        "role": "faculty", "full_name": "Dr. Rao", "user_id_number": "F-9", "department": "ME",
    })
    assert resp.status_code == 201
    assert resp.json["user"]["role"] == "faculty"

    again = client.post("/api/auth/register", headers=headers, json={"role": "admin"})
    assert again.status_code == 409
    assert client.get("/api/user/profile", headers=headers).json["user"]["role"] == "faculty"


def test_register_rejects_bad_role(client):
    resp = client.post("/api/auth/register", headers=auth("u-new"), json={"role": "dean"})
    assert resp.status_code == 400


def test_role_gated_views_fail_closed_without_role(client):
    headers = auth("u-new")
    assert client.get("/api/grievances", headers=headers).status_code == 403
    assert client.get("/api/stats", headers=headers).status_code == 403
    assert submit(client, "u-new").status_code == 403


# ── Tests: grievances ────────────────────────────────────────────────

def test_submit_and_list_own(client):
    resp = submit(client)
    assert resp.status_code == 201
    g = resp.json["grievance"]
    assert g["status"] == "Submitted"
    assert g["submitted_by"] == "u-student"
    assert g["grievance_id"].startswith("GRV-")

    mine = client.get("/api/grievances", headers=auth("u-student")).json
    assert [x["id"] for x in mine["grievances"]] == [g["id"]]

    theirs = client.get("/api/grievances", headers=auth("u-student2")).json
    assert theirs["grievances"] == []


def test_submit_validation_errors(client):
    bad = dict(WIFI_SUBMISSION, category="Academic", subcategory="Nonexistent")
    resp = submit(client, body=bad)
    assert resp.status_code == 400
    assert resp.json["type"] == "InvalidSubcategory"

    missing = {k: v for k, v in WIFI_SUBMISSION.items() if k != "title"}
    resp = submit(client, body=missing)
    assert resp.status_code == 400
    assert resp.json["type"] == "MissingRequiredField"

    resp = submit(client, body=dict(WIFI_SUBMISSION, category="Sports"))
    assert resp.json["type"] == "InvalidCategory"


def test_submit_requires_json(client):
    resp = client.post("/api/grievances", data="x", headers=auth("u-student"))
    assert resp.status_code == 400


def test_admin_list_includes_submitter_and_filters(client):
    submit(client, "u-student")
    submit(client, "u-student2", dict(WIFI_SUBMISSION, category="Examination",
                                      subcategory="Results Delay", title="Results late"))
    headers = auth("u-admin")

    everything = client.get("/api/grievances", headers=headers).json
    assert everything["count"] == 2
    assert {g["submitter"]["full_name"] for g in everything["grievances"]} == {"Asha Rao", "Ravi Kumar"}

    exams = client.get("/api/grievances?category=examination", headers=headers).json
    assert [g["title"] for g in exams["grievances"]] == ["Results late"]

    by_name = client.get("/api/grievances?q=asha", headers=headers).json
    assert [g["title"] for g in by_name["grievances"]] == ["No signal in Lab 1"]


def test_get_single_respects_visibility(client):
    g = submit(client).json["grievance"]
    assert client.get(f"/api/grievances/{g['id']}", headers=auth("u-student")).status_code == 200
    assert client.get(f"/api/grievances/{g['grievance_id']}", headers=auth("u-admin")).json[
        "allowed_next"] == ["In Progress", "Resolved", "Closed"]
    assert client.get(f"/api/grievances/{g['id']}", headers=auth("u-student2")).status_code == 404


# ── Tests: status changes ────────────────────────────────────────────

def test_status_scenario(client):
    g = submit(client).json["grievance"]
    url = f"/api/grievances/{g['id']}/status"

    resp = client.patch(url, json={"status": "In Progress"}, headers=auth("u-admin"))
    assert resp.status_code == 200
    assert resp.json["grievance"]["status"] == "In Progress"
    assert resp.json["changed"] is True

    resp = client.patch(url, json={"status": "Resolved"}, headers=auth("u-student"))
    assert resp.status_code == 403

    resp = client.patch(url, json={"status": "Closed"}, headers=auth("u-admin"))
    assert resp.json["grievance"]["status"] == "Closed"

    resp = client.patch(url, json={"status": "In Progress"}, headers=auth("u-admin"))
    assert resp.status_code == 409
    assert resp.json["current_status"] == "Closed"
    assert resp.json["allowed"] == []


def test_status_noop_and_faculty_denied(client):
    g = submit(client).json["grievance"]
    url = f"/api/grievances/{g['id']}/status"

    resp = client.patch(url, json={"status": "Submitted"}, headers=auth("u-admin"))
    assert resp.status_code == 200
    assert resp.json["changed"] is False

    assert client.patch(url, json={"status": "Closed"}, headers=auth("u-faculty")).status_code == 403
    assert client.patch(url, json={}, headers=auth("u-admin")).status_code == 400
    assert client.patch("/api/grievances/nope/status", json={"status": "Closed"},
                        headers=auth("u-admin")).status_code == 404


def test_status_change_is_audited(client, capsys):
    g = submit(client).json["grievance"]
    client.patch(f"/api/grievances/{g['id']}/status", json={"status": "Resolved"},
                 headers=auth("u-admin"))
    assert "[audit]" in capsys.readouterr().out


# ── Tests: stats ─────────────────────────────────────────────────────

def test_stats_are_scoped(client):
    submit(client, "u-student")
    submit(client, "u-student2")
    assert client.get("/api/stats", headers=auth("u-student")).json["summary"]["total"] == 1
    admin = client.get("/api/stats", headers=auth("u-admin")).json["summary"]
    assert admin["total"] == 2
    assert admin["by_status"]["Submitted"] == 2


# ── Tests: store outages ─────────────────────────────────────────────

def test_store_unavailable_maps_to_503(client, monkeypatch):
    from grievance_portal.api import routes

    def down(*args, **kwargs):
        raise StoreUnavailable("connection timed out")

    monkeypatch.setattr(routes, "list_visible", down)
    resp = client.get("/api/grievances", headers=auth("u-student"))
    assert resp.status_code == 503


# ── Tests: malformed requests ────────────────────────────────────────

@pytest.mark.parametrize("body", [["x"], "text", 5, None])
def test_non_object_bodies_are_rejected(client, body):
    headers = auth("u-student")
    assert client.post("/api/grievances", json=body, headers=headers).status_code == 400
    assert client.post("/api/auth/register", json=body, headers=auth("u-new")).status_code == 400

    g = submit(client).json["grievance"]
    resp = client.patch(f"/api/grievances/{g['id']}/status", json=body, headers=auth("u-admin"))
    assert resp.status_code == 400


@pytest.mark.parametrize("status", [5, ["Closed"], {"s": "Closed"}, "   ", True])
def test_status_must_be_a_string(client, status):
    g = submit(client).json["grievance"]
    resp = client.patch(f"/api/grievances/{g['id']}/status", json={"status": status},
                        headers=auth("u-admin"))
    assert resp.status_code == 400
    assert client.get(f"/api/grievances/{g['id']}", headers=auth("u-admin")).json[
        "grievance"]["status"] == "Submitted"


def test_status_value_is_trimmed(client):
    g = submit(client).json["grievance"]
    resp = client.patch(f"/api/grievances/{g['id']}/status", json={"status": " Closed "},
                        headers=auth("u-admin"))
    assert resp.json["grievance"]["status"] == "Closed"


@pytest.mark.parametrize("max_rows", ["-1", "0"])
def test_max_rows_below_one_is_rejected(client, max_rows):
    submit(client)
    submit(client)
    resp = client.get(f"/api/grievances?max_rows={max_rows}", headers=auth("u-student"))
    assert resp.status_code == 400


def test_max_rows_truncates_from_the_oldest(client):
    first = submit(client).json["grievance"]
    second = submit(client).json["grievance"]
    resp = client.get("/api/grievances?max_rows=1", headers=auth("u-student")).json
    assert resp["count"] == 2
    assert resp["truncated"] is True
    assert len(resp["grievances"]) == 1
    assert resp["grievances"][0]["id"] in {first["id"], second["id"]}
