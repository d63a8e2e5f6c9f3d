"""
Integration tests for the subscribe / unsubscribe / export endpoints.
Run with: pytest tests/test_subscribers.py -v
"""

import csv
import io
import re

import pytest

from emaillist import create_app
from emaillist.core.database import StorageError
from emaillist.modules.subscribers.routes import export_filename, render_csv

TEST_API_KEY = "test-api-key"


def _fail(*args, **kwargs):
    raise StorageError("disk I/O error")


def _export(client, key=TEST_API_KEY):
    return client.get("/api/emails", query_string={"API_KEY": key})


def _csv_rows(response):
    return list(csv.DictReader(io.StringIO(response.get_data(as_text=True))))


# ---------------------------------------------------------------------------
# POST /api/subscribe
# ---------------------------------------------------------------------------

def test_subscribe_success(client, store):
    response = client.post("/api/subscribe", json={"email": "user@example.com"})

    assert response.status_code == 200
    assert response.get_json() == {"message": "Subscribed successfully"}
    assert store.get("user@example.com") is not None


def test_subscribe_twice_is_rejected(client, store):
    assert client.post("/api/subscribe", json={"email": "user@example.com"}).status_code == 200

    response = client.post("/api/subscribe", json={"email": "user@example.com"})

    assert response.status_code == 400
    # Legacy wording kept for existing clients: error status, success text
    assert response.get_json() == {"error": "Subscribed successfully"}
    assert store.list_all() == ["user@example.com"]


@pytest.mark.parametrize("body", [{}, {"email": None}, {"email": ""}, {"other": "x@example.com"}])
def test_subscribe_missing_email(client, store, body):
    response = client.post("/api/subscribe", json=body)

    assert response.status_code == 400
    assert response.get_json() == {"error": "Email is required"}
    assert store.count() == 0


def test_subscribe_without_json_body(client, store):
    response = client.post("/api/subscribe", data="email=user@example.com",
                           content_type="application/x-www-form-urlencoded")

    assert response.status_code == 400
    assert response.get_json() == {"error": "Email is required"}
    assert store.count() == 0


@pytest.mark.parametrize("email", ["not-an-email", "user@", "user @example.com", 42])
def test_subscribe_invalid_email(client, store, email):
    response = client.post("/api/subscribe", json={"email": email})

    assert response.status_code == 400
    assert response.get_json() == {"error": "Invalid email address"}
    assert store.count() == 0


@pytest.mark.parametrize("email", [
    "o'brien@example.com",
    "a!b#c@example.com",
    "user@example.xn--p1ai",
    "user@xn--80ak6aa92e.com",
])
def test_subscribe_accepts_rfc_addresses(client, store, email):
    response = client.post("/api/subscribe", json={"email": email})

    assert response.status_code == 200
    assert response.get_json() == {"message": "Subscribed successfully"}
    assert store.list_all() == [email]


def test_subscribe_keeps_case(client, store):
    client.post("/api/subscribe", json={"email": "Someone@Example.com"})
    client.post("/api/subscribe", json={"email": "someone@example.com"})

    assert store.list_all() == ["Someone@Example.com", "someone@example.com"]


def test_subscribe_storage_failure(client, ext, monkeypatch):
    monkeypatch.setattr(ext.store, "insert", _fail)

    response = client.post("/api/subscribe", json={"email": "user@example.com"})

    assert response.status_code == 500
    assert response.get_json() == {"error": "Failed to save email"}
    assert "disk I/O" not in response.get_data(as_text=True)

    errors = ext.log_service.recent(level="ERROR")
    assert errors and errors[0]["source"] == "subscribers"
    assert "disk I/O error" in errors[0]["details"]


# ---------------------------------------------------------------------------
# POST /api/unsubscribe
# ---------------------------------------------------------------------------

def test_subscribe_then_unsubscribe(client, store):
    assert client.post("/api/subscribe", json={"email": "user@example.com"}).status_code == 200

    response = client.post("/api/unsubscribe", json={"email": "user@example.com"})

    assert response.status_code == 200
    assert response.get_json() == {"message": "Unsubscribed successfully"}
    assert store.get("user@example.com") is None

    export = _export(client)
    assert export.status_code == 200
    assert "user@example.com" not in export.get_data(as_text=True)


def test_unsubscribe_unknown_email(client, store, ext):
    store.insert("keep@example.com")

    response = client.post("/api/unsubscribe", json={"email": "ghost@example.com"})

    assert response.status_code == 404
    # Legacy wording kept for existing clients: 404 status, success text
    assert response.get_json() == {"error": "Unsubscribed successfully"}
    assert store.list_all() == ["keep@example.com"]
    # Not found is a normal outcome, not an error
    assert ext.log_service.recent(level="ERROR") == []


def test_unsubscribe_missing_email(client):
    response = client.post("/api/unsubscribe", json={})

    assert response.status_code == 400
    assert response.get_json() == {"error": "Email is required"}


def test_unsubscribe_does_not_validate_format(client, store):
    store.insert("legacy entry")

    response = client.post("/api/unsubscribe", json={"email": "legacy entry"})

    assert response.status_code == 200
    assert store.count() == 0


def test_unsubscribe_is_exact_match(client, store):
    store.insert("User@Example.com")

    response = client.post("/api/unsubscribe", json={"email": "user@example.com"})

    assert response.status_code == 404
    assert store.count() == 1


def test_unsubscribe_storage_failure(client, ext, monkeypatch):
    monkeypatch.setattr(ext.store, "delete", _fail)

    response = client.post("/api/unsubscribe", json={"email": "user@example.com"})

    assert response.status_code == 500
    assert response.get_json() == {"error": "Failed to unsubscribe"}


# ---------------------------------------------------------------------------
# GET /api/emails
# ---------------------------------------------------------------------------

def test_export_requires_api_key(client, store):
    store.insert("a@x.com")

    for response in (client.get("/api/emails"), _export(client, "wrong-key"), _export(client, "")):
        assert response.status_code == 401
        assert response.get_json() == {"error": "Unauthorized"}


def test_export_key_comparison_is_exact(client):
    assert _export(client, TEST_API_KEY.upper()).status_code == 401
    assert _export(client, TEST_API_KEY + " ").status_code == 401


def test_export_without_server_key_always_unauthorized(tmp_db_dir):
    app = create_app({"TESTING": True, "DB_DIR": tmp_db_dir, "API_KEY": None})
    client = app.test_client()

    assert client.get("/api/emails").status_code == 401
    assert _export(client, "").status_code == 401
    assert _export(client, "None").status_code == 401


def test_export_does_not_reach_store_when_unauthorized(client, ext, monkeypatch):
    monkeypatch.setattr(ext.store, "list_all", _fail)

    assert _export(client, "wrong-key").status_code == 401


def test_export_csv(client, store):
    store.insert("a@x.com")
    store.insert("b@y.com")

    response = _export(client)

    assert response.status_code == 200
    assert response.mimetype == "text/csv"
    disposition = response.headers["Content-Disposition"]
    assert re.fullmatch(
        r"attachment; filename=emails_\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}\.\d{3}Z\.csv",
        disposition,
    ), disposition

    rows = _csv_rows(response)
    assert {row["email"] for row in rows} == {"a@x.com", "b@y.com"}
    assert len(rows) == 2
    assert response.get_data(as_text=True).splitlines()[0] == "email"


def test_export_empty_list_has_header(client):
    response = _export(client)

    assert response.status_code == 200
    assert response.get_data(as_text=True) == "email\n"
    assert _csv_rows(response) == []


def test_export_storage_failure(client, ext, monkeypatch):
    monkeypatch.setattr(ext.store, "list_all", _fail)

    response = _export(client)

    assert response.status_code == 500
    assert response.mimetype == "text/plain"
    assert response.get_data(as_text=True) == "Failed to fetch emails"


# ---------------------------------------------------------------------------
# Export helpers
# ---------------------------------------------------------------------------

def test_export_filename_replaces_colons():
    assert export_filename("2026-10-19T08:15:30.123Z") == "emails_2026-10-19T08-15-30.123Z.csv"


def test_render_csv_quotes_when_needed():
    text = render_csv(['"quoted"@example.com', "plain@example.com"])
    rows = list(csv.reader(io.StringIO(text)))
    assert rows == [["email"], ['"quoted"@example.com'], ["plain@example.com"]]
