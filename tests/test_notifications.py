from __future__ import annotations

import requests

from db.repos.notifications_repo import NotificationsRepo
from services.notifications import Notifier, render


class _FakeResponse:
    def __init__(self, status: int = 202) -> None:
        self.status_code = status

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class _FakeSession:
    def __init__(self, status: int = 202) -> None:
        self.status = status
        self.posts = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.posts.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        return _FakeResponse(self.status)


def _email_log(conn):
    cur = conn.cursor()
    cur.execute("SELECT template_name, recipient, status FROM email_logs ORDER BY id")
    return cur.fetchall()


def test_render_substitutes_known_keys_only():
    assert render("Hi {{name}}, {{ count }} new {{unknown}}", {"name": "Jane", "count": 3}) == "Hi Jane, 3 new {{unknown}}"


def test_missing_recipient_is_skipped(db_conn):
    session = _FakeSession()
    assert Notifier(db_conn, session=session).send("ghost", "enrichment_complete", {"enrichedCount": 1}) is False
    assert session.posts == []
    assert _email_log(db_conn) == [("enrichment_complete", None, "skipped")]


def test_without_api_key_only_logs(db_conn):
    NotificationsRepo(db_conn).upsert_user("u1", "jane@example.com", "Jane")
    session = _FakeSession()
    assert Notifier(db_conn, session=session).send("u1", "graph_complete", {"edgeCount": 12}) is True
    assert session.posts == []
    assert _email_log(db_conn) == [("graph_complete", "jane@example.com", "logged")]


def test_sendgrid_post_and_failure(db_conn, monkeypatch):
    monkeypatch.setenv("SENDGRID_API_KEY", "SG.test")
    monkeypatch.setenv("FROM_EMAIL", "noreply@example.com")
    from config.settings import get_settings
    get_settings.cache_clear()
    NotificationsRepo(db_conn).upsert_user("u1", "jane@example.com", "Jane")
    NotificationsRepo(db_conn).save_template("custom", "Hello {{name}}", "<p>{{name}}</p>", "Hi {{name}}")

    session = _FakeSession()
    assert Notifier(db_conn, session=session).send("u1", "custom", {"name": "Jane"}) is True
    post = session.posts[0]
    assert post["headers"]["Authorization"] == "Bearer SG.test"
    assert post["json"]["personalizations"][0]["subject"] == "Hello Jane"
    assert post["json"]["content"][0]["value"] == "Hi Jane"

    assert Notifier(db_conn, session=_FakeSession(status=500)).send("u1", "custom", {"name": "Jane"}) is False
    assert [row[2] for row in _email_log(db_conn)] == ["sent", "error"]
