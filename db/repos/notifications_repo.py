from __future__ import annotations

import sqlite3
from typing import Dict, Optional


class NotificationsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def upsert_user(self, user_id: str, email: Optional[str], full_name: Optional[str] = None) -> None:
        self.conn.execute(
            (
                "INSERT INTO users (user_id, email, full_name) VALUES (?, ?, ?) "
                "ON CONFLICT(user_id) DO UPDATE SET "
                " email = COALESCE(excluded.email, users.email), "
                " full_name = COALESCE(excluded.full_name, users.full_name)"
            ),
            (user_id, email, full_name),
        )
        self.conn.commit()

    def get_user(self, user_id: str) -> Optional[Dict[str, Optional[str]]]:
        cur = self.conn.cursor()
        cur.execute("SELECT user_id, email, full_name FROM users WHERE user_id = ?", (user_id,))
        row = cur.fetchone()
        if not row:
            return None
        return {"user_id": row[0], "email": row[1], "full_name": row[2]}

    def get_template(self, name: str) -> Optional[Dict[str, Optional[str]]]:
        cur = self.conn.cursor()
        cur.execute("SELECT subject, html_content, text_content FROM email_templates WHERE name = ?", (name,))
        row = cur.fetchone()
        if not row:
            return None
        return {"subject": row[0], "html_content": row[1], "text_content": row[2]}

    def save_template(self, name: str, subject: str, html_content: str, text_content: Optional[str] = None) -> None:
        self.conn.execute(
            (
                "INSERT INTO email_templates (name, subject, html_content, text_content) VALUES (?, ?, ?, ?) "
                "ON CONFLICT(name) DO UPDATE SET subject = excluded.subject, "
                " html_content = excluded.html_content, text_content = excluded.text_content"
            ),
            (name, subject, html_content, text_content),
        )
        self.conn.commit()

    def log_email(self, user_id: str, template_name: str, recipient: Optional[str], status: str, error: Optional[str] = None) -> None:
        self.conn.execute(
            "INSERT INTO email_logs (user_id, template_name, recipient, status, error) VALUES (?, ?, ?, ?, ?)",
            (user_id, template_name, recipient, status, error),
        )
        self.conn.commit()
