from __future__ import annotations

import html
import logging
import re
import sqlite3
from typing import Any, Dict, Optional

import requests

from config.settings import get_settings
from db.repos.notifications_repo import NotificationsRepo


logger = logging.getLogger(__name__)

# Used when the email_templates table has no row for the name
DEFAULT_TEMPLATES: Dict[str, Dict[str, str]] = {
    "enrichment_complete": {
        "subject": "Your connections have been enriched",
        "text_content": (
            "Enrichment complete.\n\n"
            "{{enrichedCount}} of your connections now carry seniority, job function, industry, "
            "company size and skills.\n"
        ),
    },
    "graph_complete": {
        "subject": "Your network graph is ready",
        "text_content": "Your network graph was rebuilt with {{edgeCount}} relationships.\n",
    },
    "comparison_complete": {
        "subject": "Your network comparison is ready",
        "text_content": (
            "Your network comparison with {{otherUserName}} is complete.\n\n"
            "- {{mutualConnectionsCount}} mutual connections\n"
            "- {{potentialIntrosCount}} potential introductions\n"
            "- {{overlappingTagsCount}} overlapping tags\n"
        ),
    },
}

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def render(template: str, data: Dict[str, Any]) -> str:
    """Substitute ``{{key}}`` placeholders; unknown keys are left as-is."""
    def _sub(m: re.Match) -> str:
        key = m.group(1)
        return str(data[key]) if key in data else m.group(0)

    return _PLACEHOLDER.sub(_sub, template or "")


class Notifier:
    """Fire-and-forget templated email; every attempt lands in email_logs."""

    def __init__(self, conn: sqlite3.Connection, session: Optional[requests.Session] = None) -> None:
        self.repo = NotificationsRepo(conn)
        self.settings = get_settings()
        self.session = session or requests.Session()

    def _template(self, name: str) -> Optional[Dict[str, Optional[str]]]:
        stored = self.repo.get_template(name)
        if stored:
            return stored
        default = DEFAULT_TEMPLATES.get(name)
        if not default:
            return None
        return {
            "subject": default["subject"],
            "text_content": default["text_content"],
            "html_content": "<pre>" + html.escape(default["text_content"]) + "</pre>",
        }

    def send(self, user_id: str, template_name: str, data: Optional[Dict[str, Any]] = None) -> bool:
        data = data or {}
        user = self.repo.get_user(user_id)
        recipient = (user or {}).get("email")
        template = self._template(template_name)
        if not recipient or not template:
            reason = "no recipient email" if not recipient else "unknown template"
            logger.info(f"Notification {template_name} for {user_id} not sent: {reason}", extra={"step": "notify", "status": "skipped"})
            self.repo.log_email(user_id, template_name, recipient, "skipped", reason)
            return False

        subject = render(template.get("subject") or "", data)
        text_content = render(template.get("text_content") or "", data)
        html_content = render(template.get("html_content") or "", data)

        if not self.settings.sendgrid_api_key:
            logger.info(f"SENDGRID_API_KEY not set; logged {template_name} for {recipient}", extra={"step": "notify", "status": "dry_run"})
            self.repo.log_email(user_id, template_name, recipient, "logged")
            return True

        payload = {
            "personalizations": [{"to": [{"email": recipient}], "subject": subject}],
            "from": {"email": self.settings.from_email, "name": self.settings.from_name},
            "content": [
                {"type": "text/plain", "value": text_content},
                {"type": "text/html", "value": html_content},
            ],
        }
        try:
            resp = self.session.post(
                self.settings.sendgrid_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.settings.sendgrid_api_key}"},
                timeout=self.settings.http_timeout_seconds,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"Notification {template_name} failed for {user_id}: {e}", extra={"step": "notify", "status": "error", "provider": "sendgrid"})
            self.repo.log_email(user_id, template_name, recipient, "error", str(e))
            return False
        self.repo.log_email(user_id, template_name, recipient, "sent")
        logger.info(f"Sent {template_name} to {recipient}", extra={"step": "notify", "status": "ok", "provider": "sendgrid"})
        return True
