from __future__ import annotations

import json
import sqlite3
from typing import Any, Dict, Iterable, List, Optional

from models import ProfileRecord
from services.errors import PersistenceError


ENRICHMENT_FIELDS = (
    "role_level",
    "job_function",
    "industry",
    "company_size",
    "skills",
    "company_location",
    "is_public",
    "founded_year",
)


def rows_as_dicts(cur: sqlite3.Cursor) -> List[Dict[str, Any]]:
    cols = [d[0] for d in cur.description]
    return [dict(zip(cols, row)) for row in cur.fetchall()]


def _load_json_list(text: Optional[str]) -> List[Any]:
    if not text:
        return []
    try:
        value = json.loads(text)
    except ValueError:
        return []
    return value if isinstance(value, list) else []


def profile_from_row(row: Dict[str, Any]) -> ProfileRecord:
    data = dict(row)
    data["tags"] = _load_json_list(data.pop("tags_json", None))
    data["skills"] = _load_json_list(data.pop("skills_json", None))
    if data.get("is_public") is not None:
        data["is_public"] = bool(data["is_public"])
    if data.get("connected_on_estimated") is not None:
        data["connected_on_estimated"] = bool(data["connected_on_estimated"])
    return ProfileRecord.model_validate(data)


class ProfilesRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def upsert_profile(self, profile: ProfileRecord, commit: bool = True) -> int:
        """Insert or update a profile by profile_url; returns profile id.

        The stored name is kept once set; other non-empty incoming scalars win,
        tags are unioned, enrichment is never touched.
        """
        cur = self.conn.cursor()
        try:
            cur.execute("SELECT tags_json FROM profiles WHERE profile_url = ?", (profile.profile_url,))
            row = cur.fetchone()
            tags = _load_json_list(row[0]) if row else []
            for tag in profile.tags:
                if tag not in tags:
                    tags.append(tag)
            sql = (
                "INSERT INTO profiles (full_name, profile_url, email, company, title, tags_json) "
                "VALUES (?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(profile_url) DO UPDATE SET "
                " full_name = COALESCE(NULLIF(profiles.full_name, ''), excluded.full_name), "
                " email = COALESCE(excluded.email, profiles.email), "
                " company = COALESCE(excluded.company, profiles.company), "
                " title = COALESCE(excluded.title, profiles.title), "
                " tags_json = excluded.tags_json, "
                " updated_at = datetime('now') "
                "RETURNING id;"
            )
            cur.execute(sql, (
                profile.full_name,
                profile.profile_url,
                profile.email,
                profile.company,
                profile.title,
                json.dumps(tags, ensure_ascii=False),
            ))
            profile_id = int(cur.fetchone()[0])
        except sqlite3.Error as e:
            raise PersistenceError(f"Profile upsert failed for {profile.profile_url}: {e}") from e
        if commit:
            self.conn.commit()
        return profile_id

    def get(self, profile_id: int) -> Optional[ProfileRecord]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM profiles WHERE id = ?", (profile_id,))
        rows = rows_as_dicts(cur)
        return profile_from_row(rows[0]) if rows else None

    def get_by_url(self, profile_url: str) -> Optional[ProfileRecord]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM profiles WHERE profile_url = ?", (profile_url,))
        rows = rows_as_dicts(cur)
        return profile_from_row(rows[0]) if rows else None

    def get_many(self, profile_ids: Iterable[int]) -> Dict[int, ProfileRecord]:
        ids = sorted(set(int(i) for i in profile_ids))
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        cur = self.conn.cursor()
        cur.execute(f"SELECT * FROM profiles WHERE id IN ({placeholders})", tuple(ids))
        return {int(r["id"]): profile_from_row(r) for r in rows_as_dicts(cur)}

    def list_for_user(self, user_id: str) -> List[ProfileRecord]:
        """Profiles connected to a user, with the connection's date fields."""
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM v_user_profiles WHERE user_id = ? ORDER BY id", (user_id,))
        out = []
        for row in rows_as_dicts(cur):
            row.pop("user_id", None)
            out.append(profile_from_row(row))
        return out

    def select_pending_enrichment(self, user_id: Optional[str] = None, limit: Optional[int] = None) -> List[ProfileRecord]:
        """Profiles with enriched_at IS NULL, optionally restricted to one user's connections."""
        params: List[Any] = []
        if user_id:
            sql = (
                "SELECT p.* FROM profiles p JOIN connections c ON c.profile_id = p.id "
                "WHERE c.user_id = ? AND p.enriched_at IS NULL ORDER BY p.id"
            )
            params.append(user_id)
        else:
            sql = "SELECT * FROM profiles WHERE enriched_at IS NULL ORDER BY id"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        cur = self.conn.cursor()
        cur.execute(sql, tuple(params))
        return [profile_from_row(r) for r in rows_as_dicts(cur)]

    def save_enrichment(self, profile_id: int, fields: Dict[str, Any], commit: bool = True) -> None:
        """Write the enrichment field set; enriched_at is stamped once and never cleared."""
        columns: List[str] = []
        values: List[Any] = []
        for key in ENRICHMENT_FIELDS:
            if key not in fields:
                continue
            value = fields[key]
            if key == "skills":
                columns.append("skills_json = ?")
                values.append(json.dumps(list(value or []), ensure_ascii=False))
            elif key == "is_public":
                columns.append("is_public = ?")
                values.append(None if value is None else (1 if value else 0))
            else:
                columns.append(f"{key} = ?")
                values.append(value)
        columns.append("enriched_at = COALESCE(enriched_at, datetime('now'))")
        columns.append("updated_at = datetime('now')")
        sql = f"UPDATE profiles SET {', '.join(columns)} WHERE id = ?;"
        values.append(profile_id)
        try:
            self.conn.execute(sql, tuple(values))
        except sqlite3.Error as e:
            raise PersistenceError(f"Enrichment write failed for profile {profile_id}: {e}") from e
        if commit:
            self.conn.commit()

    def count(self) -> int:
        cur = self.conn.cursor()
        cur.execute("SELECT COUNT(*) FROM profiles")
        return int(cur.fetchone()[0])
