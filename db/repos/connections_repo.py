from __future__ import annotations

import sqlite3
from typing import Dict, List, Optional, Set

from services.errors import PersistenceError


class ConnectionsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def upsert_connection(
        self,
        user_id: str,
        profile_id: int,
        connected_on: Optional[str],
        connected_on_estimated: bool = False,
        commit: bool = True,
    ) -> int:
        """Insert or update the (user, profile) connection; returns connection id."""
        sql = (
            "INSERT INTO connections (user_id, profile_id, connected_on, connected_on_estimated) "
            "VALUES (?, ?, ?, ?) "
            "ON CONFLICT(user_id, profile_id) DO UPDATE SET "
            # A real date from a later import replaces an estimated one, never the reverse
            " connected_on = CASE WHEN connections.connected_on_estimated = 1 AND excluded.connected_on_estimated = 0 "
            "   THEN excluded.connected_on ELSE COALESCE(connections.connected_on, excluded.connected_on) END, "
            " connected_on_estimated = MIN(connections.connected_on_estimated, excluded.connected_on_estimated) "
            "RETURNING id;"
        )
        cur = self.conn.cursor()
        try:
            cur.execute(sql, (user_id, profile_id, connected_on, 1 if connected_on_estimated else 0))
            connection_id = int(cur.fetchone()[0])
        except sqlite3.Error as e:
            raise PersistenceError(f"Connection upsert failed for {user_id}/{profile_id}: {e}") from e
        if commit:
            self.conn.commit()
        return connection_id

    def profile_ids_for_user(self, user_id: str) -> Set[int]:
        cur = self.conn.cursor()
        cur.execute("SELECT profile_id FROM connections WHERE user_id = ?", (user_id,))
        return {int(r[0]) for r in cur.fetchall()}

    def count_for_user(self, user_id: str) -> int:
        cur = self.conn.cursor()
        cur.execute("SELECT COUNT(*) FROM connections WHERE user_id = ?", (user_id,))
        return int(cur.fetchone()[0])

    def connected_on_dates(self, user_id: str) -> List[str]:
        """Non-estimated connection dates for a user."""
        cur = self.conn.cursor()
        cur.execute(
            "SELECT connected_on FROM connections WHERE user_id = ? AND connected_on IS NOT NULL AND connected_on_estimated = 0",
            (user_id,),
        )
        return [r[0] for r in cur.fetchall()]

    def log_upload(self, user_id: str, filename: Optional[str], profiles_count: int, connections_count: int, skipped_count: int) -> int:
        cur = self.conn.cursor()
        cur.execute(
            "INSERT INTO upload_logs (user_id, filename, profiles_count, connections_count, skipped_count) VALUES (?, ?, ?, ?, ?)",
            (user_id, filename, profiles_count, connections_count, skipped_count),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def latest_upload(self, user_id: str) -> Optional[Dict[str, object]]:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT filename, profiles_count, connections_count, skipped_count, uploaded_at FROM upload_logs "
            "WHERE user_id = ? ORDER BY id DESC LIMIT 1",
            (user_id,),
        )
        row = cur.fetchone()
        if not row:
            return None
        keys = ["filename", "profiles_count", "connections_count", "skipped_count", "uploaded_at"]
        return {k: row[i] for i, k in enumerate(keys)}
