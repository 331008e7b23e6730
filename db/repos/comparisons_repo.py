from __future__ import annotations

import json
import sqlite3
from typing import Any, Dict, List, Optional

from models import ComparisonResult
from services.errors import NotFoundError, PersistenceError


class ComparisonsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def create_session(self, user_a_id: str, user_b_id: str) -> int:
        cur = self.conn.cursor()
        cur.execute(
            "INSERT INTO comparison_sessions (user_a_id, user_b_id, status) VALUES (?, ?, 'pending')",
            (user_a_id, user_b_id),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def get_session(self, session_id: int) -> Dict[str, Any]:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT id, user_a_id, user_b_id, status, created_at, completed_at FROM comparison_sessions WHERE id = ?",
            (session_id,),
        )
        row = cur.fetchone()
        if not row:
            raise NotFoundError(f"Comparison session {session_id} not found")
        keys = ["id", "user_a_id", "user_b_id", "status", "created_at", "completed_at"]
        return {k: row[i] for i, k in enumerate(keys)}

    def set_status(self, session_id: int, status: str) -> None:
        completed = ", completed_at = datetime('now')" if status == "completed" else ""
        self.conn.execute(f"UPDATE comparison_sessions SET status = ?{completed} WHERE id = ?", (status, session_id))
        self.conn.commit()

    def add_result(self, session_id: int, result: ComparisonResult, commit: bool = True) -> None:
        try:
            self.conn.execute(
                (
                    "INSERT INTO comparison_results (session_id, result_type, profile_a_id, profile_b_id, score, details_json) "
                    "VALUES (?, ?, ?, ?, ?, ?)"
                ),
                (
                    session_id,
                    result.result_type,
                    result.profile_a_id,
                    result.profile_b_id,
                    float(result.score),
                    json.dumps(result.details, ensure_ascii=False),
                ),
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"Comparison result write failed for session {session_id}: {e}") from e
        if commit:
            self.conn.commit()

    def list_results(self, session_id: int, result_type: Optional[str] = None) -> List[ComparisonResult]:
        sql = (
            "SELECT result_type, profile_a_id, profile_b_id, score, details_json FROM comparison_results "
            "WHERE session_id = ?"
        )
        params: List[Any] = [session_id]
        if result_type:
            sql += " AND result_type = ?"
            params.append(result_type)
        sql += " ORDER BY score DESC, id"
        cur = self.conn.cursor()
        cur.execute(sql, tuple(params))
        return [
            ComparisonResult(
                result_type=rt,
                profile_a_id=pa,
                profile_b_id=pb,
                score=score,
                details=json.loads(details or "{}"),
            )
            for rt, pa, pb, score, details in cur.fetchall()
        ]
