from __future__ import annotations

import json
import sqlite3
from typing import Any, Dict, List, Optional, Set

from models import GraphEdge, LinkPrediction
from services.errors import NotFoundError, PersistenceError


class GraphRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # --- Nodes ---
    def upsert_node(
        self,
        node_id: str,
        node_type: str,
        user_id: str,
        properties: Optional[Dict[str, Any]] = None,
        commit: bool = True,
    ) -> None:
        """Insert or update a node, unioning the contributing user into source_user_ids."""
        cur = self.conn.cursor()
        try:
            cur.execute("SELECT source_user_ids_json FROM graph_nodes WHERE node_id = ?", (node_id,))
            row = cur.fetchone()
            owners: List[str] = json.loads(row[0]) if row and row[0] else []
            if user_id not in owners:
                owners.append(user_id)
            cur.execute(
                (
                    "INSERT INTO graph_nodes (node_id, type, properties_json, source_user_ids_json) VALUES (?, ?, ?, ?) "
                    "ON CONFLICT(node_id) DO UPDATE SET "
                    " properties_json = COALESCE(excluded.properties_json, graph_nodes.properties_json), "
                    " source_user_ids_json = excluded.source_user_ids_json, "
                    " updated_at = datetime('now')"
                ),
                (
                    node_id,
                    node_type,
                    json.dumps(properties, ensure_ascii=False) if properties is not None else None,
                    json.dumps(sorted(owners)),
                ),
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"Node upsert failed for {node_id}: {e}") from e
        if commit:
            self.conn.commit()

    def map_node_profile(self, node_id: str, profile_id: int, user_id: str, commit: bool = True) -> None:
        try:
            self.conn.execute(
                "INSERT OR IGNORE INTO graph_node_profiles (node_id, profile_id, user_id) VALUES (?, ?, ?)",
                (node_id, profile_id, user_id),
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"Node mapping failed for {node_id}: {e}") from e
        if commit:
            self.conn.commit()

    def node_for_profile(self, profile_id: int) -> str:
        cur = self.conn.cursor()
        cur.execute("SELECT node_id FROM graph_node_profiles WHERE profile_id = ? LIMIT 1", (profile_id,))
        row = cur.fetchone()
        if not row:
            raise NotFoundError(f"No graph node mapped for profile {profile_id}")
        return str(row[0])

    def all_profile_nodes(self) -> Dict[str, int]:
        """node_id -> profile_id for every mapped profile node."""
        cur = self.conn.cursor()
        cur.execute("SELECT DISTINCT node_id, profile_id FROM graph_node_profiles ORDER BY profile_id")
        return {str(n): int(p) for n, p in cur.fetchall()}

    def profile_owners(self) -> Dict[str, Set[str]]:
        """node_id -> set of users whose imports contributed the node (all users)."""
        cur = self.conn.cursor()
        cur.execute("SELECT node_id, user_id FROM graph_node_profiles")
        owners: Dict[str, Set[str]] = {}
        for node_id, user_id in cur.fetchall():
            owners.setdefault(str(node_id), set()).add(str(user_id))
        return owners

    def source_user_ids(self, node_id: str) -> List[str]:
        cur = self.conn.cursor()
        cur.execute("SELECT source_user_ids_json FROM graph_nodes WHERE node_id = ?", (node_id,))
        row = cur.fetchone()
        if not row:
            raise NotFoundError(f"Unknown graph node {node_id}")
        return json.loads(row[0] or "[]")

    def set_embedding(self, node_id: str, vector: List[float], commit: bool = True) -> None:
        try:
            self.conn.execute(
                "UPDATE graph_nodes SET embedding_json = ?, updated_at = datetime('now') WHERE node_id = ?",
                (json.dumps(vector), node_id),
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"Embedding write failed for {node_id}: {e}") from e
        if commit:
            self.conn.commit()

    def embeddings(self) -> Dict[str, List[float]]:
        cur = self.conn.cursor()
        cur.execute("SELECT node_id, embedding_json FROM graph_nodes WHERE embedding_json IS NOT NULL")
        return {str(n): json.loads(e) for n, e in cur.fetchall()}

    # --- Edges ---
    def upsert_edge(self, edge: GraphEdge, commit: bool = True) -> None:
        """Insert or update an edge keyed by (source, target, type)."""
        try:
            self.conn.execute(
                (
                    "INSERT INTO graph_edges (source_id, target_id, edge_type, weight, properties_json) VALUES (?, ?, ?, ?, ?) "
                    "ON CONFLICT(source_id, target_id, edge_type) DO UPDATE SET "
                    " weight = excluded.weight, "
                    " properties_json = excluded.properties_json"
                ),
                (
                    edge.source_id,
                    edge.target_id,
                    edge.edge_type,
                    float(edge.weight),
                    json.dumps(edge.properties, ensure_ascii=False),
                ),
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"Edge upsert failed for {edge.source_id}->{edge.target_id} ({edge.edge_type}): {e}") from e
        if commit:
            self.conn.commit()

    def edges_touching(self, node_id: str) -> List[GraphEdge]:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT source_id, target_id, edge_type, weight, properties_json FROM graph_edges WHERE source_id = ? OR target_id = ?",
            (node_id, node_id),
        )
        return [
            GraphEdge(source_id=s, target_id=t, edge_type=et, weight=w, properties=json.loads(p or "{}"))
            for s, t, et, w, p in cur.fetchall()
        ]

    def edge_type_counts(self, node_ids: List[str]) -> Dict[str, Dict[str, int]]:
        """node_id -> {edge_type: count} over edges touching each node."""
        counts: Dict[str, Dict[str, int]] = {n: {} for n in node_ids}
        if not node_ids:
            return counts
        placeholders = ",".join("?" for _ in node_ids)
        cur = self.conn.cursor()
        cur.execute(
            (
                f"SELECT node_id, edge_type, COUNT(*) FROM ("
                f"  SELECT source_id AS node_id, edge_type FROM graph_edges WHERE source_id IN ({placeholders}) "
                f"  UNION ALL "
                f"  SELECT target_id AS node_id, edge_type FROM graph_edges WHERE target_id IN ({placeholders})"
                f") GROUP BY node_id, edge_type"
            ),
            tuple(node_ids) * 2,
        )
        for node_id, edge_type, n in cur.fetchall():
            counts.setdefault(str(node_id), {})[str(edge_type)] = int(n)
        return counts

    def count_edges(self, edge_type: Optional[str] = None) -> int:
        cur = self.conn.cursor()
        if edge_type:
            cur.execute("SELECT COUNT(*) FROM graph_edges WHERE edge_type = ?", (edge_type,))
        else:
            cur.execute("SELECT COUNT(*) FROM graph_edges")
        return int(cur.fetchone()[0])

    # --- Processing log ---
    def start_processing(self, user_id: str) -> int:
        cur = self.conn.cursor()
        cur.execute("INSERT INTO graph_processing_log (user_id, status) VALUES (?, 'processing')", (user_id,))
        self.conn.commit()
        return int(cur.lastrowid)

    def finish_processing(self, log_id: int, status: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.conn.execute(
            "UPDATE graph_processing_log SET status = ?, details_json = ?, finished_at = datetime('now') WHERE id = ?",
            (status, json.dumps(details or {}, ensure_ascii=False), log_id),
        )
        self.conn.commit()

    # --- Predictions ---
    def insert_predictions(self, run_id: str, predictions: List[LinkPrediction]) -> int:
        """Persist one invocation's predictions under a shared run id."""
        self.conn.executemany(
            "INSERT INTO graph_predictions (run_id, user_id, target_node_id, profile_id, score, reason) VALUES (?, ?, ?, ?, ?, ?)",
            [(run_id, p.user_id, p.target_node_id, p.profile_id, p.score, p.reason) for p in predictions],
        )
        self.conn.commit()
        return len(predictions)

    def latest_predictions(self, user_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute(
            (
                "SELECT gp.profile_id, p.full_name, p.company, p.title, gp.score, gp.reason "
                "FROM graph_predictions gp JOIN profiles p ON p.id = gp.profile_id "
                "WHERE gp.user_id = ? AND gp.run_id = ("
                "  SELECT run_id FROM graph_predictions WHERE user_id = ? ORDER BY id DESC LIMIT 1"
                ") "
                "ORDER BY gp.score DESC, gp.profile_id LIMIT ?"
            ),
            (user_id, user_id, limit),
        )
        keys = ["profile_id", "full_name", "company", "title", "score", "reason"]
        return [{k: row[i] for i, k in enumerate(keys)} for row in cur.fetchall()]
