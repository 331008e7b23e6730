from __future__ import annotations

import logging
import sqlite3
from typing import Iterable, List

from db.repos.graph_repo import GraphRepo
from db.repos.profiles_repo import ProfilesRepo
from models import GraphEdge, ProfileRecord, profile_node_id
from pipelines.runner import RunContext
from services.embeddings import profile_embedding
from services.errors import PersistenceError
from services.graph_scoring import affiliation_edges, mutual_edges, title_similarity_edges


logger = logging.getLogger(__name__)


def write_edges(conn: sqlite3.Connection, edges: Iterable[GraphEdge], label: str) -> int:
    """Upsert edges one by one; a failed write is logged and the pass continues."""
    repo = GraphRepo(conn)
    written = 0
    for edge in edges:
        try:
            repo.upsert_edge(edge, commit=False)
        except PersistenceError as e:
            logger.warning(str(e), extra={"step": label, "status": "error", "error": "persistence"})
            continue
        written += 1
    conn.commit()
    logger.info(f"{label}: {written} edges", extra={"step": label, "status": "ok"})
    return written


class BuildProfileNodes:
    """Register a profile node and node-profile-user mapping for each of the user's connections."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def run(self, ctx: RunContext) -> RunContext:
        graph = GraphRepo(self.conn)
        profiles: List[ProfileRecord] = ProfilesRepo(self.conn).list_for_user(ctx.user_id)
        registered = 0
        for profile in profiles:
            node_id = profile_node_id(int(profile.id))
            try:
                graph.upsert_node(
                    node_id,
                    "profile",
                    ctx.user_id,
                    properties={"full_name": profile.full_name, "company": profile.company, "title": profile.title},
                    commit=False,
                )
                graph.map_node_profile(node_id, int(profile.id), ctx.user_id, commit=False)
            except PersistenceError as e:
                logger.warning(str(e), extra={"step": "nodes", "status": "error", "error": "persistence"})
                continue
            registered += 1
        self.conn.commit()
        ctx.profiles = profiles
        ctx.meta["nodes_registered"] = registered
        return ctx


class AffiliationEdges:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def run(self, ctx: RunContext) -> RunContext:
        members = [(profile_node_id(int(p.id)), p.company) for p in ctx.profiles or []]
        ctx.meta["affiliation_edges"] = write_edges(self.conn, affiliation_edges(members), "affiliation")
        return ctx


class TitleSimilarityEdges:
    def __init__(self, conn: sqlite3.Connection, threshold: float = 0.7) -> None:
        self.conn = conn
        self.threshold = threshold

    def run(self, ctx: RunContext) -> RunContext:
        members = [(profile_node_id(int(p.id)), p.job_function, p.title) for p in ctx.profiles or []]
        edges = title_similarity_edges(members, self.threshold)
        ctx.meta["title_similarity_edges"] = write_edges(self.conn, edges, "title_similarity")
        return ctx


class MutualEdges:
    """Cross-user pass: runs over every user's node mappings, not only ctx.user_id."""

    def __init__(self, conn: sqlite3.Connection, min_shared: int = 2) -> None:
        self.conn = conn
        self.min_shared = min_shared

    def run(self, ctx: RunContext) -> RunContext:
        owners = GraphRepo(self.conn).profile_owners()
        edges = mutual_edges(owners, self.min_shared)
        ctx.meta["mutual_edges"] = write_edges(self.conn, edges, "mutual")
        return ctx


class GenerateEmbeddings:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def run(self, ctx: RunContext) -> RunContext:
        graph = GraphRepo(self.conn)
        written = 0
        for profile in ctx.profiles or []:
            try:
                graph.set_embedding(profile_node_id(int(profile.id)), profile_embedding(profile), commit=False)
            except PersistenceError as e:
                logger.warning(str(e), extra={"step": "embeddings", "status": "error", "error": "persistence"})
                continue
            written += 1
        self.conn.commit()
        ctx.meta["embeddings"] = written
        return ctx
