from __future__ import annotations

import logging
import sqlite3
from typing import List, Optional, Tuple

from config.settings import get_settings
from db.repos.graph_repo import GraphRepo
from pipelines.runner import Pipeline, PipelineCancelled, RunContext
from pipelines.steps.build_graph import (
    AffiliationEdges,
    BuildProfileNodes,
    GenerateEmbeddings,
    MutualEdges,
    TitleSimilarityEdges,
)
from services.embeddings import rank_similar
from services.notifications import Notifier


logger = logging.getLogger(__name__)

_COUNT_KEYS = ("nodes_registered", "affiliation_edges", "title_similarity_edges", "mutual_edges", "embeddings")


def build_graph(
    conn: sqlite3.Connection,
    user_id: str,
    *,
    threshold: Optional[float] = None,
    min_shared: Optional[int] = None,
    notify: bool = False,
    ctx: Optional[RunContext] = None,
) -> RunContext:
    """Register the user's profile nodes and run the affiliation, title and mutual passes.

    Every pass is an idempotent upsert, so re-running only refreshes weights.
    """
    settings = get_settings()
    ctx = ctx or RunContext()
    ctx.user_id = user_id
    graph = GraphRepo(conn)
    log_id = graph.start_processing(user_id)
    pipeline = Pipeline([
        BuildProfileNodes(conn),
        AffiliationEdges(conn),
        TitleSimilarityEdges(conn, threshold if threshold is not None else settings.title_similarity_threshold),
        MutualEdges(conn, min_shared if min_shared is not None else settings.mutual_min_shared_networks),
        GenerateEmbeddings(conn),
    ])
    try:
        ctx = pipeline.run(ctx)
    except PipelineCancelled:
        graph.finish_processing(log_id, "cancelled", {k: ctx.meta.get(k) for k in _COUNT_KEYS})
        raise
    except Exception as e:
        graph.finish_processing(log_id, "failed", {"error": str(e)})
        logger.error(f"Graph build failed for {user_id}: {e}", extra={"step": "graph", "status": "failed", "error": type(e).__name__})
        raise
    graph.finish_processing(log_id, "completed", {k: ctx.meta.get(k) for k in _COUNT_KEYS})
    if notify:
        Notifier(conn).send(user_id, "graph_complete", {"edgeCount": graph.count_edges()})
    return ctx


def find_similar_profiles(conn: sqlite3.Connection, profile_id: int, limit: int = 10) -> List[Tuple[int, float]]:
    """(profile_id, cosine similarity) of the nearest profiles by stored embedding."""
    graph = GraphRepo(conn)
    target = graph.node_for_profile(profile_id)
    node_to_profile = graph.all_profile_nodes()
    ranked = rank_similar(target, graph.embeddings(), limit=limit)
    return [(node_to_profile[n], score) for n, score in ranked if n in node_to_profile]
