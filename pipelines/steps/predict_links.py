from __future__ import annotations

import logging
import sqlite3
import uuid
from typing import List, Optional

from db.repos.connections_repo import ConnectionsRepo
from db.repos.graph_repo import GraphRepo
from models import LinkPrediction
from pipelines.runner import RunContext
from services.graph_scoring import prediction_score


logger = logging.getLogger(__name__)


class PredictLinks:
    """Score every graph profile the user is not yet connected to."""

    def __init__(self, conn: sqlite3.Connection, limit: Optional[int] = None) -> None:
        self.conn = conn
        self.limit = limit

    def run(self, ctx: RunContext) -> RunContext:
        graph = GraphRepo(self.conn)
        connected = ConnectionsRepo(self.conn).profile_ids_for_user(ctx.user_id)
        candidates = {n: p for n, p in graph.all_profile_nodes().items() if p not in connected}
        counts = graph.edge_type_counts(sorted(candidates))

        predictions: List[LinkPrediction] = []
        for node_id, profile_id in candidates.items():
            score, reason = prediction_score(counts.get(node_id, {}))
            predictions.append(LinkPrediction(
                user_id=ctx.user_id,
                target_node_id=node_id,
                profile_id=profile_id,
                score=score,
                reason=reason,
            ))
        predictions.sort(key=lambda p: (-p.score, p.profile_id))

        run_id = ctx.meta.get("run_id") or uuid.uuid4().hex
        graph.insert_predictions(run_id, predictions)
        ranked = predictions[: self.limit] if self.limit else predictions
        ctx.meta["predictions"] = ranked
        ctx.meta["predictions_written"] = len(predictions)
        logger.info(f"Stored {len(predictions)} predictions for {ctx.user_id}", extra={"step": "predict", "status": "ok"})
        return ctx
