from __future__ import annotations

import sqlite3
from typing import Callable, Optional

from config.settings import get_settings
from pipelines.runner import Pipeline, RunContext
from pipelines.steps.enrich_profiles import EnrichAndPersistProfiles, LoadPendingProfiles, NotifyUser
from ports import LLMClientPort
from services.llm_client import LLMClient


def default_client() -> Optional[LLMClientPort]:
    """Provider client when AI is enabled; None means rule-based enrichment only."""
    settings = get_settings()
    provider = (settings.ai_provider or "stub").lower()
    if not settings.ai_enabled or provider not in ("openai", "linkup"):
        return None
    return LLMClient()


def enrich_profiles(
    conn: sqlite3.Connection,
    user_id: str,
    *,
    limit: Optional[int] = None,
    client: Optional[LLMClientPort] = None,
    notify: bool = True,
    on_progress: Optional[Callable[[int, int, int, str], None]] = None,
    ctx: Optional[RunContext] = None,
) -> RunContext:
    settings = get_settings()
    ctx = ctx or RunContext()
    ctx.user_id = user_id
    steps = [
        LoadPendingProfiles(conn, limit=limit),
        EnrichAndPersistProfiles(
            conn,
            client if client is not None else default_client(),
            batch_size=settings.enrich_batch_size,
            concurrency=settings.enrich_concurrency,
            on_progress=on_progress,
        ),
    ]
    if notify:
        steps.append(NotifyUser(conn, "enrichment_complete", {"enrichedCount": "profiles_enriched"}))
    return Pipeline(steps).run(ctx)
