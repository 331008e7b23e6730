from __future__ import annotations

import concurrent.futures as _fut
import logging
import sqlite3
from typing import Any, Callable, Dict, List, Optional, Tuple

from db.repos.profiles_repo import ProfilesRepo
from models import ProfileRecord
from pipelines.runner import RunContext
from pipelines.steps.persist_profiles import batched
from ports import LLMClientPort
from services.enrichment_service import enrich_profile, fallback_enrichment
from services.errors import PersistenceError
from services.notifications import Notifier


logger = logging.getLogger(__name__)


class LoadPendingProfiles:
    def __init__(self, conn: sqlite3.Connection, limit: Optional[int] = None) -> None:
        self.conn = conn
        self.limit = limit

    def run(self, ctx: RunContext) -> RunContext:
        repo = ProfilesRepo(self.conn)
        ctx.profiles = repo.select_pending_enrichment(user_id=ctx.user_id, limit=self.limit)
        ctx.meta["pending_profiles_total"] = len(ctx.profiles)
        return ctx


class EnrichAndPersistProfiles:
    """Enrich pending profiles batch by batch.

    Calls within a batch run on a thread pool; each record is isolated, so one
    failure falls back to rules for that record only. Writes stay sequential.
    Cancellation is honoured between batches.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        client: Optional[LLMClientPort] = None,
        batch_size: int = 100,
        concurrency: int = 4,
        on_progress: Optional[Callable[[int, int, int, str], None]] = None,
    ) -> None:
        self.conn = conn
        self.client = client
        self.batch_size = batch_size
        self.concurrency = max(1, int(concurrency or 1))
        self.on_progress = on_progress

    def _enrich(self, profile: ProfileRecord) -> Tuple[ProfileRecord, Dict[str, Any]]:
        try:
            return profile, enrich_profile(profile, self.client)
        except Exception as e:  # isolate per-record failures from the rest of the batch
            logger.warning(
                f"Enrichment crashed for profile {profile.id}: {e}",
                extra={"step": "enrich", "status": "fallback", "error": type(e).__name__},
            )
            fields = fallback_enrichment(profile)
            fields["source"] = "fallback"
            return profile, fields

    def run(self, ctx: RunContext) -> RunContext:
        repo = ProfilesRepo(self.conn)
        profiles: List[ProfileRecord] = list(ctx.profiles or [])
        total = len(profiles)
        done = 0
        enriched = 0
        fallbacks = 0
        failed = 0
        batches = 0
        for batch in batched(profiles, self.batch_size):
            ctx.check_cancelled()
            with _fut.ThreadPoolExecutor(max_workers=self.concurrency) as ex:
                results = list(ex.map(self._enrich, batch))
            for profile, fields in results:
                done += 1
                source = fields.pop("source", "fallback")
                if self.on_progress:
                    self.on_progress(done, total, int(profile.id or 0), profile.full_name)
                try:
                    repo.save_enrichment(int(profile.id), fields, commit=False)
                except PersistenceError as e:
                    failed += 1
                    logger.warning(str(e), extra={"step": "enrich", "status": "error", "error": "persistence"})
                    continue
                enriched += 1
                if source == "fallback":
                    fallbacks += 1
            self.conn.commit()
            batches += 1
            logger.info(
                f"Processed enrichment batch {batches} of {(total + self.batch_size - 1) // max(1, self.batch_size)}",
                extra={"step": "enrich", "status": "ok"},
            )
        ctx.meta["profiles_enriched"] = enriched
        ctx.meta["profiles_fallback"] = fallbacks
        ctx.meta["profiles_failed"] = failed
        return ctx


class NotifyUser:
    def __init__(self, conn: sqlite3.Connection, template_name: str, data_keys: Optional[Dict[str, str]] = None, notifier: Optional[Notifier] = None) -> None:
        self.notifier = notifier or Notifier(conn)
        self.template_name = template_name
        # template placeholder -> ctx.meta key
        self.data_keys = data_keys or {}

    def run(self, ctx: RunContext) -> RunContext:
        data = {placeholder: ctx.meta.get(key) for placeholder, key in self.data_keys.items()}
        ctx.meta["notified"] = self.notifier.send(ctx.user_id, self.template_name, data)
        return ctx
