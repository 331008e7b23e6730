from __future__ import annotations

import logging
import sqlite3
from typing import Callable, List, Optional

from db.repos.connections_repo import ConnectionsRepo
from db.repos.profiles_repo import ProfilesRepo
from models import ProfileRecord
from pipelines.runner import RunContext
from services.errors import PersistenceError


logger = logging.getLogger(__name__)


def batched(items: List, size: int):
    size = max(1, int(size))
    for i in range(0, len(items), size):
        yield items[i : i + size]


class PersistProfiles:
    """Upsert profiles by URL and the owning user's connections, committing per batch."""

    def __init__(self, conn: sqlite3.Connection, batch_size: int = 200, on_processed: Optional[Callable[[int], None]] = None) -> None:
        self.conn = conn
        self.profiles_repo = ProfilesRepo(conn)
        self.connections_repo = ConnectionsRepo(conn)
        self.batch_size = batch_size
        self.on_processed = on_processed

    def run(self, ctx: RunContext) -> RunContext:
        if not ctx.user_id:
            raise ValueError("PersistProfiles requires ctx.user_id")
        processed = 0
        failed = 0
        profile_ids: List[int] = []
        profiles: List[ProfileRecord] = list(ctx.profiles or [])
        for batch in batched(profiles, self.batch_size):
            ctx.check_cancelled()
            if not self.conn.in_transaction:
                self.conn.execute("BEGIN")
            for profile in batch:
                # Profile and connection land together or not at all
                self.conn.execute("SAVEPOINT persist_profile")
                try:
                    profile_id = self.profiles_repo.upsert_profile(profile, commit=False)
                    self.connections_repo.upsert_connection(
                        ctx.user_id,
                        profile_id,
                        profile.connected_on,
                        profile.connected_on_estimated,
                        commit=False,
                    )
                except PersistenceError as e:
                    self.conn.execute("ROLLBACK TO persist_profile")
                    self.conn.execute("RELEASE persist_profile")
                    failed += 1
                    logger.warning(str(e), extra={"step": "persist", "status": "error", "error": "persistence"})
                    continue
                self.conn.execute("RELEASE persist_profile")
                profile.id = profile_id
                profile_ids.append(profile_id)
                processed += 1
            self.conn.commit()
            if self.on_processed:
                self.on_processed(processed)
        ctx.meta["processed_profiles"] = processed
        ctx.meta["failed_profiles"] = failed
        ctx.meta["profile_ids"] = profile_ids
        return ctx


class LogUpload:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.repo = ConnectionsRepo(conn)

    def run(self, ctx: RunContext) -> RunContext:
        processed = int(ctx.meta.get("processed_profiles") or 0)
        skipped = int(ctx.meta.get("invalid_profiles") or 0) + int(ctx.meta.get("failed_profiles") or 0)
        ctx.meta["upload_log_id"] = self.repo.log_upload(ctx.user_id, ctx.filename, processed, processed, skipped)
        logger.info(
            f"Import for {ctx.user_id}: {processed} profiles, {skipped} skipped",
            extra={"step": "import", "status": "ok"},
        )
        return ctx
