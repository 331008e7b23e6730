from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Callable, Optional, Union

from config.settings import get_settings
from pipelines.runner import Pipeline, RunContext
from pipelines.steps.merge_contacts import MapProfiles, MergeContacts
from pipelines.steps.parse_export import ParseExportFiles, ReadExport
from pipelines.steps.persist_profiles import LogUpload, PersistProfiles


def import_export(
    conn: sqlite3.Connection,
    user_id: str,
    source: Union[str, Path, bytes],
    *,
    filename: Optional[str] = None,
    owner_name: Optional[str] = None,
    on_processed: Optional[Callable[[int], None]] = None,
    ctx: Optional[RunContext] = None,
) -> RunContext:
    """Import one export (ZIP or CSV) for a user: parse, merge by name, map, persist.

    Raises NoContactsFoundError when no file yields a usable contact.
    """
    settings = get_settings()
    ctx = ctx or RunContext()
    ctx.user_id = user_id
    pipeline = Pipeline([
        ReadExport(source, filename=filename, max_bytes=settings.max_upload_bytes),
        ParseExportFiles(concurrency=settings.parse_concurrency),
        MergeContacts(owner_name=owner_name if owner_name is not None else settings.owner_name),
        MapProfiles(),
        PersistProfiles(conn, batch_size=settings.persist_batch_size, on_processed=on_processed),
        LogUpload(conn),
    ])
    return pipeline.run(ctx)
