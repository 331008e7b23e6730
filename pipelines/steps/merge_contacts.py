from __future__ import annotations

import logging
from typing import Optional

from pipelines.runner import RunContext
from services.errors import NoContactsFoundError
from services.identity import ContactMerger
from services.mapping import map_contacts


logger = logging.getLogger(__name__)


class MergeContacts:
    def __init__(self, owner_name: Optional[str] = None) -> None:
        self.owner_name = owner_name

    def run(self, ctx: RunContext) -> RunContext:
        merger = ContactMerger(owner_name=self.owner_name)
        ctx.contacts = merger.merge(ctx.parsed_files or [])
        ctx.meta["merge_stats"] = dict(merger.stats)
        if not ctx.contacts:
            raise NoContactsFoundError(
                "No contacts found. Please make sure the file contains valid LinkedIn data.",
                filename=ctx.filename,
            )
        logger.info(f"Resolved {len(ctx.contacts)} contacts", extra={"step": "merge", "status": "ok"})
        return ctx


class MapProfiles:
    def run(self, ctx: RunContext) -> RunContext:
        profiles, dropped = map_contacts(ctx.contacts or [])
        ctx.profiles = profiles
        ctx.meta["invalid_profiles"] = dropped
        return ctx
