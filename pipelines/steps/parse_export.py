from __future__ import annotations

import concurrent.futures as _fut
import logging
from pathlib import Path
from typing import List, Optional, Union

from pipelines.runner import RunContext
from services.errors import MalformedInputError
from sources.archive import read_export
from sources.base import ExportMember, ParsedFile
from sources.detect import detect_file_kind
from sources.tabular import parse_table


logger = logging.getLogger(__name__)


class ReadExport:
    def __init__(self, source: Union[str, Path, bytes], filename: Optional[str] = None, max_bytes: Optional[int] = None) -> None:
        self.source = source
        self.filename = filename
        self.max_bytes = max_bytes

    def run(self, ctx: RunContext) -> RunContext:
        ctx.members = read_export(self.source, filename=self.filename, max_bytes=self.max_bytes)
        if ctx.filename is None:
            ctx.filename = self.filename or (Path(self.source).name if isinstance(self.source, (str, Path)) else None)
        ctx.meta["files_read"] = len(ctx.members)
        return ctx


class ParseExportFiles:
    """Detect and parse every member; results are ordered by kind priority, not arrival."""

    def __init__(self, concurrency: int = 1) -> None:
        self.concurrency = max(1, int(concurrency or 1))

    def _parse(self, member: ExportMember, single: bool) -> Optional[ParsedFile]:
        kind = detect_file_kind(member.filename, member.text)
        if kind == "unknown":
            if not single:
                logger.info(f"Skipping unrecognized archive member {member.filename}", extra={"step": "parse", "status": "skipped"})
                return None
            kind = "connections"
        try:
            return parse_table(member.filename, member.text, kind=kind)
        except MalformedInputError as e:
            logger.warning(str(e), extra={"step": "parse", "status": "skipped", "error": "malformed"})
            return None

    def run(self, ctx: RunContext) -> RunContext:
        members: List[ExportMember] = list(ctx.members or [])
        single = len(members) == 1
        if self.concurrency > 1 and len(members) > 1:
            with _fut.ThreadPoolExecutor(max_workers=self.concurrency) as ex:
                results = list(ex.map(lambda m: self._parse(m, single), members))
        else:
            results = [self._parse(m, single) for m in members]

        parsed = [r for r in results if r is not None]
        parsed.sort(key=lambda f: (f.priority, f.filename))
        if not any(f.kind == "connections" for f in parsed):
            logger.warning("No connections file found; continuing with remaining files", extra={"step": "parse", "status": "partial"})
        ctx.parsed_files = parsed
        ctx.meta["files_parsed"] = len(parsed)
        ctx.meta["lines_skipped"] = sum(f.skipped_lines for f in parsed)
        return ctx
