from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from models import ContactRecord
from sources.base import KIND_PRIORITY, ParsedFile, RawRow
from sources.registry import get_extractor


logger = logging.getLogger(__name__)


def _name_key(name: str) -> str:
    return " ".join(name.split()).lower()


class ContactMerger:
    """Resolve rows from several export tables into one ContactRecord per full name.

    Two people sharing a full name are merged into one record; there is no
    stable cross-file key to tell them apart.
    """

    def __init__(self, owner_name: Optional[str] = None) -> None:
        self.owner_key = _name_key(owner_name) if owner_name else None
        self.owner_name = owner_name
        self._records: Dict[str, ContactRecord] = {}
        self.stats = {"rows_seen": 0, "admitted": 0, "skipped_no_name": 0, "skipped_owner": 0}

    def add(self, record: ContactRecord) -> bool:
        if not record.has_name():
            self.stats["skipped_no_name"] += 1
            return False
        key = record.full_name
        if self.owner_key and _name_key(key) == self.owner_key:
            self.stats["skipped_owner"] += 1
            return False
        existing = self._records.get(key)
        if existing is None:
            self._records[key] = record.model_copy(deep=True)
        else:
            existing.merge(record)
        self.stats["admitted"] += 1
        return True

    def add_batch(self, kind: str, rows: Iterable[RawRow]) -> int:
        extractor = get_extractor(kind)
        admitted = 0
        for row in rows:
            self.stats["rows_seen"] += 1
            record = extractor.extract(row, owner_name=self.owner_name)
            if record is None:
                self.stats["skipped_no_name"] += 1
                continue
            if self.add(record):
                admitted += 1
        return admitted

    def merge(self, files: Iterable[ParsedFile]) -> List[ContactRecord]:
        """Apply parsed files in fixed kind priority, then return the merged records."""
        ordered = sorted(files, key=lambda f: (KIND_PRIORITY.get(f.kind, len(KIND_PRIORITY)), f.filename))
        for parsed in ordered:
            admitted = self.add_batch(parsed.kind, parsed.rows)
            logger.info(
                f"Merged {admitted}/{len(parsed.rows)} rows from {parsed.filename} ({parsed.kind})",
                extra={"step": "merge", "status": "ok"},
            )
        return self.records()

    def records(self) -> List[ContactRecord]:
        return list(self._records.values())
