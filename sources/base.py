from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Protocol

from models import ContactRecord


FileKind = Literal[
    "connections",
    "contacts",
    "phone_numbers",
    "whatsapp_numbers",
    "invitations",
    "messages",
    "unknown",
]

RawRow = Dict[str, str]

# Fixed merge order; arrival order of parsed files never matters
KIND_PRIORITY: Dict[str, int] = {
    "connections": 0,
    "contacts": 1,
    "invitations": 2,
    "messages": 3,
    "phone_numbers": 4,
    "whatsapp_numbers": 5,
    "unknown": 6,
}

# Provenance marker written onto ContactRecord.sources per file kind
SOURCE_TAGS: Dict[str, str] = {
    "connections": "connection",
    "contacts": "contact",
    "invitations": "invitation",
    "messages": "message",
    "phone_numbers": "phone",
    "whatsapp_numbers": "whatsapp",
    "unknown": "connection",
}


@dataclass
class ExportMember:
    """One file pulled out of an uploaded export (or the upload itself)."""

    filename: str
    text: str


@dataclass
class ParsedFile:
    filename: str
    kind: FileKind
    headers: List[str] = field(default_factory=list)
    rows: List[RawRow] = field(default_factory=list)
    skipped_lines: int = 0

    @property
    def priority(self) -> int:
        return KIND_PRIORITY.get(self.kind, len(KIND_PRIORITY))


class RowExtractor(Protocol):
    kind: FileKind

    def extract(self, row: RawRow, owner_name: Optional[str] = None) -> Optional[ContactRecord]:
        ...
