from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Iterable, List, Optional, Tuple

from sources.base import FileKind


# Characteristic header tokens per export table; also used to locate the header line
HEADER_TOKENS: dict[str, Tuple[str, ...]] = {
    "connections": ("First Name", "Last Name", "Profile URL", "Connected On"),
    "contacts": ("FirstName", "LastName", "FullName", "Emails", "PhoneNumbers"),
    "invitations": ("Direction", "inviterProfileUrl", "inviteeProfileUrl", "Sent At"),
    "messages": ("CONVERSATION ID", "SENDER PROFILE URL", "RECIPIENT PROFILE URLS"),
    "whatsapp_numbers": ("Is_WhatsApp_Number", "WhatsApp Number"),
    "phone_numbers": ("Number", "Type", "Extension"),
}

# Order matters: "WhatsApp Phone Numbers.csv" must not be read as plain phone numbers
_FILENAME_HINTS: List[Tuple[re.Pattern, FileKind]] = [
    (re.compile(r"whats\s*app", re.IGNORECASE), "whatsapp_numbers"),
    (re.compile(r"phone", re.IGNORECASE), "phone_numbers"),
    (re.compile(r"connection", re.IGNORECASE), "connections"),
    (re.compile(r"contact", re.IGNORECASE), "contacts"),
    (re.compile(r"invitation", re.IGNORECASE), "invitations"),
    (re.compile(r"message", re.IGNORECASE), "messages"),
]

HEADER_SCAN_LIMIT = 25


def all_header_tokens() -> Iterable[str]:
    for tokens in HEADER_TOKENS.values():
        yield from tokens


def kind_from_filename(filename: Optional[str]) -> Optional[FileKind]:
    if not filename:
        return None
    name = PurePosixPath(filename.replace("\\", "/")).name
    for pattern, kind in _FILENAME_HINTS:
        if pattern.search(name):
            return kind
    return None


def kind_from_content(content: str) -> Optional[FileKind]:
    """Guess the table kind from header tokens near the top of the file."""
    head = "\n".join((content or "").splitlines()[:HEADER_SCAN_LIMIT])
    if "First Name,Last Name" in head or "Profile URL" in head:
        return "connections"
    if "FirstName" in head or "LastName" in head:
        return "contacts"
    if "inviterProfileUrl" in head or re.search(r"(^|,)\s*\"?Direction\"?\s*(,|$)", head, re.MULTILINE):
        return "invitations"
    if "CONVERSATION ID" in head or "SENDER PROFILE URL" in head:
        return "messages"
    if "Is_WhatsApp_Number" in head or "WhatsApp" in head:
        return "whatsapp_numbers"
    if re.search(r"(^|,)\s*\"?Number\"?\s*(,|$)", head, re.MULTILINE) and "Type" in head:
        return "phone_numbers"
    return None


def detect_file_kind(filename: Optional[str], content: str) -> FileKind:
    """Classify an export table: filename hints first, then content hints."""
    return kind_from_filename(filename) or kind_from_content(content) or "unknown"
