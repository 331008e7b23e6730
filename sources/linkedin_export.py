from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from models import ContactRecord
from sources.base import SOURCE_TAGS, FileKind, RawRow
from sources.registry import register


logger = logging.getLogger(__name__)


def _get(row: RawRow, *keys: str) -> Optional[str]:
    """First non-empty value among the given header spellings."""
    for key in keys:
        value = row.get(key)
        if value and value.strip():
            return value.strip()
    return None


def split_full_name(full_name: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    if not full_name:
        return None, None
    parts = [p for p in str(full_name).strip().split() if p]
    if not parts:
        return None, None
    if len(parts) == 1:
        return parts[0], None
    return parts[0], " ".join(parts[1:])


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [v.strip() for v in value.replace(";", ",").split(",") if v.strip()]


def _is_owner(name: Optional[str], owner_name: Optional[str]) -> bool:
    if not name or not owner_name:
        return False
    return " ".join(name.split()).lower() == " ".join(owner_name.split()).lower()


class ConnectionsExtractor:
    kind: FileKind = "connections"

    def extract(self, row: RawRow, owner_name: Optional[str] = None) -> Optional[ContactRecord]:
        first = _get(row, "First Name")
        last = _get(row, "Last Name")
        if not first and not last:
            return None
        return ContactRecord(
            first_name=first,
            last_name=last,
            profile_url=_get(row, "URL", "Profile URL"),
            email=_get(row, "Email Address"),
            company=_get(row, "Company"),
            position=_get(row, "Position"),
            connected_on=_get(row, "Connected On"),
            sources=[SOURCE_TAGS[self.kind]],
        )


class ContactsExtractor:
    kind: FileKind = "contacts"

    def extract(self, row: RawRow, owner_name: Optional[str] = None) -> Optional[ContactRecord]:
        first = _get(row, "FirstName", "First Name")
        last = _get(row, "LastName", "Last Name")
        if not (first and last):
            full_first, full_last = split_full_name(_get(row, "FullName", "Full Name"))
            first = first or full_first
            last = last or full_last
        if not first and not last:
            return None
        companies = _split_list(_get(row, "Companies", "Company"))
        return ContactRecord(
            first_name=first,
            last_name=last,
            emails=_split_list(_get(row, "Emails", "Email Address")),
            phone_numbers=_split_list(_get(row, "PhoneNumbers", "Phone Numbers")),
            company=companies[0] if companies else None,
            position=_get(row, "Title", "Position"),
            sources=[SOURCE_TAGS[self.kind]],
        )


class InvitationsExtractor:
    """The counterparty of an invitation: recipient when outgoing, sender when incoming."""

    kind: FileKind = "invitations"

    def extract(self, row: RawRow, owner_name: Optional[str] = None) -> Optional[ContactRecord]:
        direction = (_get(row, "Direction") or "").upper()
        if direction == "OUTGOING":
            name = _get(row, "To")
            url = _get(row, "inviteeProfileUrl")
        elif direction == "INCOMING":
            name = _get(row, "From")
            url = _get(row, "inviterProfileUrl")
        else:
            return None
        first, last = split_full_name(name)
        if not first and not last:
            return None
        return ContactRecord(
            first_name=first,
            last_name=last,
            profile_url=url,
            invitation_status=direction,
            invitation_sent_at=_get(row, "Sent At"),
            invitation_message=_get(row, "Message"),
            sources=[SOURCE_TAGS[self.kind]],
        )


class MessagesExtractor:
    kind: FileKind = "messages"

    def extract(self, row: RawRow, owner_name: Optional[str] = None) -> Optional[ContactRecord]:
        sender = _get(row, "FROM")
        if _is_owner(sender, owner_name):
            name = _get(row, "TO")
            recipients = _split_list(_get(row, "RECIPIENT PROFILE URLS"))
            url = recipients[0] if recipients else None
        else:
            name = sender
            url = _get(row, "SENDER PROFILE URL")
        first, last = split_full_name(name)
        if not first and not last:
            return None
        return ContactRecord(
            first_name=first,
            last_name=last,
            profile_url=url,
            last_message_date=_get(row, "DATE"),
            last_message_content=_get(row, "CONTENT"),
            sources=[SOURCE_TAGS[self.kind]],
        )


class NumbersExtractor:
    """Phone and WhatsApp tables; rows only count when they name a person."""

    def __init__(self, kind: FileKind) -> None:
        self.kind = kind

    def extract(self, row: RawRow, owner_name: Optional[str] = None) -> Optional[ContactRecord]:
        first = _get(row, "First Name", "FirstName")
        last = _get(row, "Last Name", "LastName")
        if not (first and last):
            full_first, full_last = split_full_name(_get(row, "Name", "Full Name", "FullName"))
            first = first or full_first
            last = last or full_last
        number = _get(row, "Number", "WhatsApp Number", "Phone Number")
        if not (first or last) or not number:
            return None
        record = ContactRecord(first_name=first, last_name=last, sources=[SOURCE_TAGS[self.kind]])
        if self.kind == "whatsapp_numbers":
            record.whatsapp_numbers.append(number)
        else:
            record.phone_numbers.append(number)
        return record


def _register() -> None:
    register("connections", ConnectionsExtractor)
    # Unrecognized single files are read as the primary connections list
    register("unknown", ConnectionsExtractor)
    register("contacts", ContactsExtractor)
    register("invitations", InvitationsExtractor)
    register("messages", MessagesExtractor)
    register("phone_numbers", lambda: NumbersExtractor("phone_numbers"))
    register("whatsapp_numbers", lambda: NumbersExtractor("whatsapp_numbers"))


_register()
