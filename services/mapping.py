from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from models import ContactRecord, ProfileRecord
from services.date_utils import normalize_date, parse_date
from services.domain_utils import canonical_profile_url
from services.errors import ValidationError


logger = logging.getLogger(__name__)


def primary_email(record: ContactRecord) -> Optional[str]:
    email = record.email or (record.emails[0] if record.emails else None)
    return email.strip().lower() if email else None


def _day(value: Optional[str]) -> Optional[str]:
    parsed = parse_date(value)
    return parsed.strftime("%Y-%m-%d") if parsed else None


def build_tags(record: ContactRecord, primary: Optional[str]) -> List[str]:
    """Fold auxiliary contact data into `kind:value` tags."""
    tags: List[str] = []

    def _add(tag: str) -> None:
        if tag not in tags:
            tags.append(tag)

    for src in record.sources:
        _add(f"source:{src}")
    for email in record.emails:
        lowered = email.strip().lower()
        if lowered and lowered != primary:
            _add(f"email:{lowered}")
    for number in record.phone_numbers:
        _add(f"phone:{number}")
    for number in record.whatsapp_numbers:
        _add(f"whatsapp:{number}")
    if record.invitation_status:
        _add(f"invitation:{record.invitation_status.lower()}")
    invited = _day(record.invitation_sent_at)
    if invited:
        _add(f"invited_at:{invited}")
    last_message = _day(record.last_message_date)
    if last_message:
        _add(f"last_message:{last_message}")
    return tags


def contact_to_profile(record: ContactRecord) -> ProfileRecord:
    """Map a merged contact to the persisted profile shape; raises ValidationError."""
    full_name = record.full_name
    if not full_name:
        raise ValidationError("full_name")
    profile_url = canonical_profile_url(record.profile_url)
    if not profile_url:
        raise ValidationError("profile_url", record_key=full_name)

    email = primary_email(record)
    connected = normalize_date(record.connected_on)
    return ProfileRecord(
        full_name=full_name,
        profile_url=profile_url,
        email=email,
        company=record.company,
        title=record.position,
        tags=build_tags(record, email),
        connected_on=connected.isoformat(),
        connected_on_estimated=not connected.parsed,
    )


def map_contacts(records: List[ContactRecord]) -> Tuple[List[ProfileRecord], int]:
    """Map every contact; invalid ones are dropped and counted."""
    profiles: List[ProfileRecord] = []
    dropped = 0
    for record in records:
        try:
            profiles.append(contact_to_profile(record))
        except ValidationError as e:
            dropped += 1
            logger.warning(str(e), extra={"step": "map", "status": "skipped", "error": "validation"})
    return profiles, dropped
