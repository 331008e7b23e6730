from __future__ import annotations

import pytest

from models import ContactRecord
from services.errors import ValidationError
from services.identity import ContactMerger
from services.mapping import build_tags, contact_to_profile, map_contacts
from sources.base import ParsedFile


def _files():
    connections = ParsedFile(
        filename="Connections.csv",
        kind="connections",
        rows=[
            {"First Name": "Jane", "Last Name": "Doe", "URL": "https://www.linkedin.com/in/JaneDoe/", "Company": "Acme", "Connected On": "15 Jan 2023"},
            {"First Name": "Prince", "URL": "https://linkedin.com/in/prince"},
            {"First Name": "Me", "Last Name": "Owner", "URL": "https://linkedin.com/in/me"},
        ],
    )
    contacts = ParsedFile(
        filename="Contacts.csv",
        kind="contacts",
        rows=[{"FirstName": "Jane", "LastName": "Doe", "Emails": "Jane@Acme.com, jane@home.org", "Companies": "Globex"}],
    )
    phones = ParsedFile(
        filename="PhoneNumbers.csv",
        kind="phone_numbers",
        rows=[{"Name": "Jane Doe", "Number": "+1 555 0100"}],
    )
    return [connections, contacts, phones]


def test_rows_without_full_name_and_owner_are_excluded():
    merger = ContactMerger(owner_name="Me Owner")
    records = merger.merge(_files())
    assert [r.full_name for r in records] == ["Jane Doe"]
    assert merger.stats["skipped_no_name"] == 1
    assert merger.stats["skipped_owner"] == 1


def test_merge_is_order_independent():
    forward = ContactMerger(owner_name="Me Owner").merge(_files())
    backward = ContactMerger(owner_name="Me Owner").merge(list(reversed(_files())))
    assert [r.model_dump() for r in forward] == [r.model_dump() for r in backward]
    jane = forward[0]
    # Connections are applied first, so their company wins
    assert jane.company == "Acme"
    assert jane.emails == ["Jane@Acme.com", "jane@home.org"]
    assert jane.phone_numbers == ["+1 555 0100"]
    assert jane.sources == ["connection", "contact", "phone"]


def test_contact_record_merge_fills_blanks_only():
    a = ContactRecord(first_name="Jane", last_name="Doe", company="Acme", emails=["a@x.com"])
    b = ContactRecord(first_name="Jane", last_name="Doe", company="Globex", position="CTO", emails=["a@x.com", "b@x.com"])
    a.merge(b)
    assert a.company == "Acme" and a.position == "CTO"
    assert a.emails == ["a@x.com", "b@x.com"]


def test_mapping_builds_canonical_profile_and_tags():
    record = ContactMerger().merge(_files())[0]
    profile = contact_to_profile(record)
    assert profile.profile_url == "https://linkedin.com/in/janedoe"
    assert profile.email == "jane@acme.com"
    assert profile.connected_on.startswith("2023-01-15")
    assert profile.connected_on_estimated is False
    assert "source:connection" in profile.tags
    assert "email:jane@home.org" in profile.tags
    assert "email:jane@acme.com" not in profile.tags
    assert "phone:+1 555 0100" in profile.tags


def test_invitation_and_message_tags():
    record = ContactRecord(
        first_name="Bob",
        last_name="Smith",
        invitation_status="INCOMING",
        invitation_sent_at="6/1/23, 2:30 PM",
        last_message_date="2023-07-02 09:00:00 UTC",
        sources=["invitation"],
    )
    assert build_tags(record, None) == [
        "source:invitation",
        "invitation:incoming",
        "invited_at:2023-06-01",
        "last_message:2023-07-02",
    ]


def test_missing_connection_date_is_estimated():
    profile = contact_to_profile(ContactRecord(first_name="A", last_name="B", profile_url="https://linkedin.com/in/ab"))
    assert profile.connected_on_estimated is True
    assert profile.connected_on


def test_profile_without_url_fails_validation():
    with pytest.raises(ValidationError):
        contact_to_profile(ContactRecord(first_name="Jane", last_name="Doe"))
    profiles, dropped = map_contacts([
        ContactRecord(first_name="Jane", last_name="Doe"),
        ContactRecord(first_name="Bob", last_name="Smith", profile_url="https://linkedin.com/in/bob"),
    ])
    assert dropped == 1
    assert [p.full_name for p in profiles] == ["Bob Smith"]
