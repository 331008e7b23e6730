from __future__ import annotations

from sources.linkedin_export import (
    ConnectionsExtractor,
    ContactsExtractor,
    InvitationsExtractor,
    MessagesExtractor,
    NumbersExtractor,
    split_full_name,
)


def test_split_full_name():
    assert split_full_name("Jane  van Doe") == ("Jane", "van Doe")
    assert split_full_name("Cher") == ("Cher", None)
    assert split_full_name("  ") == (None, None)


def test_connections_row():
    rec = ConnectionsExtractor().extract({
        "First Name": "Jane",
        "Last Name": "Doe",
        "URL": "https://www.linkedin.com/in/janedoe",
        "Company": "Acme",
        "Position": "Engineer",
        "Connected On": "15 Jan 2023",
    })
    assert rec.full_name == "Jane Doe"
    assert rec.profile_url == "https://www.linkedin.com/in/janedoe"
    assert rec.connected_on == "15 Jan 2023"
    assert rec.sources == ["connection"]


def test_connections_row_without_name_is_dropped():
    assert ConnectionsExtractor().extract({"Company": "Acme"}) is None


def test_contacts_row_splits_lists_and_full_name():
    rec = ContactsExtractor().extract({
        "FullName": "Jane Doe",
        "Emails": "jane@acme.com; jane@home.org",
        "PhoneNumbers": "+1 555 0100",
        "Companies": "Acme, Globex",
        "Title": "CTO",
    })
    assert (rec.first_name, rec.last_name) == ("Jane", "Doe")
    assert rec.emails == ["jane@acme.com", "jane@home.org"]
    assert rec.phone_numbers == ["+1 555 0100"]
    assert rec.company == "Acme"


def test_invitation_counterparty_follows_direction():
    ex = InvitationsExtractor()
    outgoing = ex.extract({
        "From": "Me Owner",
        "To": "Jane Doe",
        "Direction": "OUTGOING",
        "Sent At": "6/1/23, 2:30 PM",
        "inviterProfileUrl": "https://linkedin.com/in/me",
        "inviteeProfileUrl": "https://linkedin.com/in/jane",
    })
    assert outgoing.full_name == "Jane Doe"
    assert outgoing.profile_url == "https://linkedin.com/in/jane"
    assert outgoing.invitation_status == "OUTGOING"

    incoming = ex.extract({
        "From": "Bob Smith",
        "To": "Me Owner",
        "Direction": "INCOMING",
        "inviterProfileUrl": "https://linkedin.com/in/bob",
    })
    assert incoming.full_name == "Bob Smith"
    assert incoming.profile_url == "https://linkedin.com/in/bob"
    assert ex.extract({"From": "X Y", "Direction": "SIDEWAYS"}) is None


def test_message_from_owner_uses_recipient():
    ex = MessagesExtractor()
    rec = ex.extract(
        {
            "FROM": "Me Owner",
            "TO": "Jane Doe",
            "DATE": "2023-06-01 14:30:00 UTC",
            "RECIPIENT PROFILE URLS": "https://linkedin.com/in/jane",
        },
        owner_name="me  owner",
    )
    assert rec.full_name == "Jane Doe"
    assert rec.profile_url == "https://linkedin.com/in/jane"

    rec = ex.extract({"FROM": "Bob Smith", "SENDER PROFILE URL": "https://linkedin.com/in/bob"}, owner_name="Me Owner")
    assert rec.full_name == "Bob Smith"


def test_numbers_need_a_name_and_a_number():
    phone = NumbersExtractor("phone_numbers")
    rec = phone.extract({"Name": "Jane Doe", "Number": "+1 555 0100", "Type": "Mobile"})
    assert rec.phone_numbers == ["+1 555 0100"] and rec.sources == ["phone"]
    assert phone.extract({"Number": "+1 555 0100"}) is None

    wa = NumbersExtractor("whatsapp_numbers").extract({"First Name": "Jane", "Last Name": "Doe", "WhatsApp Number": "+49 1"})
    assert wa.whatsapp_numbers == ["+49 1"] and wa.phone_numbers == []
