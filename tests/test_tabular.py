from __future__ import annotations

import pytest

from conftest import connections_csv, make_zip
from services.errors import MalformedInputError
from sources.archive import read_export
from sources.detect import detect_file_kind
from sources.tabular import locate_header, parse_table, split_line


def test_split_line_keeps_commas_inside_quotes():
    assert split_line('Jane,Doe,"Acme, Inc.",Engineer') == ["Jane", "Doe", "Acme, Inc.", "Engineer"]


def test_split_line_rejects_garbage_after_quote():
    with pytest.raises(MalformedInputError):
        split_line('Jane,"Doe"x,Acme', filename="Connections.csv", line_no=7)


def test_locate_header_skips_preamble():
    lines = connections_csv("Jane,Doe,https://linkedin.com/in/jane,,Acme,Engineer,15 Jan 2023").splitlines()
    idx = locate_header(lines)
    assert lines[idx].startswith("First Name,Last Name")


def test_parse_table_handles_quotes_short_rows_and_bom():
    content = "\ufeff" + connections_csv(
        'Jane,Doe,https://www.linkedin.com/in/janedoe,,"Acme, Inc.",Engineer,15 Jan 2023',
        "Bob,Smith",
    )
    parsed = parse_table("Connections.csv", content)
    assert parsed.kind == "connections"
    assert parsed.headers[0] == "First Name"
    assert parsed.rows[0]["Company"] == "Acme, Inc."
    assert parsed.rows[0]["Connected On"] == "15 Jan 2023"
    # Short line maps only the overlapping prefix
    assert parsed.rows[1] == {"First Name": "Bob", "Last Name": "Smith"}


def test_parse_table_skips_malformed_lines_and_continues():
    content = connections_csv(
        'Bad,"Row"x,https://linkedin.com/in/bad,,Acme,Engineer,15 Jan 2023',
        "Jane,Doe,https://linkedin.com/in/jane,,Acme,Engineer,15 Jan 2023",
        preamble=False,
    )
    parsed = parse_table("Connections.csv", content)
    assert parsed.skipped_lines == 1
    assert [r["First Name"] for r in parsed.rows] == ["Jane"]


def test_parse_table_keeps_rows_with_stray_quotes_inside_names():
    content = connections_csv(
        'Jane,O"Neil,https://linkedin.com/in/jane,,Acme,Engineer,15 Jan 2023',
        "Bob,Smith,https://linkedin.com/in/bob,,Acme,Engineer,15 Jan 2023",
        "Ann,Lee,https://linkedin.com/in/ann,,Globex,Sales,15 Jan 2023",
        'Kim,D"Arcy,https://linkedin.com/in/kim,,Globex,Sales,15 Jan 2023',
    )
    parsed = parse_table("Connections.csv", content)
    assert parsed.skipped_lines == 0
    assert [r["First Name"] for r in parsed.rows] == ["Jane", "Bob", "Ann", "Kim"]
    assert parsed.rows[0]["Last Name"] == "ONeil"


def test_parse_table_rejoins_multiline_quoted_values():
    content = (
        "CONVERSATION ID,FROM,TO,DATE,CONTENT,SENDER PROFILE URL,RECIPIENT PROFILE URLS\n"
        'c1,Jane Doe,Me Owner,2023-06-01 14:30:00 UTC,"hello\nsecond line",https://linkedin.com/in/jane,https://linkedin.com/in/me\n'
    )
    parsed = parse_table("messages.csv", content)
    assert parsed.kind == "messages"
    assert len(parsed.rows) == 1
    assert parsed.rows[0]["CONTENT"] == "hello\nsecond line"


def test_empty_file_yields_no_rows():
    parsed = parse_table("Connections.csv", "\n\n")
    assert parsed.rows == []


@pytest.mark.parametrize(
    "filename, content, expected",
    [
        ("Connections.csv", "", "connections"),
        ("WhatsApp Phone Numbers.csv", "", "whatsapp_numbers"),
        ("PhoneNumbers.csv", "", "phone_numbers"),
        ("Invitations.csv", "", "invitations"),
        ("messages.csv", "", "messages"),
        ("export.csv", "FirstName,LastName,Emails\n", "contacts"),
        ("export.csv", "From,To,Sent At,Message,Direction,inviterProfileUrl,inviteeProfileUrl\n", "invitations"),
        ("data.csv", "First Name,Last Name,URL\n", "connections"),
        ("data.csv", "Number,Type,Extension\n", "phone_numbers"),
        ("data.csv", "alpha,beta\n", "unknown"),
    ],
)
def test_detect_file_kind(filename, content, expected):
    assert detect_file_kind(filename, content) == expected


def test_read_export_zip_returns_sorted_csv_members():
    data = make_zip({
        "messages.csv": "CONVERSATION ID,FROM\n",
        "Connections.csv": connections_csv(),
        "__MACOSX/._Connections.csv": "junk",
        "README.txt": "not a table",
    })
    members = read_export(data, filename="export.zip")
    assert [m.filename for m in members] == ["Connections.csv", "messages.csv"]
    assert "First Name,Last Name" in members[0].text


def test_read_export_single_csv_from_path(tmp_path):
    path = tmp_path / "Connections.csv"
    path.write_text(connections_csv(), encoding="utf-8")
    members = read_export(path)
    assert len(members) == 1 and members[0].filename == "Connections.csv"


def test_read_export_rejects_bad_uploads():
    with pytest.raises(MalformedInputError):
        read_export(b"hello", filename="notes.txt")
    with pytest.raises(MalformedInputError):
        read_export(make_zip({"README.txt": "nothing here"}), filename="export.zip")
    with pytest.raises(MalformedInputError):
        read_export(b"x" * 2048, filename="big.csv", max_bytes=1024)
