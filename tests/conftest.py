from __future__ import annotations

import io
import os
import sys
import zipfile
from pathlib import Path

import pytest


def pytest_configure():
    # Ensure project root is on sys.path for absolute imports like 'pipelines.import_export'
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))
    # Set test environment knobs
    os.environ.setdefault("RUN_ENV", "test")


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    # Settings are cached per process; every test starts from a clean environment
    for key in ("AI_ENABLED", "AI_PROVIDER", "OWNER_NAME", "SENDGRID_API_KEY", "LLM_TRACE", "MAX_RETRIES"):
        monkeypatch.delenv(key, raising=False)
    from config.settings import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def db_conn(tmp_path):
    from db import schema
    from db.connection import get_connection

    conn = get_connection(str(tmp_path / "network.db"))
    schema.bootstrap(conn)
    try:
        yield conn
    finally:
        conn.close()


CONNECTIONS_HEADER = "First Name,Last Name,URL,Email Address,Company,Position,Connected On"


def connections_csv(*rows: str, preamble: bool = True) -> str:
    lines = []
    if preamble:
        lines += [
            "Notes:",
            '"When exporting your connection data, you may notice that some of the email addresses are missing."',
            "",
        ]
    lines.append(CONNECTIONS_HEADER)
    lines.extend(rows)
    return "\n".join(lines) + "\n"


def make_zip(files: dict) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, text in files.items():
            zf.writestr(name, text)
    return buf.getvalue()
