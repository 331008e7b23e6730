from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path, PurePosixPath
from typing import List, Optional, Union

from services.errors import MalformedInputError
from sources.base import ExportMember


logger = logging.getLogger(__name__)


def decode_text(data: bytes) -> str:
    """Decode export bytes as UTF-8 (BOM tolerated), falling back to latin-1."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def _is_csv_member(name: str) -> bool:
    path = PurePosixPath(name)
    if name.endswith("/") or "__MACOSX" in path.parts or path.name.startswith("._"):
        return False
    return path.suffix.lower() == ".csv"


def read_export(
    source: Union[str, Path, bytes],
    *,
    filename: Optional[str] = None,
    max_bytes: Optional[int] = None,
) -> List[ExportMember]:
    """Return the CSV members of an upload: every .csv inside a ZIP, or the file itself.

    Raises MalformedInputError when the upload is too large, not a CSV/ZIP, or holds no CSV.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        data = path.read_bytes()
        filename = filename or path.name
    else:
        data = source
    filename = filename or "upload.csv"

    if max_bytes is not None and len(data) > max_bytes:
        raise MalformedInputError(
            f"Upload exceeds the {max_bytes // (1024 * 1024)}MB limit", filename=filename
        )

    if zipfile.is_zipfile(io.BytesIO(data)):
        members: List[ExportMember] = []
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as zf:
                for name in sorted(zf.namelist()):
                    if not _is_csv_member(name):
                        continue
                    members.append(ExportMember(filename=name, text=decode_text(zf.read(name))))
        except zipfile.BadZipFile as e:
            raise MalformedInputError(f"Corrupt archive: {e}", filename=filename) from e
        if not members:
            raise MalformedInputError("Archive contains no CSV files", filename=filename)
        logger.info(
            f"Unpacked {len(members)} CSV files from {filename}",
            extra={"step": "read_export", "status": "ok"},
        )
        return members

    if not filename.lower().endswith(".csv"):
        raise MalformedInputError("Please upload a CSV or ZIP file", filename=filename)
    return [ExportMember(filename=filename, text=decode_text(data))]
