"""JSON output for record collections.

The collection is written as one JSON array with 4-space indentation,
field names as their stable aliases ("Name", "BaseStats", ...). The file
is written to a temporary sibling first and renamed into place, so a
failed write never leaves a truncated file behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel, TypeAdapter, ValidationError

from dblscraper.common.exceptions import PersistException, SerializationException
from dblscraper.data_types import RecordT

logger = logging.getLogger(__name__)

INDENT = 4


def dump_records(records: Sequence[BaseModel]) -> str:
    """Encode records as an indented JSON array.

    Args:
        records: Records in output order.

    Returns:
        The JSON text. Non-ASCII characters are written as-is.

    Raises:
        SerializationException: If a record cannot be encoded.
    """
    try:
        payload = [
            record.model_dump(mode="json", by_alias=True) for record in records
        ]
        return json.dumps(payload, indent=INDENT, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise SerializationException(f"Cannot encode records: {e}") from e


def _default_file_mode() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return 0o644 & ~umask


def write_records(records: Sequence[BaseModel], path: Path | str) -> Path:
    """Write records to ``path`` atomically.

    Args:
        records: Records in output order.
        path: Destination file. Missing parent directories are an error.

    Returns:
        The destination path.

    Raises:
        SerializationException: If a record cannot be encoded.
        PersistException: If the file cannot be written.
    """
    path = Path(path)
    text = dump_records(records)

    tmp_name: str | None = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            # mkstemp creates 0600
            os.fchmod(f.fileno(), _default_file_mode())
            f.write(text)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise PersistException(
            f"Cannot write {path}: {e}", path=str(path)
        ) from e

    logger.info(f"Wrote {len(records)} records to {path}")
    return path


def load_records(path: Path | str, model: type[RecordT]) -> list[RecordT]:
    """Read a collection written by write_records back into models.

    Raises:
        SerializationException: If the file is not a valid collection.
        PersistException: If the file cannot be read.
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise PersistException(
            f"Cannot read {path}: {e}", path=str(path)
        ) from e

    try:
        return TypeAdapter(list[model]).validate_json(data)  # type: ignore[valid-type]
    except ValidationError as e:
        raise SerializationException(
            f"Invalid record file {path}: {e}", path=str(path)
        ) from e
