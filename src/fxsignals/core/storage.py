"""Safe, atomic file I/O with logging.

All file repositories go through :class:`FileStore` so that reads of missing
or corrupt files degrade to a default, and failed writes are logged and then
raised as :class:`~fxsignals.core.exceptions.DataSourceError` for the calling
runner to handle per pair.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from fxsignals.core.exceptions import DataSourceError

logger = logging.getLogger(__name__)


class FileStore:
    """Centralised file I/O: always logs errors, never silently swallows."""

    # -- JSON -------------------------------------------------------------

    @staticmethod
    def read_json(path: Path, default: Any = None) -> Any:
        """Read a JSON file, returning *default* if missing or corrupt."""
        if not path.is_file():
            return default
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return data if data is not None else default
        except (OSError, json.JSONDecodeError, TypeError) as exc:
            logger.warning("read_json(%s) failed: %s", path, exc)
            return default

    @staticmethod
    def write_json(path: Path, data: Any) -> None:
        """Atomic JSON write with ``indent=2`` via a ``.tmp`` sibling."""
        FileStore._atomic_write(path, json.dumps(data, indent=2) + "\n")

    # -- JSON lines -------------------------------------------------------

    @staticmethod
    def read_jsonl(path: Path) -> list[dict[str, Any]]:
        """Read every well-formed record of a JSON-lines file.

        Malformed lines are skipped with a debug message; a missing file
        yields an empty list.
        """
        if not path.is_file():
            return []
        records: list[dict[str, Any]] = []
        try:
            with path.open("r", encoding="utf-8") as fh:
                for lineno, line in enumerate(fh, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        record = json.loads(line)
                    except json.JSONDecodeError as exc:
                        logger.debug("Skipping malformed line %d in %s: %s", lineno, path, exc)
                        continue
                    if isinstance(record, dict):
                        records.append(record)
        except OSError as exc:
            logger.error("read_jsonl(%s) failed: %s", path, exc)
            raise DataSourceError(f"cannot read {path}: {exc}") from exc
        return records

    @staticmethod
    def append_jsonl(path: Path, records: Iterable[dict[str, Any]]) -> None:
        """Append records to a JSON-lines file."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as fh:
                for record in records:
                    fh.write(json.dumps(record) + "\n")
        except OSError as exc:
            logger.error("append_jsonl(%s) failed: %s", path, exc)
            raise DataSourceError(f"cannot append to {path}: {exc}") from exc

    @staticmethod
    def write_jsonl(path: Path, records: Iterable[dict[str, Any]]) -> None:
        """Atomically replace a JSON-lines file with *records*."""
        FileStore._atomic_write(path, "".join(json.dumps(r) + "\n" for r in records))

    # -- internal ---------------------------------------------------------

    @staticmethod
    def _atomic_write(path: Path, content: str) -> None:
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(content, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            logger.error("write(%s) failed: %s", path, exc)
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            raise DataSourceError(f"cannot write {path}: {exc}") from exc
