"""Tests for fxsignals.core.storage."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from fxsignals.core.exceptions import DataSourceError
from fxsignals.core.storage import FileStore


class TestJson:
    def test_round_trip(self, tmp_path: Path) -> None:
        p = tmp_path / "pairs.json"
        FileStore.write_json(p, [{"id": 1}])
        assert FileStore.read_json(p) == [{"id": 1}]

    def test_missing_returns_default(self, tmp_path: Path) -> None:
        assert FileStore.read_json(tmp_path / "missing.json", []) == []

    def test_corrupt_returns_default(self, tmp_path: Path) -> None:
        p = tmp_path / "bad.json"
        p.write_text("{{{", encoding="utf-8")
        assert FileStore.read_json(p, {"ok": False}) == {"ok": False}

    def test_no_leftover_tmp(self, tmp_path: Path) -> None:
        p = tmp_path / "data.json"
        FileStore.write_json(p, {})
        assert not (tmp_path / "data.json.tmp").exists()

    def test_write_failure_raises_data_source_error(self, tmp_path: Path) -> None:
        p = tmp_path / "data.json"
        with patch("fxsignals.core.storage.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(DataSourceError):
                FileStore.write_json(p, {"a": 1})
        assert not (tmp_path / "data.json.tmp").exists()


class TestJsonLines:
    def test_append_and_read(self, tmp_path: Path) -> None:
        p = tmp_path / "rates" / "1.jsonl"
        FileStore.append_jsonl(p, [{"rate": 1.1}])
        FileStore.append_jsonl(p, [{"rate": 1.2}, {"rate": 1.3}])
        assert [r["rate"] for r in FileStore.read_jsonl(p)] == [1.1, 1.2, 1.3]

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert FileStore.read_jsonl(tmp_path / "none.jsonl") == []

    def test_skips_malformed_and_non_object_lines(self, tmp_path: Path) -> None:
        p = tmp_path / "mixed.jsonl"
        p.write_text('{"a": 1}\nnot json\n\n[1, 2]\n{"a": 2}\n', encoding="utf-8")
        assert FileStore.read_jsonl(p) == [{"a": 1}, {"a": 2}]

    def test_write_replaces_content(self, tmp_path: Path) -> None:
        p = tmp_path / "data.jsonl"
        FileStore.append_jsonl(p, [{"a": 1}, {"a": 2}])
        FileStore.write_jsonl(p, [{"a": 3}])
        assert FileStore.read_jsonl(p) == [{"a": 3}]
