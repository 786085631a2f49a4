"""FilesystemStore 테스트."""

from __future__ import annotations

import os

import pytest

from cmis_gateway.repositories import FilesystemStore


def test_missing_key_returns_none(tmp_path):
    store = FilesystemStore(tmp_path / "does-not-exist")

    assert store.get("document_locks") is None
    assert not (tmp_path / "does-not-exist").exists()


def test_put_creates_directory(tmp_path):
    store = FilesystemStore(tmp_path / "nested" / "locks")

    store.put("document_locks", '{"a": 1}')

    assert store.get("document_locks") == '{"a": 1}'
    assert (tmp_path / "nested" / "locks" / "document_locks.json").exists()


def test_put_overwrites_whole_blob(tmp_path):
    store = FilesystemStore(tmp_path)
    store.put("document_locks", "first-version-that-is-longer")
    store.put("document_locks", "second")

    assert store.get("document_locks") == "second"


def test_failed_write_keeps_previous_snapshot(tmp_path, monkeypatch):
    store = FilesystemStore(tmp_path)
    store.put("document_locks", "stable")

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", broken_replace)

    with pytest.raises(OSError):
        store.put("document_locks", "torn")

    monkeypatch.undo()
    assert store.get("document_locks") == "stable"
    assert [p.name for p in tmp_path.iterdir()] == ["document_locks.json"]


def test_key_is_made_filename_safe(tmp_path):
    store = FilesystemStore(tmp_path)

    store.put("a/b\\c", "x")

    assert (tmp_path / "a_b_c.json").read_text(encoding="utf-8") == "x"
