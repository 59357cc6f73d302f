"""Tests for the disk-backed blob store."""

import io
from pathlib import Path

from bookshelf.storage import DiskBucket, Storage


class TestDiskBucket:
    def test_store_uses_random_name_with_extension(self, tmp_path: Path) -> None:
        bucket = DiskBucket(tmp_path / "books")
        first = bucket.store(io.BytesIO(b"one"), "PDF")
        second = bucket.store(io.BytesIO(b"two"), ".pdf")

        assert first != second
        assert first.endswith(".pdf") and second.endswith(".pdf")
        assert bucket.path(first).read_bytes() == b"one"

    def test_store_rewinds_stream(self, tmp_path: Path) -> None:
        bucket = DiskBucket(tmp_path)
        stream = io.BytesIO(b"content")
        stream.read()
        key = bucket.store(stream, "epub")
        assert bucket.path(key).read_bytes() == b"content"

    def test_store_named_keeps_filename(self, tmp_path: Path) -> None:
        bucket = DiskBucket(tmp_path)
        key = bucket.store_named(b"jpeg", "abc_cover.jpg")
        assert key == "abc_cover.jpg"
        assert bucket.exists(key)

    def test_delete_removes_file(self, tmp_path: Path) -> None:
        bucket = DiskBucket(tmp_path)
        key = bucket.store_named(b"x", "gone.jpg")
        bucket.delete(key)
        assert not bucket.exists(key)

    def test_delete_missing_is_quiet(self, tmp_path: Path) -> None:
        bucket = DiskBucket(tmp_path)
        bucket.delete("never-there.jpg")
        bucket.delete("")

    def test_path_cannot_escape_bucket(self, tmp_path: Path) -> None:
        bucket = DiskBucket(tmp_path / "covers")
        assert bucket.path("../../etc/passwd") == tmp_path / "covers" / "passwd"

    def test_exists_false_for_empty_key(self, tmp_path: Path) -> None:
        assert DiskBucket(tmp_path).exists("") is False


def test_storage_creates_both_buckets(tmp_path: Path) -> None:
    storage = Storage(tmp_path / "root")
    assert storage.books.root.is_dir()
    assert storage.covers.root.is_dir()
    assert storage.books.root != storage.covers.root
