"""Unit tests for ObjectStore."""

import hashlib
from pathlib import Path

import pytest

from grut.errors import (
    AmbiguousDigestError,
    ObjectCorruptedError,
    ObjectNotFoundError,
)
from grut.storage.object_store import ObjectStore


@pytest.fixture
def grut_dir(tmp_path: Path) -> Path:
    """Create a temporary .grut directory structure."""
    grut = tmp_path / ".grut"
    grut.mkdir()
    (grut / "objects").mkdir()
    return grut


@pytest.fixture
def store(grut_dir: Path) -> ObjectStore:
    """Create an ObjectStore instance."""
    return ObjectStore(grut_dir)


def _object_files(store: ObjectStore) -> list:
    return [p for p in store.objects_dir.rglob("*") if p.is_file()]


class TestObjectStoreInit:
    """Test ObjectStore initialization."""

    def test_init_with_valid_dir(self, grut_dir: Path) -> None:
        store = ObjectStore(grut_dir)
        assert store.grut_dir == grut_dir
        assert store.objects_dir == grut_dir / "objects"

    def test_init_with_nonexistent_dir(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="not found"):
            ObjectStore(tmp_path / "nonexistent")


class TestWriteBlob:
    """Test object writing."""

    def test_write_blob_basic(self, store: ObjectStore) -> None:
        content = b"hello\n"
        digest = store.write_blob(content)

        assert digest == hashlib.sha256(content).hexdigest()
        assert len(digest) == 64
        assert store.blob_exists(digest)

    def test_write_blob_deduplication(self, store: ObjectStore) -> None:
        """Identical content gives the same digest and one file on disk."""
        content = b"Test data for deduplication"

        hash1 = store.write_blob(content)
        hash2 = store.write_blob(content)

        assert hash1 == hash2
        assert len(_object_files(store)) == 1

    def test_write_blob_does_not_rewrite_existing(self, store: ObjectStore) -> None:
        """An existing object file is left untouched by a second write."""
        digest = store.write_blob(b"once")
        blob_path = store._get_blob_path(digest)
        mtime_before = blob_path.stat().st_mtime_ns

        store.write_blob(b"once")

        assert blob_path.stat().st_mtime_ns == mtime_before

    def test_write_blob_different_content(self, store: ObjectStore) -> None:
        assert store.write_blob(b"First content") != store.write_blob(b"Second content")

    def test_write_blob_creates_sharded_directory(self, store: ObjectStore) -> None:
        digest = store.write_blob(b"Test sharding")

        shard_dir = store.objects_dir / digest[:2]
        assert shard_dir.is_dir()
        assert (shard_dir / digest[2:]).is_file()

    def test_write_blob_empty_content(self, store: ObjectStore) -> None:
        digest = store.write_blob(b"")
        assert store.read_blob(digest) == b""

    def test_write_blob_leaves_no_temp_files(self, store: ObjectStore) -> None:
        store.write_blob(b"atomic")
        assert not [p for p in _object_files(store) if p.name.startswith(".tmp_")]


class TestReadBlob:
    """Test object reading."""

    def test_read_blob_roundtrip(self, store: ObjectStore) -> None:
        content = bytes(range(256))
        assert store.read_blob(store.write_blob(content)) == content

    def test_read_blob_not_found(self, store: ObjectStore) -> None:
        with pytest.raises(ObjectNotFoundError):
            store.read_blob("a" * 64)

    def test_read_blob_invalid_digest_is_not_found(self, store: ObjectStore) -> None:
        with pytest.raises(ObjectNotFoundError):
            store.read_blob("not-a-digest")

    def test_read_blob_detects_corruption(self, store: ObjectStore) -> None:
        digest = store.write_blob(b"original")
        store._get_blob_path(digest).write_bytes(b"tampered")

        with pytest.raises(ObjectCorruptedError, match="corrupted"):
            store.read_blob(digest)

        assert store.read_blob(digest, verify_hash=False) == b"tampered"


class TestBlobExists:
    """Test existence checks."""

    def test_missing_blob(self, store: ObjectStore) -> None:
        assert not store.blob_exists("b" * 64)

    def test_malformed_digests(self, store: ObjectStore) -> None:
        assert not store.blob_exists("abc")
        assert not store.blob_exists("G" * 64)
        assert not store.blob_exists(None)  # type: ignore[arg-type]


class TestResolve:
    """Test abbreviated digest resolution."""

    def test_resolve_full_digest(self, store: ObjectStore) -> None:
        digest = store.write_blob(b"full")
        assert store.resolve(digest) == digest

    def test_resolve_prefix(self, store: ObjectStore) -> None:
        digest = store.write_blob(b"prefix me")
        assert store.resolve(digest[:7]) == digest
        assert store.resolve(digest[:7].upper()) == digest

    def test_resolve_unknown_prefix(self, store: ObjectStore) -> None:
        store.write_blob(b"something")
        with pytest.raises(ObjectNotFoundError):
            store.resolve("0000000")

    def test_resolve_too_short(self, store: ObjectStore) -> None:
        digest = store.write_blob(b"short")
        with pytest.raises(ObjectNotFoundError, match="at least"):
            store.resolve(digest[:3])

    def test_resolve_ambiguous_prefix(self, store: ObjectStore) -> None:
        # Two objects sharing a 4-character prefix, planted directly
        shard = store.objects_dir / "ab"
        shard.mkdir()
        (shard / ("cd" + "0" * 60)).write_bytes(b"x")
        (shard / ("cd" + "1" * 60)).write_bytes(b"y")

        with pytest.raises(AmbiguousDigestError, match="ambiguous"):
            store.resolve("abcd")

        assert store.resolve("abcd0") == "abcd" + "0" * 60


class TestIterDigests:
    """Test enumeration of stored objects."""

    def test_iter_digests(self, store: ObjectStore) -> None:
        digests = {store.write_blob(c) for c in (b"a", b"b", b"c", b"a")}
        assert set(store.iter_digests()) == digests
        assert len(list(store.iter_digests())) == 3

    def test_iter_digests_empty(self, store: ObjectStore) -> None:
        assert list(store.iter_digests()) == []
