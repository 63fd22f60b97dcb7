"""Content-addressable object storage for Grut.

This module implements a Git-like object store using SHA-256 hashing for
content addressing. Objects (file blobs and serialized commits alike) are
stored in .grut/objects/ and are written at most once.
"""

import hashlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterator

from grut.constants import HASH_ALGORITHM, HASH_LENGTH, MIN_PREFIX_LENGTH, OBJECTS_DIR
from grut.errors import (
    AmbiguousDigestError,
    ObjectCorruptedError,
    ObjectNotFoundError,
)

logger = logging.getLogger(__name__)

_HEX_DIGITS = frozenset("0123456789abcdef")


class ObjectStore:
    """Write-once, content-addressed storage for blobs and commits.

    Objects are identified by the SHA-256 hash of their bytes. Writing the
    same content twice yields the same digest and leaves a single copy on
    disk. There is no update or delete operation.

    Storage layout:
        .grut/objects/<hash[:2]>/<hash[2:]>

    Attributes:
        grut_dir: Path to the .grut directory
        objects_dir: Path to the objects directory

    Example:
        >>> store = ObjectStore(Path(".grut"))
        >>> digest = store.write_blob(b"hello\\n")
        >>> assert store.read_blob(digest) == b"hello\\n"
    """

    def __init__(self, grut_dir: Path) -> None:
        """Initialize the object store.

        Args:
            grut_dir: Path to .grut directory

        Raises:
            ValueError: If grut_dir doesn't exist
        """
        self.grut_dir = Path(grut_dir)
        self.objects_dir = self.grut_dir / OBJECTS_DIR

        if not self.grut_dir.exists():
            raise ValueError(f"Grut directory not found: {grut_dir}")

    def write_blob(self, content: bytes) -> str:
        """Write an object to the store.

        If an object with the same hash already exists, returns the hash
        without writing. New objects are written to a temp file in the
        shard directory and renamed into place, so a reader never sees a
        partial object.

        Args:
            content: Binary content to store

        Returns:
            SHA-256 hash of the content (64 hex characters)

        Raises:
            OSError: If write fails (permissions, disk full, etc.)
        """
        digest = self.compute_hash(content)

        if self.blob_exists(digest):
            logger.debug("Object %s already stored", digest)
            return digest

        blob_path = self._get_blob_path(digest)
        blob_path.parent.mkdir(parents=True, exist_ok=True)

        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=blob_path.parent,
            prefix=".tmp_",
            suffix=".obj",
        )
        try:
            with os.fdopen(tmp_fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, blob_path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.debug("Stored object %s (%d bytes)", digest, len(content))
        return digest

    def read_blob(self, digest: str, verify_hash: bool = True) -> bytes:
        """Read an object from the store.

        Args:
            digest: SHA-256 hash of the object (64 hex characters)
            verify_hash: Whether to recompute and verify hash (default: True)

        Returns:
            Binary content of the object

        Raises:
            ObjectNotFoundError: If the digest is malformed or not stored
            ObjectCorruptedError: If hash verification fails
        """
        if not self.is_valid_digest(digest):
            raise ObjectNotFoundError(f"Object not found: {digest!r} is not a valid digest")

        blob_path = self._get_blob_path(digest)
        if not blob_path.is_file():
            raise ObjectNotFoundError(f"Object not found: {digest}")

        content = blob_path.read_bytes()

        if verify_hash:
            actual = self.compute_hash(content)
            if actual != digest:
                raise ObjectCorruptedError(
                    f"Object corrupted: expected {digest}, got {actual}"
                )

        return content

    def blob_exists(self, digest: str) -> bool:
        """Check if an object exists in the store.

        Malformed digests are reported as absent rather than raising.
        """
        if not self.is_valid_digest(digest):
            return False
        return self._get_blob_path(digest).is_file()

    def resolve(self, prefix: str) -> str:
        """Expand an abbreviated digest to the single stored digest it names.

        Args:
            prefix: Full digest or leading hex characters of one

        Returns:
            The full 64-character digest

        Raises:
            ObjectNotFoundError: If no stored object matches
            AmbiguousDigestError: If more than one stored object matches
        """
        prefix = prefix.strip().lower()

        if len(prefix) == HASH_LENGTH:
            if self.blob_exists(prefix):
                return prefix
            raise ObjectNotFoundError(f"Object not found: {prefix}")

        if len(prefix) < MIN_PREFIX_LENGTH or not set(prefix) <= _HEX_DIGITS:
            raise ObjectNotFoundError(
                f"Object not found: {prefix!r} (need at least "
                f"{MIN_PREFIX_LENGTH} hex characters)"
            )

        shard = self.objects_dir / prefix[:2]
        if not shard.is_dir():
            raise ObjectNotFoundError(f"Object not found: {prefix}")

        matches = sorted(
            prefix[:2] + entry.name
            for entry in shard.iterdir()
            if entry.is_file() and entry.name.startswith(prefix[2:])
            and self.is_valid_digest(prefix[:2] + entry.name)
        )

        if not matches:
            raise ObjectNotFoundError(f"Object not found: {prefix}")
        if len(matches) > 1:
            shown = ", ".join(m[:12] for m in matches[:5])
            raise AmbiguousDigestError(
                f"Digest prefix {prefix} is ambiguous: {shown}"
            )
        return matches[0]

    def iter_digests(self) -> Iterator[str]:
        """Yield the digest of every stored object, in sorted order."""
        if not self.objects_dir.is_dir():
            return
        for shard in sorted(self.objects_dir.iterdir()):
            if not shard.is_dir():
                continue
            for entry in sorted(shard.iterdir()):
                digest = shard.name + entry.name
                if entry.is_file() and self.is_valid_digest(digest):
                    yield digest

    @staticmethod
    def compute_hash(content: bytes) -> str:
        """Compute the SHA-256 hex digest of content."""
        hasher = hashlib.new(HASH_ALGORITHM)
        hasher.update(content)
        return hasher.hexdigest()

    @staticmethod
    def is_valid_digest(digest: object) -> bool:
        """Return True if digest is a lowercase 64-character hex string."""
        return (
            isinstance(digest, str)
            and len(digest) == HASH_LENGTH
            and set(digest) <= _HEX_DIGITS
        )

    def _get_blob_path(self, digest: str) -> Path:
        """Get the filesystem path for an object.

        Uses Git-like sharding: objects/<hash[:2]>/<hash[2:]>
        """
        return self.objects_dir / digest[:2] / digest[2:]
