"""Commit records and the commit chain.

A commit is an immutable snapshot of the staging index plus a timestamp,
a message and a link to its parent. Commits are serialized to canonical
JSON and kept in the same object store as file blobs, so a commit's
digest is simply the digest of its serialized bytes.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Sequence, Tuple

from grut.constants import MAX_HISTORY_DEPTH
from grut.errors import CorruptHistoryError, ObjectCorruptedError
from grut.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexEntry:
    """One staged file: a working path and the digest of its content."""

    path: str
    digest: str

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "digest": self.digest}


@dataclass(frozen=True)
class Commit:
    """A stored commit.

    Attributes:
        digest: Digest of the serialized record (not part of the record)
        timestamp: ISO-8601 UTC creation time
        message: Commit message
        parent: Digest of the previous commit, or None for the root commit
        files: Frozen copy of the staging index at commit time
    """

    digest: str
    timestamp: str
    message: str
    parent: Optional[str]
    files: Tuple[IndexEntry, ...]

    @property
    def is_root(self) -> bool:
        return self.parent is None

    def find_file(self, path: str) -> Optional[IndexEntry]:
        """Return the entry for path in this commit, if any."""
        for entry in self.files:
            if entry.path == path:
                return entry
        return None

    def to_record(self) -> Dict[str, Any]:
        """Return the hashed fields of the commit, without its digest."""
        return build_record(self.timestamp, self.message, self.parent, self.files)

    def serialize(self) -> bytes:
        return serialize_record(self.to_record())


def build_record(
    timestamp: str,
    message: str,
    parent: Optional[str],
    files: Sequence[IndexEntry],
) -> Dict[str, Any]:
    return {
        "timestamp": timestamp,
        "message": message,
        "parent": parent,
        "files": [entry.to_dict() for entry in files],
    }


def serialize_record(record: Dict[str, Any]) -> bytes:
    """Canonical JSON encoding: sorted keys, no whitespace, ASCII only.

    Non-ASCII text, including surrogate-escaped bytes from undecodable
    file names or arguments, is stored as \\u escapes.
    """
    return json.dumps(
        record,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
    ).encode("ascii")


def parse_record(digest: str, raw: bytes) -> Commit:
    """Decode and validate a stored commit record.

    Raises:
        CorruptHistoryError: If the bytes are not a well-formed commit
    """
    try:
        record = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CorruptHistoryError(f"Object {digest} is not a commit: {e}") from e

    if not isinstance(record, dict):
        raise CorruptHistoryError(f"Object {digest} is not a commit record")

    missing = {"timestamp", "message", "parent", "files"} - record.keys()
    if missing:
        raise CorruptHistoryError(
            f"Commit {digest} is missing field(s): {', '.join(sorted(missing))}"
        )

    timestamp = record["timestamp"]
    message = record["message"]
    parent = record["parent"]
    files = record["files"]

    if not isinstance(timestamp, str) or not isinstance(message, str):
        raise CorruptHistoryError(f"Commit {digest} has malformed timestamp or message")
    if parent is not None and not ObjectStore.is_valid_digest(parent):
        raise CorruptHistoryError(f"Commit {digest} has malformed parent: {parent!r}")
    if not isinstance(files, list):
        raise CorruptHistoryError(f"Commit {digest} has malformed file list")

    entries = []
    for item in files:
        if (
            not isinstance(item, dict)
            or not isinstance(item.get("path"), str)
            or not ObjectStore.is_valid_digest(item.get("digest"))
        ):
            raise CorruptHistoryError(f"Commit {digest} has malformed file entry: {item!r}")
        entries.append(IndexEntry(path=item["path"], digest=item["digest"]))

    return Commit(
        digest=digest,
        timestamp=timestamp,
        message=message,
        parent=parent,
        files=tuple(entries),
    )


class CommitStore:
    """Creates, reads and walks commits kept in an :class:`ObjectStore`.

    Attributes:
        object_store: Store holding the serialized commits
        max_depth: Number of parent links followed before a walk is
            declared corrupt
    """

    def __init__(self, object_store: ObjectStore, max_depth: int = MAX_HISTORY_DEPTH):
        self.object_store = object_store
        self.max_depth = max_depth

    def create(
        self,
        message: str,
        parent: Optional[str],
        files: Sequence[IndexEntry],
        timestamp: Optional[str] = None,
    ) -> Commit:
        """Build a commit record and write it to the object store.

        The digest is computed over the record without a digest field, so
        re-creating an identical record yields the same digest and no new
        object.

        Args:
            message: Commit message
            parent: Digest of the parent commit, or None for the first commit
            files: Staged entries to snapshot
            timestamp: Override the creation time (ISO-8601)

        Returns:
            The stored commit, with its digest filled in
        """
        if timestamp is None:
            timestamp = datetime.now(timezone.utc).isoformat()

        record = build_record(timestamp, message, parent, files)
        digest = self.object_store.write_blob(serialize_record(record))
        logger.debug("Wrote commit %s (parent %s, %d file(s))", digest, parent, len(files))

        return Commit(
            digest=digest,
            timestamp=timestamp,
            message=message,
            parent=parent,
            files=tuple(files),
        )

    def read(self, digest: str) -> Commit:
        """Read a commit by digest.

        Raises:
            ObjectNotFoundError: If no object has this digest
            CorruptHistoryError: If the object is not a valid commit record
        """
        try:
            raw = self.object_store.read_blob(digest)
        except ObjectCorruptedError as e:
            raise CorruptHistoryError(f"Commit {digest} is corrupted: {e}") from e
        return parse_record(digest, raw)

    def walk(self, start: Optional[str]) -> Iterator[Commit]:
        """Yield commits from start back to the root, newest first.

        Each call reads from storage again. A walk that revisits a digest
        or exceeds ``max_depth`` raises CorruptHistoryError.

        Args:
            start: Digest to begin at; None yields nothing
        """
        visited = set()
        cursor = start

        while cursor is not None:
            if cursor in visited:
                raise CorruptHistoryError(f"Parent chain cycles back to commit {cursor}")
            if len(visited) >= self.max_depth:
                raise CorruptHistoryError(
                    f"Parent chain exceeds {self.max_depth} commits"
                )
            visited.add(cursor)

            commit = self.read(cursor)
            yield commit
            cursor = commit.parent
