"""Staging area management for Grut.

The staging area (index) lists the files that the next commit will
capture. It is an ordered list of path/digest pairs in which every path
appears at most once.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from grut.constants import INDEX_FILE, INDEX_VERSION
from grut.errors import IndexCorruptedError
from grut.storage import IndexEntry, ObjectStore

logger = logging.getLogger(__name__)


class StagingIndex:
    """Manager for the staging area (index).

    Nothing is cached between calls: every operation loads the index from
    disk, and every change is written back before returning.

    Index format (JSON):
    {
        "version": 1,
        "entries": [
            {"path": "relative/path/to/file", "digest": "sha256..."},
            ...
        ]
    }

    Attributes:
        grut_dir: Path to the .grut directory
        index_path: Path to the index file (.grut/index)
    """

    def __init__(self, grut_dir: Path):
        self.grut_dir = Path(grut_dir)
        self.index_path = self.grut_dir / INDEX_FILE

    def stage(self, path: str, digest: str) -> IndexEntry:
        """Record path at digest, replacing any existing entry for path.

        The replaced entry is dropped and the new one appended, so the
        restaged path moves to the end of the index.

        Returns:
            The new index entry
        """
        existing = self._load_index()
        entries = [entry for entry in existing if entry.path != path]
        replaced = len(entries) != len(existing)
        new_entry = IndexEntry(path=path, digest=digest)
        entries.append(new_entry)
        self._save_index(entries)

        logger.debug(
            "%s %s -> %s", "Restaged" if replaced else "Staged", path, digest
        )
        return new_entry

    def current(self) -> List[IndexEntry]:
        """Return the staged entries in index order."""
        return self._load_index()

    def get(self, path: str) -> Optional[IndexEntry]:
        """Return the staged entry for path, or None."""
        for entry in self._load_index():
            if entry.path == path:
                return entry
        return None

    def clear(self) -> None:
        """Clear all staged files."""
        self._save_index([])
        logger.debug("Cleared staging index")

    def is_empty(self) -> bool:
        """Check if staging area is empty."""
        return len(self._load_index()) == 0

    def _load_index(self) -> List[IndexEntry]:
        """Load index from disk."""
        if not self.index_path.exists():
            return []

        try:
            with open(self.index_path, "r", encoding="utf-8") as f:
                index = json.load(f)
        except json.JSONDecodeError as e:
            raise IndexCorruptedError(f"Corrupted index file: {e}") from e

        if not isinstance(index, dict):
            raise IndexCorruptedError("Corrupted index file: expected a JSON object")

        if index.get("version") != INDEX_VERSION:
            raise IndexCorruptedError(f"Unsupported index version: {index.get('version')}")

        raw_entries = index.get("entries")
        if not isinstance(raw_entries, list):
            raise IndexCorruptedError("Corrupted index file: entries must be a list")

        return [self._parse_entry(item) for item in raw_entries]

    def _parse_entry(self, item: Any) -> IndexEntry:
        if (
            not isinstance(item, dict)
            or not isinstance(item.get("path"), str)
            or not ObjectStore.is_valid_digest(item.get("digest"))
        ):
            raise IndexCorruptedError(f"Corrupted index entry: {item!r}")
        return IndexEntry(path=item["path"], digest=item["digest"])

    def _save_index(self, entries: List[IndexEntry]) -> None:
        """Save index to disk."""
        index: Dict[str, Any] = {
            "version": INDEX_VERSION,
            "entries": [entry.to_dict() for entry in entries],
        }

        fd, tmp_path = tempfile.mkstemp(
            dir=self.grut_dir,
            prefix=".tmp_index_",
            suffix=".json",
        )

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(index, f, indent=2, ensure_ascii=True)
                f.flush()
                os.fsync(f.fileno())

            os.replace(tmp_path, self.index_path)

        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
