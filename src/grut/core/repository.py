"""Repository handle tying the object store, index, HEAD and diff engine together.

A :class:`Repository` only knows where its files live. HEAD and the
staging index are read from disk at the start of every operation and
written back before it returns, so two handles on the same directory
always agree.
"""

import itertools
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from grut.constants import GRUT_DIR, HEAD_FILE, OBJECTS_DIR
from grut.core.staging import StagingIndex
from grut.diff import DiffEngine, FileReport
from grut.errors import (
    CorruptHistoryError,
    NotARepositoryError,
    ObjectNotFoundError,
    SourceFileUnreadableError,
)
from grut.storage import Commit, CommitStore, IndexEntry, ObjectStore

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class HistoryEntry:
    """Display fields of one commit in the history listing."""

    digest: str
    timestamp: str
    message: str
    parent: Optional[str] = None


class Repository:
    """A Grut repository rooted at a working directory.

    Attributes:
        root: Working directory containing the .grut directory
        grut_dir: Path to .grut
        head_path: Path to the HEAD file
        object_store: Object store for blobs and commits
        commits: Commit chain stored in object_store
        index: Staging index
        diff_engine: Engine used by show_commit

    Example:
        >>> repo, created = Repository.initialize(Path("."))
        >>> repo.stage_file("a.txt")
        >>> digest = repo.commit("first")
    """

    def __init__(self, root: PathLike):
        """Open an existing repository.

        Args:
            root: Working directory containing .grut/

        Raises:
            NotARepositoryError: If root has no .grut directory
        """
        self.root = Path(root).resolve()
        self.grut_dir = self.root / GRUT_DIR

        if not self.grut_dir.is_dir():
            raise NotARepositoryError(
                f"Not a grut repository (no {GRUT_DIR}/ found in {self.root}). "
                "Run `grut init` first."
            )

        self.head_path = self.grut_dir / HEAD_FILE
        self.object_store = ObjectStore(self.grut_dir)
        self.commits = CommitStore(self.object_store)
        self.index = StagingIndex(self.grut_dir)
        self.diff_engine = DiffEngine(self.object_store, self.commits)

    @classmethod
    def initialize(cls, root: PathLike) -> Tuple["Repository", bool]:
        """Create the repository layout under root if it is missing.

        Running this on an existing repository is not an error: any
        missing piece of the layout is recreated, existing HEAD and index
        are left alone, and ``created`` is False.

        Returns:
            Tuple of (repository, created)
        """
        root = Path(root).resolve()
        grut_dir = root / GRUT_DIR
        created = not grut_dir.exists()

        (grut_dir / OBJECTS_DIR).mkdir(parents=True, exist_ok=True)

        head_path = grut_dir / HEAD_FILE
        if not head_path.exists():
            head_path.write_text("", encoding="utf-8")

        repo = cls(root)
        if not repo.index.index_path.exists():
            repo.index.clear()

        if created:
            logger.info("Initialized empty grut repository in %s", grut_dir)
        else:
            logger.info("Repository already initialized in %s", grut_dir)
        return repo, created

    @classmethod
    def open(cls, root: PathLike) -> "Repository":
        """Open the repository rooted exactly at root.

        Raises:
            NotARepositoryError: If root has no .grut/ directory
        """
        return cls(root)

    @classmethod
    def discover(cls, start: PathLike) -> "Repository":
        """Open the repository containing start, searching parent directories.

        Raises:
            NotARepositoryError: If no enclosing directory has a .grut/
        """
        start = Path(start).resolve()
        for candidate in (start, *start.parents):
            if (candidate / GRUT_DIR).is_dir():
                return cls.open(candidate)
        raise NotARepositoryError(
            f"Not a grut repository (or any parent up to /): {start}. "
            "Run `grut init` first."
        )

    # HEAD

    def head(self) -> Optional[str]:
        """Return the digest HEAD points at, or None before the first commit.

        Raises:
            CorruptHistoryError: If HEAD holds something other than a digest
        """
        if not self.head_path.exists():
            return None

        value = self.head_path.read_text(encoding="utf-8").strip()
        if not value:
            return None
        if not ObjectStore.is_valid_digest(value):
            raise CorruptHistoryError(f"HEAD does not hold a commit digest: {value!r}")
        return value

    def _write_head(self, digest: str) -> None:
        fd, tmp_path = tempfile.mkstemp(
            dir=self.grut_dir,
            prefix=".tmp_head_",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(digest)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.head_path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("HEAD -> %s", digest)

    # Staging

    def stage_file(self, path: PathLike) -> IndexEntry:
        """Store a working file's content and stage it.

        The blob is written before the index entry, so an interruption
        leaves at worst an unreferenced blob.

        Args:
            path: File to stage, absolute or relative to the repository root

        Returns:
            The index entry recorded for the file

        Raises:
            SourceFileUnreadableError: If the file is missing, unreadable,
                a directory, or outside the repository
        """
        abs_path, rel_path = self._resolve_path(path)

        if not abs_path.is_file():
            raise SourceFileUnreadableError(f"{path}: file not found")

        try:
            content = abs_path.read_bytes()
        except OSError as e:
            raise SourceFileUnreadableError(f"{path}: {e}") from e

        digest = self.object_store.write_blob(content)
        return self.index.stage(rel_path, digest)

    def status(self) -> List[IndexEntry]:
        """Return the currently staged entries."""
        return self.index.current()

    # Commits

    def commit(self, message: str) -> Optional[str]:
        """Commit the staged files.

        Returns:
            Digest of the new commit, or None if nothing was staged. In
            that case no object is written and HEAD does not move.
        """
        staged = self.index.current()
        if not staged:
            logger.info("Nothing to commit")
            return None

        parent = self.head()
        commit = self.commits.create(message=message, parent=parent, files=staged)
        self._write_head(commit.digest)
        self.index.clear()

        logger.info("Committed %s (%d file(s))", commit.digest, len(staged))
        return commit.digest

    def get_commit(self, ref: str) -> Commit:
        """Read the commit named by a full or abbreviated digest."""
        return self.commits.read(self.object_store.resolve(ref))

    def history(self, limit: Optional[int] = None) -> List[HistoryEntry]:
        """Return commits reachable from HEAD, newest first.

        Args:
            limit: Maximum number of entries, or None for all
        """
        walk = self.commits.walk(self.head())
        if limit is not None:
            walk = itertools.islice(walk, limit)
        return [
            HistoryEntry(
                digest=commit.digest,
                timestamp=commit.timestamp,
                message=commit.message,
                parent=commit.parent,
            )
            for commit in walk
        ]

    def show_commit(self, ref: Optional[str] = None) -> List[FileReport]:
        """Diff a commit against its parent.

        Args:
            ref: Full or abbreviated commit digest; None means HEAD

        Raises:
            ObjectNotFoundError: If ref is unknown or there are no commits
            AmbiguousDigestError: If an abbreviated ref matches several objects
            CorruptHistoryError: If ref does not name a valid commit
        """
        if ref is None:
            ref = self.head()
            if ref is None:
                raise ObjectNotFoundError("No commits yet")

        commit = self.get_commit(ref)
        return self.diff_engine.diff_commit(commit)

    def _resolve_path(self, path: PathLike) -> Tuple[Path, str]:
        """Return the absolute path and the POSIX path relative to root."""
        path = Path(path)
        abs_path = path if path.is_absolute() else self.root / path
        abs_path = Path(os.path.normpath(abs_path))
        # root is fully resolved; resolve the directory part the same way
        abs_path = abs_path.parent.resolve() / abs_path.name

        try:
            rel_path = abs_path.relative_to(self.root)
        except ValueError:
            raise SourceFileUnreadableError(
                f"{path} is outside repository root {self.root}"
            ) from None

        if not rel_path.parts or rel_path.parts[0] == GRUT_DIR:
            raise SourceFileUnreadableError(f"{path} is not a working file")

        return abs_path, rel_path.as_posix()
