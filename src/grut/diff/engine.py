"""Diff engine for commits.

Given a commit, works out for each of its files whether the file is new
relative to the parent commit or changed, and for changed files computes
the line edit script between the parent's and the commit's version.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from grut.constants import TEXT_ENCODING, TEXT_ERRORS
from grut.diff.line_diff import ADDED, REMOVED, UNCHANGED, DiffRun, diff_lines, split_lines
from grut.storage import Commit, CommitStore, ObjectStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NewFile:
    """A file with no counterpart in the parent commit."""

    path: str
    content: str


@dataclass(frozen=True)
class Changed:
    """A file present in both the parent commit and this one."""

    path: str
    runs: Tuple[DiffRun, ...]

    @property
    def has_changes(self) -> bool:
        return any(run.tag != UNCHANGED for run in self.runs)


FileReport = Union[NewFile, Changed]


def decode_text(content: bytes) -> str:
    """Decode blob bytes for diffing without losing any byte."""
    return content.decode(TEXT_ENCODING, errors=TEXT_ERRORS)


class DiffEngine:
    """Resolves old/new file versions for a commit and diffs them.

    Attributes:
        object_store: Store holding the file blobs
        commit_store: Store used to look up the parent commit
    """

    def __init__(self, object_store: ObjectStore, commit_store: CommitStore):
        self.object_store = object_store
        self.commit_store = commit_store

    def diff_commit(self, commit: Commit) -> List[FileReport]:
        """Report every file of commit against the parent commit.

        Files are reported in the commit's own order. A root commit
        reports every file as new, and so does a later commit for any
        path its parent does not contain.

        Raises:
            ObjectNotFoundError: If the parent or a blob is missing
            CorruptHistoryError: If the parent commit is malformed
        """
        parent: Optional[Commit] = None
        if commit.parent is not None:
            parent = self.commit_store.read(commit.parent)

        reports: List[FileReport] = []
        for entry in commit.files:
            new_content = self._read_text(entry.digest)

            old_entry = parent.find_file(entry.path) if parent is not None else None
            if old_entry is None:
                logger.debug("%s is new in %s", entry.path, commit.digest)
                reports.append(NewFile(path=entry.path, content=new_content))
                continue

            old_content = self._read_text(old_entry.digest)
            runs = diff_lines(old_content, new_content)
            reports.append(Changed(path=entry.path, runs=tuple(runs)))

        return reports

    def summarize(self, reports: List[FileReport]) -> Dict[str, Any]:
        """Count added and removed lines per file.

        Returns:
            Dictionary with per-file counts and totals
        """
        files = {}
        total_added = 0
        total_removed = 0

        for report in reports:
            if isinstance(report, NewFile):
                added = len(split_lines(report.content))
                removed = 0
                status = "new"
            else:
                added = sum(len(run.lines) for run in report.runs if run.tag == ADDED)
                removed = sum(len(run.lines) for run in report.runs if run.tag == REMOVED)
                status = "modified" if report.has_changes else "unchanged"

            files[report.path] = {"status": status, "added": added, "removed": removed}
            total_added += added
            total_removed += removed

        return {
            "files": files,
            "total_added": total_added,
            "total_removed": total_removed,
        }

    def _read_text(self, digest: str) -> str:
        return decode_text(self.object_store.read_blob(digest))
