"""Core engine layer for Grut.

This module provides the staging index and the repository handle that
implements staging, committing, history and commit diffs.
"""

from grut.core.repository import HistoryEntry, Repository
from grut.core.staging import StagingIndex

__all__ = [
    "Repository",
    "HistoryEntry",
    "StagingIndex",
]
