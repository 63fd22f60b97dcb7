"""Storage layer for Grut.

This module provides the content-addressable object store and the commit
records kept inside it.
"""

from grut.storage.commit_store import Commit, CommitStore, IndexEntry
from grut.storage.object_store import ObjectStore

__all__ = [
    "ObjectStore",
    "Commit",
    "CommitStore",
    "IndexEntry",
]
