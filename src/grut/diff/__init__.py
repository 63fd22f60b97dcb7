"""Line diffing and commit diff reports for Grut."""

from grut.diff.engine import Changed, DiffEngine, FileReport, NewFile
from grut.diff.line_diff import (
    ADDED,
    REMOVED,
    UNCHANGED,
    DiffRun,
    diff_lines,
    reconstruct_new,
    reconstruct_old,
)

__all__ = [
    "DiffEngine",
    "FileReport",
    "NewFile",
    "Changed",
    "DiffRun",
    "diff_lines",
    "reconstruct_old",
    "reconstruct_new",
    "UNCHANGED",
    "ADDED",
    "REMOVED",
]
