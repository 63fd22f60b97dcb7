"""Line-level diffing.

Produces an edit script of runs tagged ``unchanged``, ``added`` or
``removed``. Joining the unchanged and removed runs gives back the old
text exactly; joining the unchanged and added runs gives back the new
text exactly.
"""

import difflib
import re
from dataclasses import dataclass
from typing import Iterable, List

UNCHANGED = "unchanged"
ADDED = "added"
REMOVED = "removed"

_LINE_RE = re.compile(r"[^\n]*\n|[^\n]+")


@dataclass(frozen=True)
class DiffRun:
    """A contiguous span of lines sharing one tag.

    Attributes:
        tag: One of "unchanged", "added", "removed"
        text: The lines of the span, line endings included
    """

    tag: str
    text: str

    @property
    def lines(self) -> List[str]:
        return split_lines(self.text)

    def __repr__(self) -> str:
        return f"DiffRun({self.tag}: {self.text!r})"


def split_lines(text: str) -> List[str]:
    """Split text into lines, keeping each line's terminator.

    Only a line feed ends a line. Form feeds and the other characters
    that str.splitlines treats as breaks stay inside the line.
    """
    return _LINE_RE.findall(text)


def diff_lines(old: str, new: str) -> List[DiffRun]:
    """Compute the line edit script turning old into new.

    Within a replaced region the removed run comes before the added run.
    Adjacent runs with the same tag are merged.

    Args:
        old: Previous text
        new: Current text

    Returns:
        Ordered list of runs
    """
    old_lines = split_lines(old)
    new_lines = split_lines(new)

    matcher = difflib.SequenceMatcher(a=old_lines, b=new_lines, autojunk=False)
    runs: List[DiffRun] = []

    for opcode, i1, i2, j1, j2 in matcher.get_opcodes():
        if opcode == "equal":
            _append(runs, UNCHANGED, old_lines[i1:i2])
        elif opcode == "delete":
            _append(runs, REMOVED, old_lines[i1:i2])
        elif opcode == "insert":
            _append(runs, ADDED, new_lines[j1:j2])
        else:  # replace
            _append(runs, REMOVED, old_lines[i1:i2])
            _append(runs, ADDED, new_lines[j1:j2])

    return runs


def _append(runs: List[DiffRun], tag: str, lines: List[str]) -> None:
    if not lines:
        return
    text = "".join(lines)
    if runs and runs[-1].tag == tag:
        runs[-1] = DiffRun(tag, runs[-1].text + text)
    else:
        runs.append(DiffRun(tag, text))


def reconstruct_old(runs: Iterable[DiffRun]) -> str:
    """Rebuild the old text from an edit script."""
    return "".join(run.text for run in runs if run.tag != ADDED)


def reconstruct_new(runs: Iterable[DiffRun]) -> str:
    """Rebuild the new text from an edit script."""
    return "".join(run.text for run in runs if run.tag != REMOVED)
