"""
Edit lists parsed from zero-context unified diffs.

``git diff --unified=0`` emits one hunk per contiguous change region, so each
hunk header maps to exactly one edit. Hunk starts are 1-based; a side with a
zero count names the line *before* the insertion point, which is also the
0-based index of the line after it.
"""

import re
from typing import List, NamedTuple, Optional

HUNK_HEADER = re.compile(rb"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@", re.MULTILINE)


class Edit(NamedTuple):
    """Region ``[begin_a, end_a)`` of the old side replaced by ``[begin_b, end_b)`` of the new."""

    begin_a: int
    end_a: int
    begin_b: int
    end_b: int


def _side(start: bytes, count: Optional[bytes]):
    start_line = int(start)
    length = 1 if count is None else int(count)
    if length == 0:
        return start_line, start_line
    return start_line - 1, start_line - 1 + length


def parse_edit_list(patch: Optional[bytes]) -> List[Edit]:
    """Return the edits described by the hunk headers of ``patch``."""
    if not patch:
        return []
    if isinstance(patch, str):
        patch = patch.encode("utf-8", errors="surrogateescape")

    edits = []
    for match in HUNK_HEADER.finditer(patch):
        begin_a, end_a = _side(match.group(1), match.group(2))
        begin_b, end_b = _side(match.group(3), match.group(4))
        edits.append(Edit(begin_a, end_a, begin_b, end_b))
    return edits
