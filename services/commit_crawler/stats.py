"""Line statistics derived from extracted diffs."""

from typing import Iterable, Tuple

from shared.models import DiffFile


def aggregate(diff_files: Iterable[DiffFile]) -> Tuple[int, int]:
    """
    Return ``(lines_added, lines_deleted)`` for a commit.

    Only text files that survived extraction are counted, so these numbers can
    be lower than ``git diff --stat`` for commits touching binary files.
    """
    lines_added = 0
    lines_deleted = 0
    for diff_file in diff_files:
        lines_added += diff_file.lines_added()
        lines_deleted += diff_file.lines_deleted()
    return lines_added, lines_deleted
