"""
Unit tests for line statistics aggregation.
"""

from shared.models import ChangeType, DiffContent, DiffFile, DiffRange
from services.commit_crawler.stats import aggregate


def make_file(path, old_ranges, new_ranges, old_size=20, new_size=20):
    return DiffFile(
        path=path,
        change_type=ChangeType.MODIFY,
        old=DiffContent(content=["x"] * old_size,
                        ranges=[DiffRange(begin=b, end=e) for b, e in old_ranges]),
        new=DiffContent(content=["y"] * new_size,
                        ranges=[DiffRange(begin=b, end=e) for b, e in new_ranges]),
    )


class TestAggregate:
    """Test cases for aggregate."""

    def test_no_files(self):
        """Test that a commit without text diffs has zero statistics."""
        assert aggregate([]) == (0, 0)

    def test_sums_new_and_old_ranges(self):
        """Test that added lines come from new ranges and deleted lines from old ranges."""
        files = [
            make_file("a.py", [(0, 2), (5, 5)], [(0, 1), (4, 7)]),
            make_file("b.py", [(3, 4)], [(3, 3)]),
        ]

        assert aggregate(files) == (4, 3)

    def test_empty_ranges_count_nothing(self):
        """Test that insertion points on one side count zero lines on that side."""
        files = [make_file("a.py", [(10, 10)], [(10, 15)])]

        assert aggregate(files) == (5, 0)

    def test_accepts_generator(self):
        """Test that any iterable of files is accepted."""
        files = (make_file(f"f{i}.py", [(0, 1)], [(0, 2)]) for i in range(3))

        assert aggregate(files) == (6, 3)
