"""
Diff extraction.

Turns a raw diff entry and its edit list into a text-only ``DiffFile``. A file
whose blobs cannot be read, or whose content looks binary, is left out of the
commit entirely rather than represented partially.
"""

from typing import List, Optional

from git import Repo
from git.diff import Diff
from git.exc import BadName, BadObject, GitCommandError
from git.objects import Blob

from config.settings import settings
from shared.events import CrawlReporter, NullReporter, SkipReason
from shared.exceptions import ObjectResolutionError
from shared.models import ChangeType, DiffContent, DiffFile, DiffRange
from services.commit_crawler.edits import Edit


def is_binary(data: bytes, sample_size: int = 8000) -> bool:
    """Content is binary when a NUL byte appears in its leading sample."""
    return b"\0" in data[:sample_size]


def split_lines(data: bytes, encoding: str = "utf-8") -> List[str]:
    """Split blob bytes into lines; a trailing newline does not start a new line."""
    if not data:
        return []
    lines = data.decode(encoding, errors="replace").split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def change_type_of(entry: Diff) -> ChangeType:
    if entry.new_file:
        return ChangeType.ADD
    if entry.deleted_file:
        return ChangeType.DELETE
    if getattr(entry, "copied_file", False):
        return ChangeType.COPY
    if entry.renamed_file:
        return ChangeType.RENAME
    return ChangeType.MODIFY


class DiffExtractor:
    """Builds ``DiffFile`` records from raw diff entries."""

    def __init__(
        self,
        max_blob_size: Optional[int] = None,
        binary_sample_size: Optional[int] = None,
        encoding: Optional[str] = None,
        reporter: Optional[CrawlReporter] = None,
    ):
        self.max_blob_size = max_blob_size or settings.diff.max_blob_size
        self.binary_sample_size = binary_sample_size or settings.diff.binary_sample_size
        self.encoding = encoding or settings.diff.encoding
        self.reporter = reporter or NullReporter()

    def read_blob(self, repo: Repo, blob: Optional[Blob]) -> bytes:
        """Return the bytes of ``blob``; a null object reads as empty content."""
        if blob is None:
            return b""
        try:
            size = repo.odb.info(blob.binsha).size
            if size > self.max_blob_size:
                raise ObjectResolutionError(
                    blob.hexsha, f"object of {size} bytes exceeds limit of {self.max_blob_size}"
                )
            return repo.odb.stream(blob.binsha).read()
        except (ValueError, BadName, BadObject, GitCommandError, OSError) as e:
            raise ObjectResolutionError(blob.hexsha, str(e)) from e

    def extract(
        self,
        repo: Repo,
        entry: Diff,
        edits: List[Edit],
        commit_hash: Optional[str] = None,
    ) -> Optional[DiffFile]:
        """Return the ``DiffFile`` for ``entry``, or ``None`` if the file is skipped."""
        change_type = change_type_of(entry)
        path = entry.a_path if change_type == ChangeType.DELETE else entry.b_path

        try:
            old_bytes = self.read_blob(repo, entry.a_blob)
            new_bytes = self.read_blob(repo, entry.b_blob)
        except ObjectResolutionError as e:
            self.reporter.file_skipped(commit_hash, path, SkipReason.UNREADABLE, e)
            return None

        if is_binary(old_bytes, self.binary_sample_size) or is_binary(new_bytes, self.binary_sample_size):
            self.reporter.file_skipped(commit_hash, path, SkipReason.BINARY)
            return None

        old_path = entry.a_path if change_type in (ChangeType.RENAME, ChangeType.COPY) else None

        return DiffFile(
            path=path,
            change_type=change_type,
            old_path=old_path,
            old=DiffContent(
                content=split_lines(old_bytes, self.encoding),
                ranges=[DiffRange(begin=e.begin_a, end=e.end_a) for e in edits],
            ),
            new=DiffContent(
                content=split_lines(new_bytes, self.encoding),
                ranges=[DiffRange(begin=e.begin_b, end=e.end_b) for e in edits],
            ),
        )

    def extract_all(self, repo: Repo, raw_diffs, commit_hash: Optional[str] = None) -> List[DiffFile]:
        """Extract every raw diff of a commit, dropping skipped files."""
        files = []
        for raw in raw_diffs:
            diff_file = self.extract(repo, raw.entry, raw.edits, commit_hash)
            if diff_file is not None:
                files.append(diff_file)
        return files
