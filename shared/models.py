"""
Data models for the commit crawler.

This module provides the records the crawler populates:
- Line ranges and per-side file content of a diff
- File-level diffs with their change classification
- Commits with aggregate line statistics and identity rehash
- The fingerprint side-channel used for resumable crawls
"""

from datetime import datetime
from typing import List, Optional, Dict, Any, Set
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator, computed_field


class ChangeType(Enum):
    """How a file changed between two revisions."""
    ADD = "add"
    MODIFY = "modify"
    DELETE = "delete"
    RENAME = "rename"
    COPY = "copy"


class DiffRange(BaseModel):
    """Half-open ``[begin, end)`` interval of line indexes."""

    begin: int = Field(..., ge=0, description="First changed line index")
    end: int = Field(..., ge=0, description="Line index after the last changed line")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_order(self):
        if self.end < self.begin:
            raise ValueError(f"Range end {self.end} precedes begin {self.begin}")
        return self

    @property
    def length(self) -> int:
        return self.end - self.begin


class DiffContent(BaseModel):
    """Full line sequence of a blob plus the ranges changed on that side."""

    content: List[str] = Field(default_factory=list, description="Blob lines, 0-indexed")
    ranges: List[DiffRange] = Field(default_factory=list, description="Changed line ranges")

    @model_validator(mode="after")
    def validate_ranges_within_content(self):
        size = len(self.content)
        for r in self.ranges:
            if r.end > size:
                raise ValueError(
                    f"Range [{r.begin}, {r.end}) exceeds content of {size} lines"
                )
        return self

    def changed_line_count(self) -> int:
        return sum(r.length for r in self.ranges)


class DiffFile(BaseModel):
    """Text-only diff of one file between a commit and its walk parent."""

    path: str = Field(..., min_length=1, description="Old path for deletions, new path otherwise")
    change_type: ChangeType = Field(..., description="Change classification")
    old_path: Optional[str] = Field(default=None, description="Source path of a rename or copy")
    old: DiffContent = Field(default_factory=DiffContent, description="Parent side")
    new: DiffContent = Field(default_factory=DiffContent, description="Commit side")

    def lines_added(self) -> int:
        return self.new.changed_line_count()

    def lines_deleted(self) -> int:
        return self.old.changed_line_count()


class Repository(BaseModel):
    """Reference to the repository a commit was crawled from."""

    path: str = Field(..., min_length=1, description="Filesystem path of the repository")
    name: str = Field(..., min_length=1, description="Repository name")


class Commit(BaseModel):
    """A visited history node with its extracted diffs and line statistics."""

    hash: str = Field(..., min_length=7, max_length=64, description="Native commit id")
    rehash: str = Field(..., min_length=64, max_length=64, description="sha256 of the commit id")
    author_name: str = Field(default="", description="Author name")
    author_email: str = Field(default="", description="Author email address")
    message: str = Field(default="", description="Full commit message")
    timestamp: Optional[datetime] = Field(default=None, description="Authored time")
    diffs: List[DiffFile] = Field(default_factory=list, description="Extracted text diffs")
    lines_added: int = Field(default=0, ge=0, description="Lines added across diffs")
    lines_deleted: int = Field(default=0, ge=0, description="Lines deleted across diffs")
    repository: Optional[Repository] = Field(default=None, description="Owning repository")

    @field_validator("hash")
    @classmethod
    def validate_hash(cls, v):
        """Validate Git commit hash format."""
        if any(c not in "0123456789abcdef" for c in v.lower()):
            raise ValueError("Commit hash must be hexadecimal")
        return v

    @computed_field
    @property
    def total_changes(self) -> int:
        return self.lines_added + self.lines_deleted

    @property
    def short_message(self) -> str:
        """First line of the commit message."""
        return self.message.strip().split("\n", 1)[0] if self.message else ""


class Fingerprint(BaseModel):
    """Ordered commit rehashes (most recent first) and distinct author emails."""

    rehashes: List[str] = Field(default_factory=list, description="sha256 hex per commit")
    emails: Set[str] = Field(default_factory=set, description="Author email addresses")

    @field_validator("rehashes")
    @classmethod
    def validate_rehashes(cls, v):
        for rehash in v:
            if len(rehash) != 64:
                raise ValueError(f"Rehash must be 64 hex characters: {rehash}")
        return v


class ModelConverter:
    """Utility class for converting crawler models into plain summaries."""

    @staticmethod
    def commit_to_summary(commit: Commit) -> Dict[str, Any]:
        """Flatten a commit into a display-friendly dictionary."""
        return {
            "hash": commit.hash,
            "rehash": commit.rehash,
            "author": commit.author_email,
            "message": commit.short_message,
            "timestamp": commit.timestamp.isoformat() if commit.timestamp else None,
            "changed_files": [
                {"path": d.path, "status": d.change_type.value} for d in commit.diffs
            ],
            "additions": commit.lines_added,
            "deletions": commit.lines_deleted,
            "total_changes": commit.total_changes,
        }


class ModelValidator:
    """Utility class for model validation."""

    @staticmethod
    def validate_commit(commit: Commit) -> List[str]:
        """Check a commit against its invariants and return a list of errors."""
        errors = []

        added = sum(d.lines_added() for d in commit.diffs)
        deleted = sum(d.lines_deleted() for d in commit.diffs)
        if commit.lines_added != added:
            errors.append(f"lines_added {commit.lines_added} != new-side range total {added}")
        if commit.lines_deleted != deleted:
            errors.append(f"lines_deleted {commit.lines_deleted} != old-side range total {deleted}")

        seen = set()
        for d in commit.diffs:
            if d.path in seen:
                errors.append(f"Duplicate diff for path: {d.path}")
            seen.add(d.path)

        return errors


# Export commonly used classes and functions
__all__ = [
    'ChangeType', 'DiffRange', 'DiffContent', 'DiffFile',
    'Repository', 'Commit', 'Fingerprint',
    'ModelConverter', 'ModelValidator'
]
