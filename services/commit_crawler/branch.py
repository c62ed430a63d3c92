"""
Head revision resolution.

The crawl starts at the remote-tracking default branch when the clone has one
and otherwise at the local main branch. Resolution is computed as a
``HeadResolution`` value; only ``resolve_head`` turns a failure into an
exception.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Sequence

from git import Repo
from git.exc import BadName, BadObject

from config.settings import settings
from shared.events import CrawlReporter, NullReporter
from shared.exceptions import BranchResolutionError, NoDefaultBranchError


class HeadSource(Enum):
    """Which reference the head was resolved from."""
    REMOTE_DEFAULT = "remote default branch"
    LOCAL_MAIN = "local main branch"


@dataclass
class HeadResolution:
    """Outcome of head resolution: a revision and its source, or the fatal error."""

    revision: Optional[str] = None
    source: Optional[HeadSource] = None
    ref: Optional[str] = None
    error: Optional[BranchResolutionError] = None
    tried: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None and self.revision is not None

    def unwrap(self) -> str:
        if not self.ok:
            raise self.error or NoDefaultBranchError(self.tried)
        return self.revision


class BranchResolver:
    """Resolves the revision a crawl or fingerprint pass starts from."""

    def __init__(
        self,
        remote_head_ref: Optional[str] = None,
        main_branch_refs: Optional[Sequence[str]] = None,
        reporter: Optional[CrawlReporter] = None,
    ):
        self.remote_head_ref = remote_head_ref or settings.repository.remote_head_ref
        self.main_branch_refs = list(main_branch_refs or settings.repository.main_branch_refs)
        self.reporter = reporter or NullReporter()

    @staticmethod
    def _commit_of(ref) -> Optional[str]:
        try:
            return ref.commit.hexsha
        except (ValueError, BadName, BadObject):
            # Dangling symbolic ref or a ref pointing at a missing object.
            return None

    def resolve_head_result(self, repo: Repo) -> HeadResolution:
        refs = {ref.path: ref for ref in repo.refs}
        tried = []

        candidates = [(self.remote_head_ref, HeadSource.REMOTE_DEFAULT)]
        candidates += [(name, HeadSource.LOCAL_MAIN) for name in self.main_branch_refs]

        for name, source in candidates:
            tried.append(name)
            ref = refs.get(name)
            if ref is None:
                continue
            revision = self._commit_of(ref)
            if revision is None:
                continue
            self.reporter.head_resolved(revision, source.value)
            return HeadResolution(revision=revision, source=source, ref=name, tried=tried)

        return HeadResolution(error=NoDefaultBranchError(tried), tried=tried)

    def resolve_head(self, repo: Repo) -> str:
        """Return the head revision id, raising ``NoDefaultBranchError`` if none exists."""
        return self.resolve_head_result(repo).unwrap()
