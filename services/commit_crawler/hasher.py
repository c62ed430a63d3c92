"""
Incremental hashing.

A lightweight pass over the whole reachable history that records a sha256
rehash of every commit id, most recent first, and the set of author emails.
A later crawl uses the recorded rehashes to stop where the previous one ended.
"""

import hashlib
from typing import Iterable, Optional

from git import Repo

from shared.events import CrawlReporter, NullReporter
from shared.models import Fingerprint
from services.commit_crawler.branch import BranchResolver
from services.commit_crawler.walker import HistoryWalker


def rehash(commit_id: str) -> str:
    """Hex sha256 of a native commit id."""
    return hashlib.sha256(commit_id.encode("utf-8")).hexdigest()


class IncrementalHasher:
    """Fingerprints a repository's history and finds resume points."""

    def __init__(
        self,
        resolver: Optional[BranchResolver] = None,
        reporter: Optional[CrawlReporter] = None,
    ):
        self.reporter = reporter or NullReporter()
        self.resolver = resolver or BranchResolver(reporter=self.reporter)

    def fingerprint(self, repo: Repo, head: Optional[str] = None) -> Fingerprint:
        """Rehash every commit reachable from the default branch head."""
        head = head or self.resolver.resolve_head(repo)

        rehashes = []
        emails = set()
        for commit in HistoryWalker.iter_history(repo, head):
            rehashes.append(rehash(commit.hexsha))
            emails.add(commit.author.email or "")

        self.reporter.fingerprint_completed(len(rehashes), len(emails))
        return Fingerprint(rehashes=rehashes, emails=emails)

    @staticmethod
    def find_resume_cutoff(repo: Repo, head: str, known_rehashes: Iterable[str]) -> Optional[str]:
        """
        Return the first commit on the walk from ``head`` that was already seen.

        Everything from that commit on was processed by an earlier crawl, so an
        incremental crawl stops right before it. ``None`` means nothing is known
        and the whole history has to be crawled.
        """
        known = set(known_rehashes)
        if not known:
            return None
        for commit in HistoryWalker.iter_history(repo, head):
            if rehash(commit.hexsha) in known:
                return commit.hexsha
        return None
