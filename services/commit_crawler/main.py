"""
Commit Crawler Service.

Walks the default branch history of a local repository and produces, per
commit:
- File-level text diffs with changed line ranges on both sides
- Aggregate added/deleted line counts
- A sha256 rehash of the commit id for resumable crawls

A separate fingerprint pass records every commit rehash and author email so
that a later crawl can stop where the previous one ended.
"""

import logging
import os
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

from git import Repo, GitCommandError, InvalidGitRepositoryError, NoSuchPathError
from git.exc import BadName, BadObject

from shared.events import CrawlReporter, NullReporter
from shared.models import Commit, Fingerprint, ModelValidator, Repository
from services.commit_crawler.branch import BranchResolver, HeadResolution
from services.commit_crawler.extractor import DiffExtractor
from services.commit_crawler.hasher import IncrementalHasher, rehash
from services.commit_crawler.stats import aggregate
from services.commit_crawler.walker import HistoryWalker, RawCommit

logger = logging.getLogger(__name__)


def _text(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value or ""


class CommitCrawlerService:
    """Core commit crawling service wiring resolver, walker, extractor and hasher."""

    def __init__(
        self,
        reporter: Optional[CrawlReporter] = None,
        resolver: Optional[BranchResolver] = None,
        walker: Optional[HistoryWalker] = None,
        extractor: Optional[DiffExtractor] = None,
        hasher: Optional[IncrementalHasher] = None,
    ):
        self.reporter = reporter or NullReporter()
        self.resolver = resolver or BranchResolver(reporter=self.reporter)
        self.walker = walker or HistoryWalker(reporter=self.reporter)
        self.extractor = extractor or DiffExtractor(reporter=self.reporter)
        self.hasher = hasher or IncrementalHasher(resolver=self.resolver, reporter=self.reporter)

    @staticmethod
    def validate_repo_path(repo_path: str):
        if not os.path.exists(repo_path):
            raise ValueError(f"Repository path does not exist: {repo_path}")

    @contextmanager
    def open_repository(self, repo_path: str) -> Iterator[Repo]:
        """Open ``repo_path`` and close the handle however the block exits."""
        self.validate_repo_path(repo_path)
        try:
            repo = Repo(repo_path)
        except (InvalidGitRepositoryError, NoSuchPathError):
            raise ValueError(f"Invalid Git repository: {repo_path}")

        try:
            yield repo
        finally:
            repo.close()
            logger.debug(f"Closed repository {repo_path}")

    @staticmethod
    def repository_ref(repo: Repo) -> Repository:
        path = repo.working_tree_dir or repo.git_dir
        return Repository(path=str(path), name=os.path.basename(os.path.normpath(path)))

    @staticmethod
    def resolve_stop_before(repo: Repo, head: str, stop_before: str) -> str:
        """Expand ``stop_before`` to a full commit id that the walk from ``head`` reaches."""
        try:
            resolved = repo.commit(stop_before).hexsha
        except (BadName, BadObject, ValueError):
            raise ValueError(f"Unknown commit: {stop_before}")
        if not repo.is_ancestor(resolved, head):
            raise ValueError(f"Commit {stop_before} is not reachable from {head}")
        return resolved

    @staticmethod
    def count_commits(repo: Repo, head: str, stop_before: Optional[str] = None) -> int:
        """Approximate number of commits a crawl will visit; used for progress only."""
        args = [head]
        if stop_before:
            args.append(f"^{stop_before}")
        try:
            return int(repo.git.rev_list("--count", *args))
        except (GitCommandError, ValueError) as e:
            logger.warning(f"Could not count commits from {head}: {e}")
            return 0

    def build_commit(
        self, repo: Repo, raw: RawCommit, repository: Optional[Repository] = None
    ) -> Commit:
        """Extract the diffs of a walked commit and compute its line statistics."""
        git_commit = raw.commit
        diffs = self.extractor.extract_all(repo, raw.diffs, git_commit.hexsha)
        lines_added, lines_deleted = aggregate(diffs)

        commit = Commit(
            hash=git_commit.hexsha,
            rehash=rehash(git_commit.hexsha),
            author_name=_text(git_commit.author.name),
            author_email=_text(git_commit.author.email),
            message=_text(git_commit.message),
            timestamp=git_commit.authored_datetime,
            diffs=diffs,
            lines_added=lines_added,
            lines_deleted=lines_deleted,
            repository=repository,
        )

        errors = ModelValidator.validate_commit(commit)
        if errors:
            logger.warning(f"Inconsistent commit {git_commit.hexsha}: {'; '.join(errors)}")
        return commit

    def iter_commits(
        self,
        repo: Repo,
        head: str,
        stop_before: Optional[str] = None,
        total_count: int = 0,
        repository: Optional[Repository] = None,
    ) -> Iterator[Commit]:
        """Yield fully populated commits from an already open repository."""
        for raw in self.walker.stream_commits(repo, head, stop_before, total_count):
            yield self.build_commit(repo, raw, repository)

    def crawl(
        self,
        repo_path: str,
        known_rehashes: Optional[Iterable[str]] = None,
        stop_before: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Iterator[Commit]:
        """
        Crawl the default branch of ``repo_path``.

        Args:
            repo_path: Path of a local repository.
            known_rehashes: Rehashes recorded by an earlier fingerprint pass. The
                crawl stops before the first commit whose rehash is known.
            stop_before: Commit id to stop before; overrides ``known_rehashes``.
            limit: Maximum number of commits to yield.

        The path is validated immediately; branch resolution happens when the
        first commit is pulled and raises ``NoDefaultBranchError`` on failure.
        """
        self.validate_repo_path(repo_path)
        if limit is not None and limit < 1:
            raise ValueError("Limit must be at least 1")
        return self._crawl(repo_path, known_rehashes, stop_before, limit)

    def _crawl(self, repo_path, known_rehashes, stop_before, limit) -> Iterator[Commit]:
        with self.open_repository(repo_path) as repo:
            head = self.resolver.resolve_head(repo)
            if stop_before is not None:
                stop_before = self.resolve_stop_before(repo, head, stop_before)
            elif known_rehashes:
                stop_before = self.hasher.find_resume_cutoff(repo, head, known_rehashes)
            if stop_before == head:
                logger.info(f"No new commits since {head}")
                self.reporter.crawl_completed(0, stop_before)
                return

            total = self.count_commits(repo, head, stop_before)
            repository = self.repository_ref(repo)

            emitted = 0
            commits = self.iter_commits(repo, head, stop_before, total, repository)
            try:
                for commit in commits:
                    yield commit
                    emitted += 1
                    if limit is not None and emitted >= limit:
                        break
            finally:
                commits.close()

            self.reporter.crawl_completed(emitted, stop_before)

    def resolve_head(self, repo_path: str) -> HeadResolution:
        """Resolve the crawl head of ``repo_path`` without raising on failure."""
        with self.open_repository(repo_path) as repo:
            return self.resolver.resolve_head_result(repo)

    def fingerprint(self, repo_path: str) -> Fingerprint:
        """Rehash every commit reachable from the default branch head."""
        try:
            with self.open_repository(repo_path) as repo:
                return self.hasher.fingerprint(repo)
        except GitCommandError as e:
            logger.error(f"Error fingerprinting {repo_path}: {e}")
            raise ValueError(f"Git command error: {e}")

