"""
Unit tests for Commit Crawler Service main module.

These tests drive the service end to end against small repositories built
with the git executable: branch resolution, history walking, diff extraction,
line statistics and resumable crawls.
"""

import pytest
from unittest.mock import patch

from git import Repo

from shared.events import CrawlEventType, RecordingReporter
from shared.exceptions import NoDefaultBranchError
from shared.models import ChangeType, ModelValidator
from services.commit_crawler.hasher import rehash
from services.commit_crawler.extractor import DiffExtractor
from services.commit_crawler.main import CommitCrawlerService


def closed_handles(mock_close, path):
    """Repository handles for ``path`` that a patched ``Repo.close`` saw."""
    return [c.args[0] for c in mock_close.call_args_list
            if c.args[0].working_tree_dir == str(path)]


class TestCommitCrawlerService:
    """Test cases for CommitCrawlerService."""

    @pytest.fixture
    def reporter(self):
        return RecordingReporter()

    @pytest.fixture
    def service(self, reporter):
        """Create a CommitCrawlerService instance for testing."""
        return CommitCrawlerService(reporter=reporter)

    def test_service_initialization(self, service, reporter):
        """Test that components share the service reporter."""
        assert service.reporter is reporter
        assert service.resolver.reporter is reporter
        assert service.walker.reporter is reporter
        assert service.extractor.reporter is reporter
        assert service.hasher.resolver is service.resolver

    def test_crawl_statistics(self, service, three_commit_repo):
        """Test per-commit statistics of an append followed by a deletion."""
        builder, commits = three_commit_repo

        crawled = list(service.crawl(str(builder.path)))

        assert [c.hash for c in crawled] == commits
        assert [(c.lines_added, c.lines_deleted) for c in crawled] == [(0, 2), (5, 0), (10, 0)]
        assert all(ModelValidator.validate_commit(c) == [] for c in crawled)

    def test_crawl_diff_content(self, service, three_commit_repo):
        """Test the content and ranges of the most recent commit."""
        builder, _ = three_commit_repo

        head = next(iter(service.crawl(str(builder.path))))

        assert len(head.diffs) == 1
        diff = head.diffs[0]
        assert diff.path == "a.txt"
        assert diff.change_type == ChangeType.MODIFY
        assert len(diff.old.content) == 15
        assert len(diff.new.content) == 13
        assert [(r.begin, r.end) for r in diff.old.ranges] == [(13, 15)]
        assert [(r.begin, r.end) for r in diff.new.ranges] == [(13, 13)]
        assert diff.old.content[13:15] == ["line 13", "line 14"]

    def test_crawl_root_commit(self, service, three_commit_repo):
        """Test that the root commit adds every line of its files."""
        builder, _ = three_commit_repo

        root = list(service.crawl(str(builder.path)))[-1]

        assert root.diffs[0].change_type == ChangeType.ADD
        assert root.diffs[0].old.content == []
        assert root.lines_added == 10

    def test_crawl_commit_metadata(self, service, three_commit_repo):
        """Test identity and authorship fields."""
        builder, commits = three_commit_repo

        head = next(iter(service.crawl(str(builder.path))))

        assert head.rehash == rehash(commits[0])
        assert head.author_name == "Tester"
        assert head.author_email == "tester@test.com"
        assert head.short_message == "drop two lines"
        assert head.timestamp is not None
        assert head.repository.name == "repo"

    def test_binary_files_are_excluded(self, service, reporter, make_repo):
        """Test that binary files contribute neither diffs nor statistics."""
        builder = make_repo()
        builder.lines("a.txt", ["one", "two"])
        builder.write("image.bin", b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR")
        builder.commit("add files")

        (commit,) = list(service.crawl(str(builder.path)))

        assert [d.path for d in commit.diffs] == ["a.txt"]
        assert (commit.lines_added, commit.lines_deleted) == (2, 0)
        skipped = reporter.of_type(CrawlEventType.FILE_SKIPPED)
        assert [(e.data["path"], e.data["reason"]) for e in skipped] == [("image.bin", "binary")]

    def test_modified_binary_file_is_excluded(self, service, reporter, make_repo):
        """Test that changing a binary file produces no diff and no statistics."""
        builder = make_repo()
        builder.lines("a.txt", ["one"])
        builder.write("image.bin", b"\x89PNG\x00\x01\x02first")
        builder.commit("add files")
        builder.lines("a.txt", ["one", "two"])
        builder.write("image.bin", b"\x89PNG\x00\x03\x04second")
        head_hash = builder.commit("change files")

        head = next(iter(service.crawl(str(builder.path))))

        assert head.hash == head_hash
        assert [d.path for d in head.diffs] == ["a.txt"]
        assert (head.lines_added, head.lines_deleted) == (1, 0)
        skipped = [e for e in reporter.of_type(CrawlEventType.FILE_SKIPPED)
                   if e.data["hash"] == head_hash]
        assert [(e.data["path"], e.data["reason"]) for e in skipped] == [("image.bin", "binary")]

    def test_deleted_file(self, service, make_repo):
        """Test that a deletion is reported under its old path."""
        builder = make_repo()
        builder.lines("a.txt", ["keep"])
        builder.lines("b.txt", ["x", "y", "z"])
        builder.commit("initial")
        builder.remove("b.txt")
        builder.commit("remove b")

        head = next(iter(service.crawl(str(builder.path))))

        assert [(d.path, d.change_type) for d in head.diffs] == [("b.txt", ChangeType.DELETE)]
        assert head.diffs[0].new.content == []
        assert (head.lines_added, head.lines_deleted) == (0, 3)

    def test_empty_commit(self, service, three_commit_repo):
        """Test that a commit without changes has no diffs."""
        builder, _ = three_commit_repo
        builder.commit("nothing changed")

        head = next(iter(service.crawl(str(builder.path))))

        assert head.diffs == []
        assert head.total_changes == 0

    def test_crawl_with_limit(self, service, reporter, three_commit_repo):
        """Test that the limit caps the crawl."""
        builder, commits = three_commit_repo

        crawled = list(service.crawl(str(builder.path), limit=1))

        assert [c.hash for c in crawled] == commits[:1]
        assert reporter.of_type(CrawlEventType.CRAWL_COMPLETED)[0].data["emitted"] == 1

    def test_crawl_stop_before(self, service, three_commit_repo):
        """Test an explicit cutoff commit."""
        builder, (c3, c2, c1) = three_commit_repo

        crawled = list(service.crawl(str(builder.path), stop_before=c1))

        assert [c.hash for c in crawled] == [c3, c2]
        # The commit before the cutoff is still diffed against it.
        assert crawled[-1].lines_added == 5

    def test_crawl_stop_before_abbreviated_id(self, service, reporter, three_commit_repo):
        """Test that an abbreviated cutoff id is expanded before walking."""
        builder, (c3, c2, _) = three_commit_repo

        crawled = list(service.crawl(str(builder.path), stop_before=c2[:8]))

        assert [c.hash for c in crawled] == [c3]
        completed = reporter.of_type(CrawlEventType.CRAWL_COMPLETED)
        assert completed[0].data["stopped_before"] == c2

    def test_crawl_stop_before_unknown_commit(self, service, three_commit_repo):
        """Test that a cutoff naming no commit is rejected."""
        builder, _ = three_commit_repo

        with pytest.raises(ValueError) as exc_info:
            list(service.crawl(str(builder.path), stop_before="deadbeef"))

        assert "Unknown commit: deadbeef" in str(exc_info.value)

    def test_crawl_stop_before_unreachable_commit(self, service, make_repo):
        """Test that a cutoff outside the default branch history is rejected."""
        builder = make_repo()
        builder.lines("a.txt", ["base"])
        builder.commit("base")
        builder.git("checkout", "-q", "-b", "side")
        builder.lines("b.txt", ["side"])
        side = builder.commit("side work")
        builder.git("checkout", "-q", "master")
        builder.lines("a.txt", ["base", "main"])
        builder.commit("main work")

        with pytest.raises(ValueError) as exc_info:
            list(service.crawl(str(builder.path), stop_before=side))

        assert "is not reachable" in str(exc_info.value)

    def test_crawl_resumes_from_known_rehashes(self, service, reporter, three_commit_repo):
        """Test that a second crawl only sees commits added since the fingerprint."""
        builder, (c3, _, _) = three_commit_repo
        known = service.fingerprint(str(builder.path)).rehashes

        builder.lines("a.txt", [f"line {i}" for i in range(14)])
        c4 = builder.commit("restore one line")

        crawled = list(service.crawl(str(builder.path), known_rehashes=known))

        assert [c.hash for c in crawled] == [c4]
        assert (crawled[0].lines_added, crawled[0].lines_deleted) == (1, 0)
        completed = reporter.of_type(CrawlEventType.CRAWL_COMPLETED)
        assert completed[0].data == {"emitted": 1, "stopped_before": c3}

    def test_crawl_nothing_new(self, service, reporter, three_commit_repo):
        """Test that a fully known history yields nothing."""
        builder, _ = three_commit_repo
        known = service.fingerprint(str(builder.path)).rehashes

        assert list(service.crawl(str(builder.path), known_rehashes=known)) == []
        assert reporter.of_type(CrawlEventType.CRAWL_COMPLETED)[0].data["emitted"] == 0

    def test_progress_reporting(self, service, reporter, three_commit_repo):
        """Test that progress totals come from the commit count."""
        builder, _ = three_commit_repo

        list(service.crawl(str(builder.path)))

        visited = reporter.of_type(CrawlEventType.COMMIT_VISITED)
        assert [e.data["visited"] for e in visited] == [1, 2, 3]
        assert all(e.data["total"] == 3 for e in visited)
        assert visited[-1].data["percent"] == 100.0

    def test_crawl_nonexistent_path(self, service, tmp_path):
        """Test that a missing path is rejected before iteration."""
        with pytest.raises(ValueError) as exc_info:
            service.crawl(str(tmp_path / "missing"))

        assert "Repository path does not exist" in str(exc_info.value)

    def test_crawl_invalid_limit(self, service, three_commit_repo):
        """Test that a limit below one is rejected."""
        builder, _ = three_commit_repo

        with pytest.raises(ValueError):
            service.crawl(str(builder.path), limit=0)

    def test_crawl_not_a_repository(self, service, tmp_path):
        """Test that a plain directory fails on first pull."""
        stream = service.crawl(str(tmp_path))

        with pytest.raises(ValueError) as exc_info:
            next(stream)

        assert "Invalid Git repository" in str(exc_info.value)

    def test_crawl_without_default_branch(self, service, make_repo):
        """Test that a repository with only a feature branch cannot be crawled."""
        builder = make_repo()
        builder.git("symbolic-ref", "HEAD", "refs/heads/feature")
        builder.write("a.txt", "a\n")
        builder.commit("initial")

        stream = service.crawl(str(builder.path))

        with pytest.raises(NoDefaultBranchError):
            next(stream)

    def test_early_stop_closes_repository(self, service, three_commit_repo):
        """Test that abandoning a crawl releases the repository."""
        builder, _ = three_commit_repo

        with patch.object(Repo, "close", autospec=True) as mock_close:
            stream = service.crawl(str(builder.path))
            next(stream)
            assert closed_handles(mock_close, builder.path) == []

            stream.close()

            assert len(closed_handles(mock_close, builder.path)) == 1

    def test_failure_mid_walk_closes_repository(self, service, three_commit_repo):
        """Test that an error raised while crawling releases the repository."""
        builder, _ = three_commit_repo

        with patch.object(Repo, "close", autospec=True) as mock_close, \
                patch.object(DiffExtractor, "extract_all",
                             side_effect=[[], RuntimeError("object store failure")]):
            stream = service.crawl(str(builder.path))
            next(stream)

            with pytest.raises(RuntimeError):
                next(stream)

            assert len(closed_handles(mock_close, builder.path)) == 1

    def test_inconsistent_commit_is_logged(self, service, three_commit_repo, caplog):
        """Test that statistics disagreeing with the ranges are logged."""
        builder, (c3, _, _) = three_commit_repo

        with patch("services.commit_crawler.main.aggregate", return_value=(99, 0)), \
                caplog.at_level("WARNING", logger="services.commit_crawler.main"):
            head = next(iter(service.crawl(str(builder.path))))

        assert head.lines_added == 99
        assert f"Inconsistent commit {c3}" in caplog.text

    def test_resolve_head(self, service, three_commit_repo):
        """Test head resolution through the service."""
        builder, (c3, _, _) = three_commit_repo

        resolution = service.resolve_head(str(builder.path))

        assert resolution.ok
        assert resolution.revision == c3
        assert resolution.ref == "refs/heads/master"

    def test_fingerprint(self, service, three_commit_repo):
        """Test fingerprinting through the service."""
        builder, commits = three_commit_repo

        fingerprint = service.fingerprint(str(builder.path))

        assert fingerprint.rehashes == [rehash(c) for c in commits]
        assert fingerprint.emails == {"tester@test.com"}

    def test_fingerprint_nonexistent_path(self, service, tmp_path):
        """Test fingerprinting a missing path."""
        with pytest.raises(ValueError):
            service.fingerprint(str(tmp_path / "missing"))

    def test_count_commits(self, three_commit_repo):
        """Test the commit count used for progress."""
        builder, (c3, c2, c1) = three_commit_repo

        with Repo(builder.path) as repo:
            assert CommitCrawlerService.count_commits(repo, c3) == 3
            assert CommitCrawlerService.count_commits(repo, c3, c1) == 2
            assert CommitCrawlerService.count_commits(repo, "0" * 40) == 0
