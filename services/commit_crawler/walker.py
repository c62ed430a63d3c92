"""
History walking.

Commits are visited in reverse topological order starting at the head. Each
commit is diffed against the *next* commit the walk visits rather than against
each of its parents: the walk follows a single lineage, so a merge commit is
diffed against whichever commit comes after it in the walk. The last commit
of the walk is diffed against the empty tree, which turns every file into an
addition.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from git import Repo
from git.diff import Diff
from git.objects import Commit as GitCommit, Tree
from git.util import hex_to_bin

from config.settings import settings
from shared.events import CrawlReporter, NullReporter
from services.commit_crawler.edits import Edit, parse_edit_list

EMPTY_TREE_SHA = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"


@dataclass
class RawDiff:
    """A diff entry from the object store paired with its edit list."""

    entry: Diff
    edits: List[Edit] = field(default_factory=list)


@dataclass
class RawCommit:
    """A visited commit, the commit it was diffed against and the raw diffs."""

    commit: GitCommit
    parent: Optional[GitCommit]
    diffs: List[RawDiff] = field(default_factory=list)


class HistoryWalker:
    """Streams commits from a head, each paired with a diff against its walk parent."""

    def __init__(self, detect_copies: Optional[bool] = None, reporter: Optional[CrawlReporter] = None):
        self.detect_copies = settings.diff.detect_copies if detect_copies is None else detect_copies
        self.reporter = reporter or NullReporter()

    @staticmethod
    def iter_history(repo: Repo, head: str) -> Iterator[GitCommit]:
        """Lazily iterate every commit reachable from ``head``, most recent first."""
        return repo.iter_commits(head, topo_order=True)

    @staticmethod
    def _lookup(tree: Tree, path: Optional[str]):
        if not path:
            return None
        try:
            return tree / path
        except KeyError:
            return None

    def _fill_blobs(self, entry: Diff, old_tree: Tree, new_tree: Tree):
        # Patches without an index line (pure renames, mode changes) carry no blob ids.
        if entry.a_blob is None and not entry.new_file:
            entry.a_blob = self._lookup(old_tree, entry.a_path)
        if entry.b_blob is None and not entry.deleted_file:
            entry.b_blob = self._lookup(new_tree, entry.b_path)

    def diff(self, repo: Repo, commit: GitCommit, parent: Optional[GitCommit]) -> List[RawDiff]:
        """Diff ``commit`` against ``parent``, or against the empty tree at the root."""
        base = parent if parent is not None else Tree(repo, hex_to_bin(EMPTY_TREE_SHA))
        kwargs = {"unified": 0, "find_renames": True}
        if self.detect_copies:
            kwargs["find_copies"] = True
        index = base.diff(commit, create_patch=True, **kwargs)

        old_tree = parent.tree if parent is not None else base
        raw_diffs = []
        for entry in index:
            self._fill_blobs(entry, old_tree, commit.tree)
            raw_diffs.append(RawDiff(entry, parse_edit_list(entry.diff)))
        return raw_diffs

    def stream_commits(
        self,
        repo: Repo,
        head: str,
        stop_before: Optional[str] = None,
        total_count: int = 0,
    ) -> Iterator[RawCommit]:
        """
        Yield one ``RawCommit`` per visited commit.

        The walk ends before ``stop_before`` when it is reached, so neither that
        commit nor anything the walk would visit after it is yielded. The diff of
        a commit is only computed when the consumer pulls it.
        """
        history = self.iter_history(repo, head)
        commit = next(history, None)
        visited = 0

        while commit is not None and commit.hexsha != stop_before:
            visited += 1
            parent = next(history, None)

            self.reporter.commit_visited(
                commit.hexsha,
                commit.summary,
                parent.hexsha if parent is not None else None,
                visited,
                total_count,
            )

            yield RawCommit(commit, parent, self.diff(repo, commit, parent))
            commit = parent
