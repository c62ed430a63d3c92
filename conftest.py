import shutil
import subprocess

import pytest

from shared.events import RecordingReporter


class GitRepoBuilder:
    """Builds small repositories with the git executable."""

    def __init__(self, path):
        self.path = path
        self.path.mkdir(parents=True, exist_ok=True)
        self.git("init", "-q")
        self.git("symbolic-ref", "HEAD", "refs/heads/master")
        self.git("config", "user.email", "tester@test.com")
        self.git("config", "user.name", "Tester")
        self.git("config", "commit.gpgsign", "false")

    def git(self, *args) -> str:
        result = subprocess.run(["git", "-C", str(self.path)] + list(args),
                                check=True, capture_output=True, text=True)
        return result.stdout.strip()

    def write(self, name, content):
        target = self.path / name
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")

    def lines(self, name, lines):
        self.write(name, "".join(f"{line}\n" for line in lines))

    def remove(self, name):
        self.git("rm", "-q", name)

    def commit(self, message, author="Tester <tester@test.com>") -> str:
        self.git("add", "-A")
        self.git("commit", "-q", "--allow-empty", "-m", message, "--author", author)
        return self.git("rev-parse", "HEAD")


@pytest.fixture
def git_available():
    if shutil.which("git") is None:
        pytest.skip("git executable not available")


@pytest.fixture
def make_repo(tmp_path, git_available):
    def factory(name="repo"):
        return GitRepoBuilder(tmp_path / name)
    return factory


@pytest.fixture
def three_commit_repo(make_repo):
    """C1 adds a.txt with 10 lines, C2 appends 5 lines, C3 (head) deletes 2."""
    builder = make_repo()
    builder.lines("a.txt", [f"line {i}" for i in range(10)])
    c1 = builder.commit("initial")
    builder.lines("a.txt", [f"line {i}" for i in range(15)])
    c2 = builder.commit("append five lines")
    builder.lines("a.txt", [f"line {i}" for i in range(13)])
    c3 = builder.commit("drop two lines")
    return builder, [c3, c2, c1]


@pytest.fixture
def recording_reporter():
    return RecordingReporter()
