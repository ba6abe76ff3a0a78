# Shared fixtures: an in-memory stand-in for git and a scratch directory

import io

import pytest
from rich.console import Console

from gitdiff.config import DiffConfig


class FakeOracle:
    """Answers the same questions as GitOracle from plain dictionaries."""

    def __init__(self, log_lines=None, changed=None, between=None, modified=None,
                 contents=None, commits=None, head="h000001", root="/repo"):
        # log_lines: list of (commit_id or None, text)
        self.log_lines = list(log_lines or [])
        self.changed = dict(changed or {})
        self.between = dict(between or {})
        self.modified = list(modified or [])
        self.contents = dict(contents or {})
        self.commits = set(commits or [])
        self.head = head
        self.root = root
        self.calls = []

    def is_inside_repository(self):
        return True

    def repository_root(self):
        return self.root

    def object_type(self, ref):
        return "commit" if ref in self.commits else None

    def resolve(self, ref):
        if ref == "HEAD":
            return self.head
        return ref if ref in self.commits else None

    def resolve_head(self):
        return self.head

    def changed_files(self, commit):
        self.calls.append(("changed_files", commit))
        return list(self.changed.get(commit, []))

    def changed_files_between(self, a, b):
        self.calls.append(("changed_files_between", a, b))
        return list(self.between.get((a, b), []))

    def modified_uncommitted_files(self):
        return list(self.modified)

    def file_content_at(self, commit, path):
        return self.contents.get((commit, path))

    def commit_log(self, offset, count):
        if count <= 0:
            return []
        return self.log_lines[offset:offset + count]


def make_history(n):
    """A linear history of `n` commit lines c0..c(n-1)."""
    return [(f"c{i:06d}", f"* c{i:06d} (2014-12-0{i % 9 + 1}) dev: change {i}") for i in range(n)]


@pytest.fixture
def scratch_dir(tmp_path):
    d = tmp_path / "scratch"
    d.mkdir()
    return d


@pytest.fixture
def config(scratch_dir):
    return DiffConfig(diff_tool="difftool FILE_REF FILE_SEC", tmp_storage=str(scratch_dir))


@pytest.fixture
def quiet_console():
    return Console(file=io.StringIO(), highlight=False)


@pytest.fixture
def feed_input(monkeypatch):
    """Replace input() with a scripted list of answers; EOFError once exhausted."""
    def _feed(answers):
        it = iter(answers)

        def fake_input(*args):
            try:
                return next(it)
            except StopIteration:
                raise EOFError
        monkeypatch.setattr("builtins.input", fake_input)
    return _feed


@pytest.fixture
def fake_oracle():
    return FakeOracle(commits={"refC", "secC"})
