"""
Git access used by the browser, the resolver and the diff session.

Repository discovery, commit lookups and working-tree status go through
`pygit2`. Rendered graph logs, changed-file lists and file contents come from
the `git` executable, whose output formats are what users expect to see.
"""
from __future__ import annotations

import logging
import os
import re
import subprocess
import traceback
from typing import Optional

import pygit2
from pygit2.enums import FileStatus

logger = logging.getLogger(__name__)

# "<graph> <hash> (" as produced by LOG_FORMAT under --graph, e.g.
#   "| * 3f2a9c1 (2014-12-09) ervmali: Bug fixes"
COMMIT_LINE_RE = re.compile(r"^[\s*|/\\_.-]*\*\s+([0-9a-zA-Z]{7,})\s+\(")
LOG_FORMAT = "%h (%ad) %an: %s%d"

# working tree or index modifications of tracked files
MODIFIED_FLAGS = FileStatus.WT_MODIFIED | FileStatus.INDEX_MODIFIED
# staged as new ("A" or "AM" in git status); not yet part of any commit
NEW_FLAGS = FileStatus.INDEX_NEW | FileStatus.WT_NEW


def parse_commit_id(line: str) -> Optional[str]:
    """Return the abbreviated commit id of a graph log line, or None for connector lines."""
    m = COMMIT_LINE_RE.match(line)
    if m:
        return m.group(1)
    return None


def _lines(out: str) -> list[str]:
    return [line for line in out.splitlines() if line.strip()]


class GitOracle:
    """Answers every repository question the program asks, one call per question."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = os.path.abspath(path or os.getcwd())
        self._repo: Optional[pygit2.Repository] = None

    def _open(self) -> Optional[pygit2.Repository]:
        if self._repo is not None:
            return self._repo
        try:
            gitdir = pygit2.discover_repository(self.path)
            if not gitdir:
                return None
            self._repo = pygit2.Repository(gitdir)
        except pygit2.GitError as e:
            logger.debug(f"GitOracle._open: exception opening repository at {self.path}: {e}")
            logger.debug(traceback.format_exc())
            return None
        return self._repo

    def _git(self, *args: str) -> subprocess.CompletedProcess:
        cmd = ["git", *args]
        logger.debug(f"GitOracle._git: {cmd}")
        return subprocess.run(cmd, cwd=self.path, capture_output=True, text=True)

    def is_inside_repository(self) -> bool:
        repo = self._open()
        return repo is not None and not repo.is_bare and bool(repo.workdir)

    def repository_root(self) -> str:
        """Absolute path of the working tree root (no trailing separator)."""
        repo = self._open()
        if repo is None or not repo.workdir:
            raise pygit2.GitError(f"{self.path} is not inside a git work tree")
        return os.path.abspath(repo.workdir)

    def _lookup(self, ref: str) -> Optional[pygit2.Object]:
        repo = self._open()
        if repo is None:
            return None
        try:
            return repo.revparse_single(ref)
        except (KeyError, ValueError, pygit2.GitError) as e:
            logger.debug(f"GitOracle._lookup: cannot resolve {ref!r}: {e}")
            return None

    def object_type(self, ref: str) -> Optional[str]:
        """Return "commit", "tree", "blob" or "tag" for `ref`, None if it does not resolve."""
        obj = self._lookup(ref)
        if obj is None:
            return None
        return obj.type_str

    def resolve(self, ref: str) -> Optional[str]:
        """Return the abbreviated id `ref` points to."""
        obj = self._lookup(ref)
        if obj is None:
            return None
        return obj.short_id

    def resolve_head(self) -> Optional[str]:
        return self.resolve("HEAD")

    def changed_files(self, commit: str) -> list[str]:
        """Paths touched by `commit` itself (a root commit lists every file it adds)."""
        proc = self._git("diff-tree", "--no-commit-id", "--name-only", "-r", "--root", commit)
        if proc.returncode != 0:
            logger.debug(f"GitOracle.changed_files: {commit}: {proc.stderr.strip()}")
            return []
        return _lines(proc.stdout)

    def changed_files_between(self, a: str, b: str) -> list[str]:
        """Paths whose content differs between commits `a` and `b`."""
        proc = self._git("diff", "--name-only", a, b)
        if proc.returncode != 0:
            logger.debug(f"GitOracle.changed_files_between: {a}..{b}: {proc.stderr.strip()}")
            return []
        return _lines(proc.stdout)

    def modified_uncommitted_files(self) -> list[str]:
        """Tracked files modified in the working tree or index; untracked files excluded."""
        repo = self._open()
        if repo is None:
            return []
        try:
            status = repo.status()
        except pygit2.GitError as e:
            logger.debug(f"GitOracle.modified_uncommitted_files: exception: {e}")
            logger.debug(traceback.format_exc())
            return []
        return sorted(
            path for path, flags in status.items()
            if flags & MODIFIED_FLAGS and not flags & NEW_FLAGS
        )

    def file_content_at(self, commit: str, path: str) -> Optional[bytes]:
        """Content of `path` (relative to the repository root) at `commit`, None if absent."""
        cmd = ["git", "show", f"{commit}:{path}"]
        logger.debug(f"GitOracle.file_content_at: {cmd}")
        proc = subprocess.run(cmd, cwd=self.path, capture_output=True)
        if proc.returncode != 0:
            logger.debug(f"GitOracle.file_content_at: {commit}:{path} not found")
            return None
        return proc.stdout

    def commit_log(self, offset: int, count: int) -> list[tuple[Optional[str], str]]:
        """Rendered graph log lines `[offset, offset + count)` paired with their commit ids.

        Every commit renders at least one line, so asking git for
        `offset + count` commits always yields enough lines for the window.
        """
        if count <= 0:
            return []
        proc = self._git(
            "log",
            "--graph",
            "--color=never",
            "--date=short",
            f"--pretty=format:{LOG_FORMAT}",
            "-n",
            str(offset + count),
        )
        if proc.returncode != 0:
            # an empty repository has no HEAD to walk
            logger.debug(f"GitOracle.commit_log: {proc.stderr.strip()}")
            return []
        lines = proc.stdout.splitlines()[offset:offset + count]
        return [(parse_commit_id(line), line) for line in lines]
