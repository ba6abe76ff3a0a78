"""
Fatal conditions. Each one ends the program with exit status 1.
"""
from __future__ import annotations


class GitDiffError(Exception):
    """Base class for errors reported to the user before exiting."""

    exit_code = 1


class UsageError(GitDiffError):
    """Wrong argument shape or count."""


class RepositoryError(GitDiffError):
    """Not inside a repository, bad commit reference, or reference == secondary."""


class EmptyFileSet(GitDiffError):
    """The selected commits yield no files to diff."""


class TerminalTooSmall(GitDiffError):
    """The terminal cannot hold the graph browser."""


class IncompleteSelection(GitDiffError):
    """The browser was left with `d`/`D` before both commits were marked."""
