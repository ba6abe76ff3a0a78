"""
Candidate files for a finished selection.
"""
from __future__ import annotations

import logging
from typing import Iterable

from .errors import EmptyFileSet
from .selection import UNCOMMITTED, Selection

logger = logging.getLogger(__name__)


def _dedupe(paths: Iterable[str]) -> list[str]:
    """Trim, drop blanks and deduplicate while keeping first-seen order."""
    return list(dict.fromkeys(p.strip() for p in paths if p and p.strip()))


class FileListResolver:
    """Turns a (reference, secondary, diff-all) choice into the list of files to diff."""

    def __init__(self, oracle) -> None:
        self.oracle = oracle

    def resolve(self, selection: Selection, diff_all: bool) -> list[str]:
        """Files changed by the reference, plus everything changed up to the
        secondary when `diff_all` is set.

        With UNCOMMITTED as the reference the base set is the modified working
        tree files, and HEAD stands in for the reference when the range to the
        secondary is computed.
        """
        reference = selection.reference
        if reference == UNCOMMITTED:
            paths = list(self.oracle.modified_uncommitted_files())
        else:
            paths = list(self.oracle.changed_files(reference))

        if diff_all:
            start = self.oracle.resolve_head() if reference == UNCOMMITTED else reference
            if start is None:
                logger.debug("FileListResolver.resolve: no HEAD to start the range from")
            else:
                paths.extend(self.oracle.changed_files_between(start, selection.secondary))

        files = _dedupe(paths)
        logger.debug(f"FileListResolver.resolve: {selection} diff_all={diff_all} -> {files}")
        if not files:
            raise EmptyFileSet(f"{reference} does not contain any modified files.")
        return files
