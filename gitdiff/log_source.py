"""
Pages of the commit graph for the browser.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .selection import UNCOMMITTED

logger = logging.getLogger(__name__)

UNCOMMITTED_TEXT = "* UNCOMMITTED (working tree modifications)"


@dataclass(frozen=True)
class CommitLogEntry:
    """One rendered history line; `commit_id` is None for graph connector lines."""

    commit_id: Optional[str]
    text: str


class CommitLogSource:
    """Windows onto the graph log, with the working tree's changes as a leading row."""

    def __init__(self, oracle) -> None:
        self.oracle = oracle

    def fetch_page(self, offset: int, count: int) -> list[CommitLogEntry]:
        """Return at most `count` entries starting at line `offset` of the history.

        At offset 0 a synthetic UNCOMMITTED entry leads the page when the
        working tree has modified files; it takes one of the `count` slots.
        """
        offset = max(0, offset)
        count = max(0, count)
        if count == 0:
            return []
        entries: list[CommitLogEntry] = []
        if offset == 0 and self.oracle.modified_uncommitted_files():
            entries.append(CommitLogEntry(UNCOMMITTED, UNCOMMITTED_TEXT))
        for commit_id, text in self.oracle.commit_log(offset, count - len(entries)):
            entries.append(CommitLogEntry(commit_id, text))
        logger.debug(f"CommitLogSource.fetch_page: offset={offset} count={count} -> {len(entries)} entries")
        return entries[:count]

    def has_more(self, offset: int, count: int) -> bool:
        return len(self.fetch_page(offset, count)) > 0
