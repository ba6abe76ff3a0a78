"""
Paging and cursor state machine behind the commit graph browser.

The machine consumes one key per step and reports, for each step, what the
view has to redraw: the whole page (the offset changed), a few rows (the
cursor moved or a marker changed), or nothing (the key was ignored). It never
touches the terminal and never parses log text.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from .errors import IncompleteSelection
from .log_source import CommitLogEntry, CommitLogSource
from .selection import Selection

logger = logging.getLogger(__name__)

# lines moved by J / K
PAGE_STEP = 10

LEGEND = "j/k down/up  J/K page down/up  r(eference)  s(econdary)  d(iff)  D(iff all)  q(uit)"


class State(enum.Enum):
    VIEWING = "viewing"
    FINISHED = "finished"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Transition:
    """What one key press changed."""

    repage: bool = False
    rows: tuple[int, ...] = ()
    done: bool = False

    @property
    def ignored(self) -> bool:
        return not (self.repage or self.rows or self.done)


IGNORED = Transition()


class GraphBrowser:
    """Cursor, page offset and commit selection for one browsing session.

    `page_size` is the number of rows the view can show. The effective page
    size shrinks to the rows actually fetched on a short final page, and the
    cursor is clamped to it, while fetching keeps asking for `page_size` rows.
    """

    def __init__(self, source: CommitLogSource, page_size: int) -> None:
        self.source = source
        self.requested_page_size = max(0, page_size)
        self.page_size = self.requested_page_size
        self.offset = 0
        self.cursor = 0
        self.selection = Selection()
        self.state = State.VIEWING
        self.diff_all = False
        self.entries: list[CommitLogEntry] = []
        self.load_page()

    def load_page(self) -> None:
        """Fetch the rows at the current offset and re-clamp the cursor."""
        self.entries = self.source.fetch_page(self.offset, self.requested_page_size)
        self.page_size = len(self.entries)
        self.cursor = min(self.cursor, max(self.page_size - 1, 0))
        logger.debug(f"GraphBrowser.load_page: offset={self.offset} page_size={self.page_size} cursor={self.cursor}")

    def current_entry(self) -> Optional[CommitLogEntry]:
        if 0 <= self.cursor < len(self.entries):
            return self.entries[self.cursor]
        return None

    def rows_showing(self, *commit_ids: Optional[str]) -> tuple[int, ...]:
        """Rows of the current page whose commit id is one of `commit_ids`."""
        wanted = {c for c in commit_ids if c is not None}
        return tuple(i for i, entry in enumerate(self.entries) if entry.commit_id in wanted)

    def row_markers(self, row: int) -> tuple[str, str]:
        """Return (cursor marker, selection marker) for a row of the current page."""
        cursor_marker = ">" if row == self.cursor else " "
        return cursor_marker, self.selection.marker_for(self.entries[row].commit_id)

    def press(self, key: str) -> Transition:
        """Apply one key press and return what has to be redrawn."""
        if self.state is not State.VIEWING:
            return IGNORED
        handler = self._handlers().get(key)
        if handler is None:
            return IGNORED
        transition = handler()
        logger.debug(f"GraphBrowser.press: key={key!r} -> {transition} state={self.state.value}")
        return transition

    def _handlers(self):
        return {
            "q": self._cancel,
            "j": lambda: self._move_cursor(1),
            "k": lambda: self._move_cursor(-1),
            "J": self._page_forward,
            "K": self._page_back,
            "r": lambda: self._mark(reference=True),
            "s": lambda: self._mark(reference=False),
            "d": lambda: self._finish(diff_all=False),
            "D": lambda: self._finish(diff_all=True),
        }

    def _cancel(self) -> Transition:
        self.state = State.CANCELLED
        return Transition(done=True)

    def _move_cursor(self, step: int) -> Transition:
        old = self.cursor
        self.cursor = min(max(self.cursor + step, 0), max(self.page_size - 1, 0))
        if self.cursor == old:
            return IGNORED
        return Transition(rows=(old, self.cursor))

    def _page_forward(self) -> Transition:
        if not self.source.has_more(self.offset + PAGE_STEP, self.requested_page_size):
            return IGNORED
        self.offset += PAGE_STEP
        self.load_page()
        return Transition(repage=True)

    def _page_back(self) -> Transition:
        self.offset = max(0, self.offset - PAGE_STEP)
        self.load_page()
        return Transition(repage=True)

    def _mark(self, reference: bool) -> Transition:
        entry = self.current_entry()
        if entry is None or entry.commit_id is None:
            return IGNORED
        if reference:
            previous = self.selection.reference
            changed = self.selection.set_reference(entry.commit_id)
        else:
            previous = self.selection.secondary
            changed = self.selection.set_secondary(entry.commit_id)
        if not changed:
            return IGNORED
        # repaint the row losing its marker as well as the one gaining it
        return Transition(rows=self.rows_showing(previous, entry.commit_id))

    def _finish(self, diff_all: bool) -> Transition:
        self.state = State.FINISHED
        self.diff_all = diff_all
        return Transition(done=True)

    def finalize(self) -> Optional[tuple[Selection, bool]]:
        """Return (selection, diff_all) once finished, or None if the user quit.

        Leaving with `d` / `D` before both commits are marked is fatal.
        """
        if self.state is State.CANCELLED:
            return None
        if self.state is not State.FINISHED:
            raise RuntimeError("browser is still running")
        if not self.selection.is_complete():
            missing = []
            if self.selection.reference is None:
                missing.append("reference")
            if self.selection.secondary is None:
                missing.append("secondary")
            raise IncompleteSelection(f"{' and '.join(missing)} commit not set.")
        return self.selection, self.diff_all
