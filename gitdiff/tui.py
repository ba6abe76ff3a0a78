"""
Textual view of the commit graph browser.
"""
from __future__ import annotations

import logging
import traceback

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.widgets import Label

from .browser import LEGEND, PAGE_STEP, GraphBrowser, State, Transition
from .selection import UNCOMMITTED

logger = logging.getLogger(__name__)

# title, legend and footer lines around the commit rows
RESERVED_LINES = 3
MIN_COLUMNS = 40
# a page must be taller than one J/K step, or the lines between pages are never shown
MIN_LINES = PAGE_STEP + RESERVED_LINES + 1

MARKER_STYLES = {"R": "bold green", "S": "bold cyan"}


def page_size_for(lines: int) -> int:
    """Number of commit rows that fit in a terminal `lines` tall."""
    return max(lines - RESERVED_LINES, 0)


class GraphBrowserApp(App):
    """Full-screen commit graph with a cursor and R/S markers.

    All decisions are made by the wrapped `GraphBrowser`; this app only maps
    key events onto it and redraws what each transition reports.
    """

    TITLE = "Git Diff: pick reference (r) and secondary (s) commits"
    CSS = """
App {
    overflow: hidden;
    scrollbar-size: 0 0;
}
#title {
    height: 1;
    padding: 0 1;
    width: 100%;
}
#rows {
    height: 1fr;
}
.row {
    height: 1;
    width: 100%;
}
#legend {
    height: 1;
    padding: 0 1;
}
#footer {
    height: 1;
    padding: 0 1;
}
"""

    def __init__(self, browser: GraphBrowser, **kwargs) -> None:
        super().__init__(**kwargs)
        self.browser = browser

    def compose(self) -> ComposeResult:
        """Title, one label per commit row, legend and selection footer."""
        yield Label(Text(self.TITLE, style="bold"), id="title")
        with Vertical(id="rows"):
            for i in range(self.browser.requested_page_size):
                yield Label("", id=f"row-{i}", classes="row")
        yield Label(Text(LEGEND, style="bold"), id="legend")
        yield Label(self._footer_text(), id="footer")

    def on_mount(self) -> None:
        self.repage()

    def _footer_text(self) -> Text:
        sel = self.browser.selection
        ref = sel.reference or "-"
        sec = sel.secondary or "-"
        return Text(f"R: {ref}   S: {sec}   offset: {self.browser.offset}")

    def render_row(self, row: int) -> Text:
        """Styled text for one row of the current page; blank past the page end."""
        if row >= self.browser.page_size:
            return Text("")
        entry = self.browser.entries[row]
        cursor_marker, sel_marker = self.browser.row_markers(row)
        text = Text(no_wrap=True, overflow="ellipsis")
        text.append(cursor_marker, style="bold reverse" if cursor_marker != " " else "")
        text.append(sel_marker, style=MARKER_STYLES.get(sel_marker, ""))
        text.append(" ")
        text.append(entry.text, style="yellow" if entry.commit_id == UNCOMMITTED else "")
        return text

    def repaint_rows(self, rows) -> None:
        for row in rows:
            try:
                self.query_one(f"#row-{row}", Label).update(self.render_row(row))
            except Exception as e:
                logger.debug(f"GraphBrowserApp.repaint_rows: row {row}: exception: {e}")
                logger.debug(traceback.format_exc())
        self.query_one("#footer", Label).update(self._footer_text())

    def repage(self) -> None:
        """Redraw every row label after the offset changed."""
        self.repaint_rows(range(self.browser.requested_page_size))

    def apply(self, transition: Transition) -> None:
        if transition.done:
            self.exit()
            return
        if transition.repage:
            self.repage()
        elif transition.rows:
            self.repaint_rows(transition.rows)

    def on_key(self, event: events.Key) -> None:
        """Feed single-character keys to the browser; everything else is ignored."""
        key = event.character or event.key
        logger.debug(f"GraphBrowserApp.on_key: key={event.key} character={event.character}")
        if not key or len(key) != 1 or not key.isprintable():
            return
        event.stop()
        transition = self.browser.press(key)
        if not transition.ignored:
            self.apply(transition)

    async def action_quit(self) -> None:
        # ctrl+q and friends leave the browser the same way `q` does
        if self.browser.state is State.VIEWING:
            self.browser.press("q")
        self.exit()
