"""
Git Diff: diff the files changed by one commit against another commit.

    git-diff <commitRef> <commitSec> [--diff-all]
    git-diff HEAD <commitSec>
    git-diff UNCOMMITTED <commitSec>
    git-diff --graph

<commitRef> holds the changes under review, <commitSec> is what they are
compared with. HEAD stands for the checked out commit and UNCOMMITTED for the
working tree's modifications (untracked files excluded). --graph picks both
commits interactively from the commit graph instead.
"""
from __future__ import annotations

import argparse
import logging
import shutil
import sys
from typing import Optional

from rich.console import Console
from rich.text import Text

from . import __version__
from .browser import GraphBrowser
from .config import load_config
from .errors import GitDiffError, RepositoryError, TerminalTooSmall, UsageError
from .log_source import CommitLogSource
from .resolver import FileListResolver
from .selection import UNCOMMITTED, Selection
from .session import DiffSession
from .tui import MIN_COLUMNS, MIN_LINES, GraphBrowserApp, page_size_for
from .vcs import GitOracle

logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """Report bad arguments as UsageError so they exit like every other fatal error."""

    def error(self, message: str):
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="git-diff",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("commits", nargs="*", metavar="COMMIT", help="<commitRef> <commitSec>")
    parser.add_argument("-g", "--graph", action="store_true", help="pick both commits from the commit graph")
    parser.add_argument(
        "-a",
        "--diff-all",
        action="store_true",
        help="also diff every file changed between <commitRef> and <commitSec>",
    )
    parser.add_argument("--config", default=None, help="configuration file (default ~/.git_diff_config)")
    parser.add_argument("--log", default=None, metavar="FILE", help="write a debug log to FILE")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def setup_logging(path: str) -> None:
    logging.basicConfig(
        filename=path,
        level=logging.DEBUG,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def check_arguments(args: argparse.Namespace) -> None:
    """Argument shape only; nothing here touches the repository."""
    if args.graph:
        if args.commits:
            raise UsageError("--graph takes no commit arguments.")
        return
    if len(args.commits) != 2:
        raise UsageError("Faulty number of arguments.")
    if args.commits[1] == "HEAD":
        raise UsageError("HEAD cannot be used as <commitSec>.")


def resolve_commit(oracle, ref: str) -> str:
    """Abbreviated id of `ref`, which must name a commit."""
    if oracle.object_type(ref) != "commit":
        raise RepositoryError(f"{ref} is not a valid commit.")
    commit_id = oracle.resolve(ref)
    if commit_id is None:
        raise RepositoryError(f"{ref} is not a valid commit.")
    return commit_id


def selection_from_args(oracle, ref: str, sec: str) -> Selection:
    """Turn the two positional tokens into a selection of commit ids."""
    if ref == "HEAD":
        reference = oracle.resolve_head()
        if reference is None:
            raise RepositoryError("HEAD does not point to a commit.")
    elif ref == UNCOMMITTED:
        reference = UNCOMMITTED
    else:
        reference = resolve_commit(oracle, ref)
    secondary = resolve_commit(oracle, sec)
    if reference == secondary:
        raise RepositoryError(f"{ref} and {sec} are the same commit.")
    return Selection(reference=reference, secondary=secondary)


def validate_selection(oracle, selection: Selection) -> None:
    """Checks shared by both entry paths: a real secondary commit distinct from the reference."""
    if selection.secondary == UNCOMMITTED or oracle.object_type(selection.secondary) != "commit":
        raise RepositoryError(f"{selection.secondary} is not a valid commit.")
    if selection.reference != UNCOMMITTED and oracle.object_type(selection.reference) != "commit":
        raise RepositoryError(f"{selection.reference} is not a valid commit.")
    if selection.reference == selection.secondary:
        raise RepositoryError("The reference and secondary commits are the same.")


def browse(oracle) -> Optional[tuple[Selection, bool]]:
    """Run the graph browser. Returns None when the user quits with `q`."""
    size = shutil.get_terminal_size()
    if size.columns < MIN_COLUMNS or size.lines < MIN_LINES:
        raise TerminalTooSmall(
            f"Terminal is {size.columns}x{size.lines}, at least {MIN_COLUMNS}x{MIN_LINES} is needed."
        )
    browser = GraphBrowser(CommitLogSource(oracle), page_size_for(size.lines))
    GraphBrowserApp(browser).run()
    return browser.finalize()


def run(args: argparse.Namespace, console: Console, oracle=None) -> int:
    """Validate, pick the commits, resolve the files and drive the diff loop."""
    check_arguments(args)
    oracle = oracle or GitOracle()
    if not oracle.is_inside_repository():
        raise RepositoryError("Current directory does not belong to a Git repo.")
    config = load_config(args.config)

    if args.graph:
        result = browse(oracle)
        if result is None:
            logger.debug("run: browser cancelled")
            return 0
        selection, diff_all = result
    else:
        selection = selection_from_args(oracle, args.commits[0], args.commits[1])
        diff_all = args.diff_all

    validate_selection(oracle, selection)
    logger.debug(f"run: selection={selection} diff_all={diff_all}")
    files = FileListResolver(oracle).resolve(selection, diff_all)
    return DiffSession(oracle, config, selection, files, console=console).run()


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point: exit 0 on a normal quit, 1 on any fatal error."""
    parser = build_parser()
    console = Console(highlight=False)
    err = Console(stderr=True, highlight=False)
    try:
        args = parser.parse_args(argv)
        if args.log:
            setup_logging(args.log)
        code = run(args, console)
    except GitDiffError as e:
        logger.debug(f"main: {type(e).__name__}: {e}")
        err.print(Text(f"ERROR! {e}", style="bold red"))
        if isinstance(e, UsageError):
            err.print(Text(parser.format_usage()))
        sys.exit(e.exit_code)
    sys.exit(code)
