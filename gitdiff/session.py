"""
The file picking loop: show the candidate files, let the user pick one (or
the next one), and open the diff tool on two temporary snapshots of it.
"""
from __future__ import annotations

import getpass
import logging
import os
import re
import shlex
import shutil
import subprocess
import traceback
from typing import Callable, Optional

from rich.console import Console
from rich.text import Text

from .config import REF_PLACEHOLDER, SEC_PLACEHOLDER, DiffConfig
from .selection import UNCOMMITTED, Selection

logger = logging.getLogger(__name__)

FILENAME_RE = re.compile(r"(\w+\.\w+)$")
UNKNOWN_FILENAME = "UNKNOWN"
PROMPT = "\nPick a number, n(ext) or q(uit)? "

REF_ROLE = "commitRef"
SEC_ROLE = "commitSec"


def display_name(path: str) -> str:
    """Trailing `name.ext` of `path`, or UNKNOWN when it has no such suffix."""
    m = FILENAME_RE.search(path)
    if m:
        return m.group(1)
    return UNKNOWN_FILENAME


def build_command(template: str, ref_path: str, sec_path: str) -> str:
    """Return a shell command with both snapshot paths put into `template`.

    The template itself is never modified; each pick gets a new command.
    """
    return template.replace(REF_PLACEHOLDER, shlex.quote(ref_path)).replace(
        SEC_PLACEHOLDER, shlex.quote(sec_path)
    )


class DiffSession:
    """Interactive loop over a fixed file list with a wrapping "next" cursor."""

    def __init__(
        self,
        oracle,
        config: DiffConfig,
        selection: Selection,
        files: list[str],
        console: Optional[Console] = None,
        user: Optional[str] = None,
        run_tool: Optional[Callable[[str], object]] = None,
    ) -> None:
        self.oracle = oracle
        self.config = config
        self.selection = selection
        self.files = list(files)
        self.console = console or Console(highlight=False)
        self.user = user or getpass.getuser()
        self.run_tool = run_tool or self._run_tool
        self.cursor = 0
        self._repo_root: Optional[str] = None

    def render(self) -> None:
        """Print every file with its index; `*` marks what `n` would pick."""
        for i, path in enumerate(self.files):
            star = "*" if i == self.cursor else " "
            line = Text(f"{star} ({i}) ")
            line.append(path, style="bold" if i == self.cursor else "")
            self.console.print(line)

    def parse_choice(self, answer: str) -> Optional[int]:
        """Map one line of input to a file index; None means "ignore and ask again"."""
        answer = answer.strip()
        if answer == "n":
            return self.cursor
        if answer.isdecimal():
            index = int(answer)
            if 0 <= index < len(self.files):
                return index
        return None

    def run(self) -> int:
        """Prompt until the user quits. Returns the exit status."""
        while True:
            self.render()
            try:
                answer = self.console.input(PROMPT)
            except EOFError:
                logger.debug("DiffSession.run: end of input")
                return 0
            if answer.strip() == "q":
                return 0
            pick = self.parse_choice(answer)
            if pick is None:
                logger.debug(f"DiffSession.run: ignoring {answer!r}")
            else:
                self.diff_file(pick)
            self.console.print()

    def snapshot_path(self, role: str, path: str) -> str:
        name = f"tmp.{self.user}.{os.getpid()}.{role}.{display_name(path)}"
        return os.path.join(self.config.tmp_storage, name)

    def repo_root(self) -> str:
        if self._repo_root is None:
            self._repo_root = self.oracle.repository_root()
        return self._repo_root

    def _write_snapshot(self, dest: str, content: Optional[bytes]) -> None:
        with open(dest, "wb") as fh:
            fh.write(content or b"")

    def materialize_reference(self, path: str, dest: str) -> None:
        """Reference side: the working tree file for UNCOMMITTED, else the file at the reference."""
        if self.selection.reference == UNCOMMITTED:
            try:
                shutil.copyfile(os.path.join(self.repo_root(), path), dest)
            except FileNotFoundError as e:
                logger.debug(f"DiffSession.materialize_reference: {path} missing from work tree: {e}")
                self._write_snapshot(dest, None)
            return
        self._write_snapshot(dest, self.oracle.file_content_at(self.selection.reference, path))

    def materialize_secondary(self, path: str, dest: str) -> None:
        """Secondary side: always the committed file; empty when the path is absent there."""
        self._write_snapshot(dest, self.oracle.file_content_at(self.selection.secondary, path))

    def _run_tool(self, command: str) -> Optional[int]:
        proc = subprocess.run(command, shell=True)
        return proc.returncode

    def diff_file(self, index: int) -> None:
        """Advance the cursor past `index` and diff that file; snapshots never outlive the call."""
        self.cursor = (index + 1) % len(self.files)
        path = self.files[index]
        ref_path = self.snapshot_path(REF_ROLE, path)
        sec_path = self.snapshot_path(SEC_ROLE, path)
        try:
            self.materialize_reference(path, ref_path)
            self.materialize_secondary(path, sec_path)
            command = build_command(self.config.diff_tool, ref_path, sec_path)
            logger.debug(f"DiffSession.diff_file: {path}: {command}")
            status = self.run_tool(command)
            logger.debug(f"DiffSession.diff_file: diff tool exited with {status}")
        except OSError as e:
            logger.debug(f"DiffSession.diff_file: exception diffing {path}: {e}")
            logger.debug(traceback.format_exc())
            self.console.print(Text(f"ERROR! Could not diff {path}: {e}", style="red"))
        finally:
            for snapshot in (ref_path, sec_path):
                try:
                    if os.path.exists(snapshot):
                        os.remove(snapshot)
                except OSError as e:
                    logger.debug(f"DiffSession.diff_file: exception removing {snapshot}: {e}")
                    logger.debug(traceback.format_exc())
