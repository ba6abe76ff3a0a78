# Unit tests for gitdiff/session.py

import os

import pytest

from gitdiff.config import DiffConfig
from gitdiff.selection import UNCOMMITTED, Selection
from gitdiff.session import DiffSession, build_command, display_name
from tests.conftest import FakeOracle


class RecordingTool:
    """Captures both snapshot files' contents at the moment the tool would run."""

    def __init__(self, status=0, error=None):
        self.status = status
        self.error = error
        self.commands = []
        self.snapshots = []

    def __call__(self, command):
        self.commands.append(command)
        ref_path, sec_path = command.split()[1:3]
        with open(ref_path, "rb") as fh:
            ref = fh.read()
        with open(sec_path, "rb") as fh:
            sec = fh.read()
        self.snapshots.append((ref_path, ref, sec_path, sec))
        if self.error:
            raise self.error
        return self.status


@pytest.fixture
def repo_oracle(tmp_path):
    root = tmp_path / "repo"
    root.mkdir()
    (root / "a.txt").write_bytes(b"working tree\n")
    return FakeOracle(
        commits={"refC", "secC"},
        root=str(root),
        contents={
            ("refC", "a.txt"): b"at ref\n",
            ("secC", "a.txt"): b"at sec\n",
            ("refC", "src/b.py"): b"print('ref')\n",
            ("secC", "src/b.py"): b"print('sec')\n",
        },
    )


def make_session(oracle, config, console, files, reference="refC", tool=None):
    return DiffSession(
        oracle,
        config,
        Selection(reference=reference, secondary="secC"),
        files,
        console=console,
        user="tester",
        run_tool=tool or RecordingTool(),
    )


class TestDisplayName:

    @pytest.mark.parametrize("path,expected", [
        ("src/main.c", "main.c"),
        ("a.txt", "a.txt"),
        ("dir/archive.tar.gz", "tar.gz"),
        ("Makefile", "UNKNOWN"),
        ("docs/my-file.md", "file.md"),
    ])
    def test_trailing_name(self, path, expected):
        assert display_name(path) == expected


class TestBuildCommand:

    def test_placeholders_replaced_and_template_untouched(self):
        template = "vim -d FILE_REF FILE_SEC"
        cmd = build_command(template, "/tmp/r file", "/tmp/s")
        assert cmd == "vim -d '/tmp/r file' /tmp/s"
        assert template == "vim -d FILE_REF FILE_SEC"


class TestCursor:

    def test_advances_after_every_pick_and_wraps(self, repo_oracle, config, quiet_console):
        files = ["a.txt", "src/b.py", "c.txt"]
        session = make_session(repo_oracle, config, quiet_console, files)
        session.diff_file(session.parse_choice("n"))
        assert session.cursor == 1
        session.diff_file(session.parse_choice("2"))
        assert session.cursor == 0
        session.diff_file(session.parse_choice("0"))
        assert session.cursor == 1
        session.diff_file(session.parse_choice("n"))
        assert session.cursor == 2

    @pytest.mark.parametrize("answer", ["", "x", "-1", "3", "1.0", "nn", "Q"])
    def test_bad_answers_are_ignored(self, repo_oracle, config, quiet_console, answer):
        session = make_session(repo_oracle, config, quiet_console, ["a.txt", "src/b.py", "c.txt"])
        assert session.parse_choice(answer) is None

    def test_answers_are_trimmed(self, repo_oracle, config, quiet_console):
        session = make_session(repo_oracle, config, quiet_console, ["a.txt", "src/b.py"])
        assert session.parse_choice(" 1 \n") == 1


class TestSnapshots:

    def test_committed_reference_and_secondary(self, repo_oracle, config, quiet_console):
        tool = RecordingTool()
        session = make_session(repo_oracle, config, quiet_console, ["src/b.py"], tool=tool)
        session.diff_file(0)
        ref_path, ref, sec_path, sec = tool.snapshots[0]
        assert ref == b"print('ref')\n"
        assert sec == b"print('sec')\n"
        assert os.path.basename(ref_path) == f"tmp.tester.{os.getpid()}.commitRef.b.py"
        assert os.path.basename(sec_path) == f"tmp.tester.{os.getpid()}.commitSec.b.py"

    def test_uncommitted_reference_reads_working_tree(self, repo_oracle, config, quiet_console):
        tool = RecordingTool()
        session = make_session(repo_oracle, config, quiet_console, ["a.txt"], reference=UNCOMMITTED, tool=tool)
        session.diff_file(0)
        _, ref, _, sec = tool.snapshots[0]
        assert ref == b"working tree\n"
        assert sec == b"at sec\n"

    def test_path_missing_at_secondary_gives_empty_snapshot(self, repo_oracle, config, quiet_console):
        repo_oracle.contents[("refC", "new.txt")] = b"added\n"
        tool = RecordingTool()
        session = make_session(repo_oracle, config, quiet_console, ["new.txt"], tool=tool)
        session.diff_file(0)
        _, ref, _, sec = tool.snapshots[0]
        assert ref == b"added\n"
        assert sec == b""

    def test_deleted_working_tree_file_gives_empty_snapshot(self, repo_oracle, config, quiet_console):
        tool = RecordingTool()
        session = make_session(repo_oracle, config, quiet_console, ["gone.txt"], reference=UNCOMMITTED, tool=tool)
        session.diff_file(0)
        assert tool.snapshots[0][1] == b""


class TestCleanup:

    @pytest.mark.parametrize("tool", [RecordingTool(status=0), RecordingTool(status=3),
                                      RecordingTool(error=OSError("no such tool"))])
    def test_no_snapshot_survives_a_pick(self, repo_oracle, config, quiet_console, scratch_dir, tool):
        session = make_session(repo_oracle, config, quiet_console, ["a.txt", "src/b.py"], tool=tool)
        session.diff_file(0)
        session.diff_file(1)
        assert len(tool.snapshots) == 2
        assert os.listdir(scratch_dir) == []

    def test_cleanup_when_tool_is_interrupted(self, repo_oracle, config, quiet_console, scratch_dir):
        tool = RecordingTool(error=KeyboardInterrupt())
        session = make_session(repo_oracle, config, quiet_console, ["a.txt"], tool=tool)
        with pytest.raises(KeyboardInterrupt):
            session.diff_file(0)
        assert os.listdir(scratch_dir) == []

    def test_real_shell_tool_exit_status_is_ignored(self, repo_oracle, scratch_dir, tmp_path, quiet_console):
        captured = tmp_path / "captured.txt"
        cfg = DiffConfig(diff_tool=f"cat FILE_REF FILE_SEC > {captured}; exit 7", tmp_storage=str(scratch_dir))
        session = DiffSession(repo_oracle, cfg, Selection(reference="refC", secondary="secC"),
                              ["a.txt"], console=quiet_console, user="tester")
        session.diff_file(0)
        assert captured.read_bytes() == b"at ref\nat sec\n"
        assert os.listdir(scratch_dir) == []

    def test_missing_scratch_dir_is_reported_not_fatal(self, repo_oracle, tmp_path, quiet_console):
        cfg = DiffConfig(diff_tool="difftool FILE_REF FILE_SEC", tmp_storage=str(tmp_path / "nope"))
        tool = RecordingTool()
        session = make_session(repo_oracle, cfg, quiet_console, ["a.txt"], tool=tool)
        session.diff_file(0)
        assert tool.commands == []
        assert session.cursor == 0


class TestLoop:

    def test_quit(self, repo_oracle, config, quiet_console, feed_input):
        feed_input(["q"])
        tool = RecordingTool()
        assert make_session(repo_oracle, config, quiet_console, ["a.txt"], tool=tool).run() == 0
        assert tool.commands == []

    def test_picks_then_quit(self, repo_oracle, config, quiet_console, feed_input):
        feed_input(["n", "garbage", "9", "0", "n", "q"])
        tool = RecordingTool()
        session = make_session(repo_oracle, config, quiet_console, ["a.txt", "src/b.py"], tool=tool)
        assert session.run() == 0
        picked = [os.path.basename(s[0]).split(".", 4)[-1] for s in tool.snapshots]
        assert picked == ["a.txt", "a.txt", "b.py"]

    def test_end_of_input_quits(self, repo_oracle, config, quiet_console, feed_input):
        feed_input([])
        assert make_session(repo_oracle, config, quiet_console, ["a.txt"]).run() == 0

    def test_list_marks_next_pick(self, repo_oracle, config, feed_input):
        from io import StringIO
        from rich.console import Console
        out = StringIO()
        feed_input(["n", "q"])
        session = make_session(repo_oracle, config, Console(file=out, highlight=False, width=120),
                               ["a.txt", "src/b.py"])
        session.run()
        lines = [line for line in out.getvalue().splitlines() if "(" in line and ")" in line and "Pick" not in line]
        assert lines[0].startswith("* (0) a.txt")
        assert lines[1].startswith("  (1) src/b.py")
        assert lines[2].startswith("  (0) a.txt")
        assert lines[3].startswith("* (1) src/b.py")
