"""
User configuration read from ~/.git_diff_config.

The file holds `key = value` lines without sections:

    diffTool = meld FILE_REF FILE_SEC
    tmpStorage = /var/tmp/

`FILE_REF` and `FILE_SEC` are replaced by the two snapshot paths each time the
diff tool is started.
"""
from __future__ import annotations

import configparser
import logging
import os
import traceback
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".git_diff_config"
REF_PLACEHOLDER = "FILE_REF"
SEC_PLACEHOLDER = "FILE_SEC"
DEFAULT_DIFF_TOOL = f"vim -d {REF_PLACEHOLDER} {SEC_PLACEHOLDER}"
DEFAULT_TMP_STORAGE = "/tmp/"

# the file has no [section] header; one is prepended before parsing
_SECTION = "git_diff"


@dataclass(frozen=True)
class DiffConfig:
    """Diff tool template and scratch directory, fixed for the whole run."""

    diff_tool: str = DEFAULT_DIFF_TOOL
    tmp_storage: str = DEFAULT_TMP_STORAGE


def default_config_path() -> str:
    return os.path.join(os.path.expanduser("~"), CONFIG_FILENAME)


def _setting_lines(text: str) -> list[str]:
    """Left-aligned comment and `key = value` lines; anything else is skipped.

    Indentation would otherwise turn a line into a continuation of the
    previous value, and a stray line without `=` would fail the whole file.
    """
    kept = []
    for line in (raw.strip() for raw in text.splitlines()):
        if line.startswith(("#", ";")):
            kept.append(line)
        elif not line.startswith("[") and line.partition("=")[0].strip() and "=" in line:
            kept.append(line)
    return kept


def parse_config(text: str) -> DiffConfig:
    """Build a DiffConfig from the contents of a configuration file."""
    parser = configparser.ConfigParser(delimiters=("=",), interpolation=None, strict=False)
    # option names are case sensitive (diffTool, tmpStorage)
    parser.optionxform = str
    parser.read_string(f"[{_SECTION}]\n" + "\n".join(_setting_lines(text)))
    diff_tool = parser.get(_SECTION, "diffTool", fallback="").strip() or DEFAULT_DIFF_TOOL
    tmp_storage = parser.get(_SECTION, "tmpStorage", fallback="").strip() or DEFAULT_TMP_STORAGE
    return DiffConfig(diff_tool=diff_tool, tmp_storage=os.path.expanduser(tmp_storage))


def load_config(path: Optional[str] = None) -> DiffConfig:
    """Read the configuration file at `path`, falling back to built-in defaults.

    A missing file is not an error. An unreadable or malformed one is logged
    and ignored.
    """
    path = path or default_config_path()
    if not os.path.exists(path):
        logger.debug(f"load_config: no configuration at {path}, using defaults")
        return DiffConfig()
    try:
        with open(path, encoding="utf-8") as fh:
            text = fh.read()
        cfg = parse_config(text)
    except (OSError, configparser.Error) as e:
        logger.debug(f"load_config: exception reading {path}: {e}")
        logger.debug(traceback.format_exc())
        return DiffConfig()
    logger.debug(f"load_config: {path} -> {cfg}")
    return cfg
