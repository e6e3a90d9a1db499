# git.py
# Small, focused wrapper around the Git CLI.
# Used when the changed-file set comes from a local checkout instead of
# the GitHub compare API.

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Optional


def _git(args: list[str], cwd: Optional[str | Path] = None) -> str:
    """
    Execute a git command and return its stdout as a clean string.

    Args:
        args: List of git arguments (e.g. ["diff", "--name-only", "a..b"])
        cwd: Working directory in which to run the git command.

    Returns:
        Stdout from the git command with surrounding whitespace removed.

    Raises:
        subprocess.CalledProcessError: git exited non-zero
    """
    out = subprocess.check_output(
        ["git", *args],
        cwd=cwd,
        text=True,
        stderr=subprocess.PIPE,
    )
    return out.strip()


def changed_files(base: str, head: str = "HEAD", cwd: Optional[str | Path] = None) -> List[str]:
    """
    Return the files changed between two Git references.

    File paths are relative to the repository root.
    """
    out = _git(["diff", "--name-only", f"{base}..{head}"], cwd=cwd)

    # No output means no file-level changes
    if not out:
        return []
    return out.splitlines()
