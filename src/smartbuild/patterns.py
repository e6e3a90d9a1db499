# patterns.py
from __future__ import annotations

from typing import Iterable, Mapping, Sequence, Union

from .model import ChangedFile

# ---------------------------------------------------------------------
# Watch-file glob grammar
# ---------------------------------------------------------------------
#   "*"                  anything
#   "*.ext"              root-level files only
#   "prefix/**/*"        anything under prefix
#   "prefix/**/*.ext"    extension match anywhere under prefix
#   "prefix/**/suffix"   anything under prefix ending with suffix
#   "prefix/*suffix"     exactly one level under prefix
#   anything else        exact path
# ---------------------------------------------------------------------

ChangedFileLike = Union[ChangedFile, Mapping[str, str], str]


def matches(filename: str, pattern: str) -> bool:
    """Return True if a repository-relative path matches a watch pattern."""
    if pattern == filename or pattern == "*":
        return True

    if pattern.startswith("*."):
        extension = pattern[2:]
        return filename.endswith("." + extension) and "/" not in filename

    if "**/" in pattern:
        parts = pattern.split("**/")
        prefix, suffix = parts[0], parts[1]
        if not filename.startswith(prefix):
            return False
        if suffix == "*":
            return True
        if suffix.startswith("*."):
            return filename.endswith("." + suffix[2:])
        return filename.endswith(suffix)

    if "/*" in pattern and "**" not in pattern:
        parts = pattern.split("/*")
        prefix, suffix = parts[0] + "/", parts[1]
        if not filename.startswith(prefix):
            return False
        remainder = filename[len(prefix):]
        return "/" not in remainder and (suffix == "*" or remainder.endswith(suffix))

    return filename == pattern


def _filename_of(changed: ChangedFileLike) -> str:
    if isinstance(changed, str):
        return changed
    if isinstance(changed, ChangedFile):
        return changed.filename
    return changed["filename"]


def is_build_required(
    watch_files: Sequence[str],
    changed_files: Iterable[ChangedFileLike],
) -> bool:
    """
    Decide whether a changed file set should trigger a build.

    An empty watch list always builds.
    """
    if not watch_files:
        return True
    return any(
        matches(_filename_of(f), pattern)
        for f in changed_files
        for pattern in watch_files
    )
