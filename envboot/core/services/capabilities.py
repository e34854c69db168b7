"""
Capability checks — read-only predicates.

Every reconciler decides whether an action is needed by composing
these. No side effects, no subprocesses.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

VCS_METADATA_DIR = ".git"


def command_exists(name: str, path: str | None = None) -> bool:
    """Is ``name`` resolvable as an executable command?

    Args:
        name: Command name (or explicit path).
        path: Optional PATH string to search instead of the process PATH.
    """
    if not name:
        return False
    return shutil.which(name, path=path) is not None


def path_exists(path: str | os.PathLike[str]) -> bool:
    """Does ``path`` exist? Dangling symlinks count as existing entries."""
    return os.path.lexists(path)


def string_contains(haystack: str | None, needle: str) -> bool:
    """Substring test that tolerates a missing haystack."""
    if not haystack:
        return False
    return needle in haystack


def is_working_copy(path: str | os.PathLike[str]) -> bool:
    """Is ``path`` a source-control working copy, not just a same-named directory?"""
    root = Path(path)
    metadata = root / VCS_METADATA_DIR
    return root.is_dir() and metadata.exists() and metadata.is_dir()
