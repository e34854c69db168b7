"""
Filesystem primitives — the only writes envboot makes outside commands.

Symlink publication for the bin farm, stale-tree removal, and
append-only edits to text files. Callers perform the idempotency
check; these helpers just do the write and log it.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


class PublishError(Exception):
    """A bin-farm entry could not be replaced."""


def publish_link(link: Path, target: Path) -> None:
    """Point ``link`` at ``target``, replacing any same-named entry.

    Existing symlinks and plain files are removed first (an ad-hoc
    copy is superseded by the link). A directory in the way is never
    deleted: that raises PublishError.
    """
    link = Path(link)
    if link.is_symlink() or link.is_file():
        link.unlink()
    elif link.exists():
        raise PublishError(f"{link} exists and is not a file or symlink")

    link.parent.mkdir(parents=True, exist_ok=True)
    link.symlink_to(target)
    logger.debug("Linked %s -> %s", link, target)


def link_points_into(link: Path, directory: Path) -> bool:
    """Is ``link`` a symlink whose target lives under ``directory``?"""
    link = Path(link)
    if not link.is_symlink():
        return False
    target = Path(os.readlink(link))
    if not target.is_absolute():
        target = link.parent / target
    resolved = Path(os.path.normpath(target))
    root = Path(os.path.normpath(Path(directory).expanduser().absolute()))
    return resolved == root or root in resolved.parents


def remove_path(path: Path) -> bool:
    """Remove a file, symlink, or directory tree. Returns True if something was removed."""
    path = Path(path)
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)
    else:
        return False
    logger.debug("Removed %s", path)
    return True


def read_text(path: Path) -> str:
    """File content, or an empty string when the file does not exist.

    Bytes that are not valid UTF-8 are replaced.
    """
    try:
        return Path(path).read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return ""


def append_text(path: Path, text: str) -> None:
    """Append ``text`` to ``path`` on its own line(s), creating the file if needed."""
    path = Path(path)
    existing = read_text(path)
    prefix = "" if not existing or existing.endswith("\n") else "\n"
    if not text.endswith("\n"):
        text += "\n"
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(prefix + text)
    logger.debug("Appended %d bytes to %s", len(text), path)


def executables_in(directory: Path) -> list[Path]:
    """Executable regular files directly inside ``directory``, sorted by name."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and os.access(p, os.X_OK)
    )
