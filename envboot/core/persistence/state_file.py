"""
Last-run record persistence — atomic JSON read/write of LastRun.

Writes go to a temp file in the same directory and are renamed into
place, so an interrupted run never leaves a half-written record.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from envboot.core.models.report import RunReport
from envboot.core.models.state import LastRun

logger = logging.getLogger(__name__)


def load_last_run(path: Path) -> LastRun:
    """Load the last-run record; a missing or corrupt file yields a blank one."""
    if not path.is_file():
        logger.debug("No state file at %s", path)
        return LastRun()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return LastRun.model_validate(data)
    except json.JSONDecodeError as e:
        logger.warning("Corrupt state file %s: %s — ignoring it", path, e)
        return LastRun()
    except Exception as e:
        logger.warning("Cannot load state from %s: %s — ignoring it", path, e)
        return LastRun()


def save_last_run(record: LastRun, path: Path) -> None:
    """Save the record atomically (temp file + rename)."""
    record.touch()
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(record.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".envboot_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with open(fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp.replace(path)
        logger.debug("State saved to %s", path)
    except Exception:
        tmp.unlink(missing_ok=True)
        logger.error("Failed to save state to %s", path)
        raise


def record_from_report(
    report: RunReport,
    *,
    version: str,
    distro_family: str = "",
    fatal: str | None = None,
) -> LastRun:
    """Summarise a finished (or aborted) run for persistence."""
    return LastRun(
        started_at=report.started_at,
        version=version,
        distro_family=distro_family,
        status="fatal" if fatal else report.status,
        fatal=fatal,
        errors=list(report.errors),
        changes=[e.message for e in report.changes],
        shell_restart=report.shell_restart,
        degraded=list(report.degraded),
    )
