"""
Shell-profile reconciler — marker-guarded edits to startup files.

Each edit is preceded by a pattern search; a write only happens when
the pattern is truly absent. Any startup-file write requests a shell
restart on the report. The readline configuration gets one explicit
setting and is otherwise left alone.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from envboot.adapters.shell.filesystem import append_text, read_text
from envboot.core.models.config import ShellConfig
from envboot.core.models.profile import DistroFamily
from envboot.core.models.report import RunReport
from envboot.core.services.capabilities import path_exists

logger = logging.getLogger(__name__)

COMPONENT = "shell"

MARKER = "# added by envboot"

# Families whose login shell already reaches ~/.bashrc by convention
# (Debian's skeleton ~/.profile sources it).
_CHAINED_BY_DEFAULT = {DistroFamily.DEBIAN}


@dataclass(frozen=True)
class ShellFiles:
    primary: Path
    secondary: Path
    inputrc: Path

    @classmethod
    def for_home(cls, home: Path, config: ShellConfig) -> ShellFiles:
        home = Path(home)
        return cls(
            primary=home / config.primary,
            secondary=home / config.secondary,
            inputrc=home / config.inputrc,
        )


def file_matches(path: Path, pattern: str) -> bool:
    """grep -E equivalent: does any line of ``path`` match ``pattern``?"""
    regex = re.compile(pattern)
    return any(regex.search(line) for line in read_text(path).splitlines())


def ensure_line(
    path: Path,
    pattern: str,
    line: str,
    report: RunReport,
    description: str,
) -> bool:
    """Append ``line`` to a startup file unless ``pattern`` already matches.

    Returns True when the file was written.
    """
    if file_matches(path, pattern):
        report.ok(COMPONENT, f"{description} already in {path.name}")
        return False
    append_text(path, f"{MARKER}\n{line}")
    report.changed(COMPONENT, f"added {description} to {path}")
    report.request_restart()
    return True


def _home_relative(path: Path, home: Path) -> str | None:
    try:
        return "$HOME/" + str(Path(path).relative_to(home))
    except ValueError:
        return None


def ensure_profile_chain(files: ShellFiles, family: DistroFamily, report: RunReport) -> bool:
    """Make the primary startup file source the secondary one."""
    if family in _CHAINED_BY_DEFAULT:
        report.ok(COMPONENT, f"{files.secondary.name} is chained by the OS profile")
        return False
    name = re.escape(files.secondary.name)
    line = f'if [ -f ~/{files.secondary.name} ]; then . ~/{files.secondary.name}; fi'
    return ensure_line(
        files.primary,
        rf"(^|\s)(\.|source)\s+\S*{name}",
        line,
        report,
        f"{files.secondary.name} sourcing",
    )


def path_on_live_path(directory: Path, environ: Mapping[str, str]) -> bool:
    """Is ``directory`` an entry of the live PATH value?"""
    wanted = os.path.normpath(str(directory))
    entries = environ.get("PATH", "").split(os.pathsep)
    return any(e and os.path.normpath(os.path.expanduser(e)) == wanted for e in entries)


def ensure_bin_on_path(
    bin_dir: Path,
    files: ShellFiles,
    home: Path,
    report: RunReport,
    environ: Mapping[str, str] | None = None,
) -> bool:
    """Ensure the managed bin directory is on PATH for new shells.

    Cheapest source first: the live PATH, then both startup files.
    """
    environ = os.environ if environ is None else environ
    if path_on_live_path(bin_dir, environ):
        report.ok(COMPONENT, f"{bin_dir} is on PATH")
        return False

    spellings = [re.escape(str(bin_dir))]
    relative = _home_relative(bin_dir, Path(home))
    if relative:
        spellings.append(re.escape(relative))
        spellings.append(re.escape(relative.replace("$HOME", "~", 1)))
    pattern = "|".join(spellings)

    for startup in (files.primary, files.secondary):
        if file_matches(startup, pattern):
            report.ok(COMPONENT, f"{bin_dir} is added to PATH by {startup.name}")
            return False

    spelled = relative or str(bin_dir)
    return ensure_line(
        files.secondary,
        pattern,
        f'export PATH="{spelled}:$PATH"',
        report,
        f"{bin_dir} on PATH",
    )


def ensure_readline_setting(files: ShellFiles, config: ShellConfig, report: RunReport) -> bool:
    """Ensure the readline file sets the completion behaviour explicitly.

    An existing setting of either value is respected.
    """
    setting = re.escape(config.readline_setting)
    line = f"set {config.readline_setting} {config.readline_value}"

    if not path_exists(files.inputrc):
        append_text(files.inputrc, f"$include /etc/inputrc\n{line}")
        report.changed(COMPONENT, f"created {files.inputrc} with '{line}'")
        return True

    if file_matches(files.inputrc, rf"^\s*set\s+{setting}\s+(on|off)\b"):
        report.ok(COMPONENT, f"{config.readline_setting} already set in {files.inputrc.name}")
        return False

    append_text(files.inputrc, line)
    report.changed(COMPONENT, f"added '{line}' to {files.inputrc}")
    return True


def reconcile_shell_profile(
    home: Path,
    bin_dir: Path,
    family: DistroFamily,
    config: ShellConfig,
    report: RunReport,
    environ: Mapping[str, str] | None = None,
) -> ShellFiles:
    """Apply every startup-file and readline check."""
    files = ShellFiles.for_home(home, config)
    report.check(COMPONENT, "checking shell startup files")
    ensure_profile_chain(files, family, report)
    ensure_bin_on_path(bin_dir, files, home, report, environ)
    ensure_readline_setting(files, config, report)
    return files
