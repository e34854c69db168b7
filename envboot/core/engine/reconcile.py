"""
Reconciliation engine — the install / update / replace state machine.

A ReconciliationTarget describes one managed artifact by predicates
and actions. ``reconcile_target`` inspects it and applies exactly one
of:

    absent                 → acquire (stale partial directory removed first)
    foreign (not a working copy) → remove, then acquire
    installed              → update

Failures are recorded on the RunReport; the state returned tells the
caller what is on disk now. Interrupting at any point leaves a state
the next run classifies correctly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

from envboot.adapters.shell.filesystem import remove_path
from envboot.adapters.vcs.git import GitClient
from envboot.core.models.action import CommandResult
from envboot.core.models.report import RunReport
from envboot.core.services.capabilities import is_working_copy, path_exists

logger = logging.getLogger(__name__)


class TargetState(str, Enum):
    ABSENT = "absent"
    FOREIGN = "foreign"        # same-named path that is not a genuine install
    INSTALLED = "installed"


@dataclass
class ReconciliationTarget:
    """Generic record of a managed artifact."""

    name: str
    path: Path
    exists: Callable[[], bool]
    is_genuine: Callable[[], bool]
    acquire: Callable[[], CommandResult]
    update: Callable[[], CommandResult]

    def observe(self) -> TargetState:
        """Classify the artifact's current state."""
        if not self.exists():
            return TargetState.ABSENT
        if not self.is_genuine():
            return TargetState.FOREIGN
        return TargetState.INSTALLED


def git_target(name: str, url: str, dest: Path, git: GitClient) -> ReconciliationTarget:
    """A git repository cloned to ``dest`` and kept up to date with pull."""
    dest = Path(dest)
    return ReconciliationTarget(
        name=name,
        path=dest,
        exists=lambda: path_exists(dest),
        is_genuine=lambda: is_working_copy(dest),
        acquire=lambda: git.clone(url, dest),
        update=lambda: git.pull(dest),
    )


def reconcile_target(
    target: ReconciliationTarget,
    report: RunReport,
    component: str = "reconcile",
) -> TargetState:
    """Drive ``target`` towards the installed state.

    Returns:
        The state after reconciliation: INSTALLED on success (or after a
        failed update of an existing install), ABSENT if acquisition failed.
    """
    state = target.observe()
    report.check(component, f"{target.name}: {state.value}")

    if state is TargetState.INSTALLED:
        result = target.update()
        if result.ok:
            report.ok(component, f"{target.name} is installed and up to date")
        else:
            report.error(component, f"update of {target.name} failed: {result.describe_failure()}")
        return TargetState.INSTALLED

    if state is TargetState.FOREIGN:
        report.warn(
            component,
            f"{target.path} exists but is not a working copy; replacing it",
        )

    # Absent or foreign: clear whatever is there (stale partial clone,
    # foreign directory) and acquire fresh.
    if remove_path(target.path):
        report.changed(component, f"removed stale {target.path}")

    result = target.acquire()
    if result.failed:
        # A failed clone may leave a partial directory behind; the next
        # run removes it before trying again.
        report.error(component, f"install of {target.name} failed: {result.describe_failure()}")
        return TargetState.ABSENT

    report.changed(component, f"installed {target.name} into {target.path}")
    if target.observe() is not TargetState.INSTALLED:
        report.error(component, f"{target.name} was acquired but {target.path} is not usable")
        return TargetState.ABSENT
    return TargetState.INSTALLED
