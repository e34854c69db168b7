"""
Bootstrap use case — the full reconciliation run.

Fixed order, each step idempotent and independently resumable:

    probe → managed tree → packages → shell profile → runtime
          → native library → companion repository (+ runtime libraries)

A FatalError from any step stops the run; everything else is recorded
on the RunReport and the next step proceeds.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping

from envboot import __version__
from envboot.adapters.base import CommandRunner
from envboot.adapters.shell.command import SubprocessRunner
from envboot.adapters.vcs.git import GitClient
from envboot.core.errors import FatalError
from envboot.core.models.config import BootstrapConfig
from envboot.core.models.layout import ManagedTree
from envboot.core.models.profile import MachineProfile
from envboot.core.models.report import RunEvent, RunReport
from envboot.core.persistence.state_file import record_from_report, save_last_run
from envboot.core.services.distribution import DistributionReconciler, reconcile_distribution
from envboot.core.services.native_build import NativeLibraryBuilder
from envboot.core.services.packages import reconcile_packages
from envboot.core.services.prober import probe_machine
from envboot.core.services.runtime import RuntimeManager, reconcile_runtime
from envboot.core.services.shell_profile import reconcile_shell_profile

logger = logging.getLogger(__name__)


@dataclass
class BootstrapResult:
    """Outcome of one bootstrap run."""

    report: RunReport
    profile: MachineProfile | None = None
    tree: ManagedTree | None = None
    fatal: FatalError | None = None

    @property
    def exit_code(self) -> int:
        return 1 if self.fatal else 0

    def to_dict(self) -> dict:
        result = self.report.to_dict()
        result["exit_code"] = self.exit_code
        result["fatal"] = str(self.fatal) if self.fatal else None
        result["distro_family"] = self.profile.family.value if self.profile else None
        result["base_dir"] = str(self.tree.base) if self.tree else None
        return result


def _refuse(_question: str) -> bool:
    return False


def run_bootstrap(
    config: BootstrapConfig,
    *,
    runner: CommandRunner | None = None,
    home: Path | None = None,
    confirm: Callable[[str], bool] = _refuse,
    listener: Callable[[RunEvent], None] | None = None,
    environ: Mapping[str, str] | None = None,
    self_path: Path | None = None,
    profile: MachineProfile | None = None,
) -> BootstrapResult:
    """Reconcile the machine against ``config``.

    Args:
        config: Declared target state.
        runner: Command runner (default: real subprocesses).
        home: Home directory holding the shell startup files.
        confirm: Asked before continuing as root.
        listener: Receives every narrated event as it happens.
        environ: Environment used for the live PATH check.
        self_path: Path of the running bootstrapper (self-replacement rule).
        profile: Pre-built machine profile; skips probing when given.
    """
    home = Path(home) if home else Path.home()
    runner = runner or SubprocessRunner()
    environ = os.environ if environ is None else environ
    report = RunReport(listener=listener)
    result = BootstrapResult(report=report, profile=profile)

    try:
        if result.profile is None:
            result.profile = probe_machine(config, runner, report, confirm=confirm)
        profile = result.profile

        tree = ManagedTree.from_base(config.base_dir)
        result.tree = tree
        for created in tree.ensure():
            report.changed("tree", f"created {created}")
        runner.add_path(tree.bin)

        git = GitClient(runner)
        runtime = RuntimeManager(config.runtime, tree, runner, git, home)

        reconcile_packages(profile, runner, report, config.third_party_repo)
        reconcile_shell_profile(home, tree.bin, profile.family, config.shell, report, environ)
        reconcile_runtime(runtime, report, config.shell)
        NativeLibraryBuilder(config.native, tree, runner, profile).reconcile(report)
        distribution = DistributionReconciler(config.distribution, tree, runner, git, self_path)
        reconcile_distribution(distribution, runtime, report)

    except FatalError as e:
        logger.error("Fatal: %s", e)
        result.fatal = e

    _persist(result)
    return result


def _persist(result: BootstrapResult) -> None:
    if result.tree is None or not result.tree.lib.is_dir():
        return
    record = record_from_report(
        result.report,
        version=__version__,
        distro_family=result.profile.family.value if result.profile else "",
        fatal=str(result.fatal) if result.fatal else None,
    )
    try:
        save_last_run(record, result.tree.state_file)
    except OSError as e:
        logger.warning("Could not record the run summary: %s", e)
