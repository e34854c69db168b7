"""
Runtime version manager integration — rbenv, ruby-build, Ruby, gems.

Per tool state machine (see ``core.engine.reconcile``):

    absent  → fresh clone      (failure recorded, stays absent)
    foreign → remove + clone
    installed → pull           (failure recorded, stays installed)

An active rvm is fatal: the two managers rewrite the same shell
hooks and cannot coexist. Once the rbenv command resolves, the target
interpreter is built if needed and selected globally; runtime
libraries follow the same check-then-install pattern.
"""

from __future__ import annotations

import logging
from pathlib import Path

from envboot.adapters.base import CommandRunner
from envboot.adapters.shell.filesystem import PublishError, link_points_into, publish_link
from envboot.adapters.vcs.git import GitClient
from envboot.core.engine.reconcile import TargetState, git_target, reconcile_target
from envboot.core.errors import FatalError
from envboot.core.models.action import Command
from envboot.core.models.config import LibraryConfig, RuntimeConfig, ShellConfig
from envboot.core.models.layout import ManagedTree
from envboot.core.models.report import RunReport
from envboot.core.services.capabilities import path_exists
from envboot.core.services.shell_profile import ensure_line

logger = logging.getLogger(__name__)

COMPONENT = "runtime"

# Feature probe exit statuses
PROBE_OK = 0
PROBE_FEATURE_MISSING = 2


class RuntimeManager:
    """rbenv-based runtime provisioning."""

    def __init__(
        self,
        config: RuntimeConfig,
        tree: ManagedTree,
        runner: CommandRunner,
        git: GitClient,
        home: Path,
    ):
        self.config = config
        self.tree = tree
        self.runner = runner
        self.git = git
        self.home = Path(home)

    # ── Paths ───────────────────────────────────────────────────

    @property
    def root(self) -> Path:
        """RBENV_ROOT inside the managed library directory."""
        return self.tree.lib_path(self.config.manager.name)

    @property
    def plugin_dir(self) -> Path:
        return self.root / "plugins" / self.config.plugin.name

    @property
    def manager_executable(self) -> Path:
        return self.root / "bin" / self.config.manager.name

    def _command(self, *argv: str, capture: bool = True, label: str = "") -> Command:
        return Command(
            argv=[self.config.manager.name, *argv],
            env={"RBENV_ROOT": str(self.root)},
            cwd=self.home,
            capture=capture,
            label=label,
        )

    # ── Conflict rule ───────────────────────────────────────────

    def check_conflicts(self) -> None:
        """Raise if a competing version manager is active."""
        other = self.config.conflicting_manager
        if self.runner.which(other) or path_exists(self.home / f".{other}"):
            raise FatalError(
                f"{other} is installed; remove it before using {self.config.manager.name}",
                component=COMPONENT,
            )

    # ── Manager and plugin ──────────────────────────────────────

    def reconcile_manager(self, report: RunReport, shell: ShellConfig) -> None:
        """Install/update rbenv and ruby-build and make ``rbenv`` resolvable.

        Raises:
            FatalError: the manager command is unavailable afterwards.
        """
        self.check_conflicts()

        manager = git_target(self.config.manager.name, self.config.manager.url, self.root, self.git)
        state = reconcile_target(manager, report, COMPONENT)

        if state is TargetState.INSTALLED:
            self.plugin_dir.parent.mkdir(parents=True, exist_ok=True)
            plugin = git_target(self.config.plugin.name, self.config.plugin.url, self.plugin_dir, self.git)
            reconcile_target(plugin, report, COMPONENT)
            self._publish_manager(report)

        ensure_line(
            self.home / shell.secondary,
            rf"{self.config.manager.name}\s+init",
            f'export RBENV_ROOT="{self.root}"\neval "$({self.config.manager.name} init - bash)"',
            report,
            f"{self.config.manager.name} shell hook",
        )

        if not self.runner.which(self.config.manager.name):
            raise FatalError(
                f"the {self.config.manager.name} command is not available",
                component=COMPONENT,
            )

    def _publish_manager(self, report: RunReport) -> None:
        link = self.tree.link_path(self.config.manager.name)
        if link_points_into(link, self.root):
            return
        try:
            publish_link(link, self.manager_executable)
            report.changed(COMPONENT, f"linked {link.name} into {self.tree.bin}")
        except (PublishError, OSError) as e:
            report.error(COMPONENT, f"could not link {link.name}: {e}")

    # ── Interpreter ─────────────────────────────────────────────

    def active_version(self) -> str:
        result = self.runner.run(self._command("version-name"))
        return result.stdout.strip() if result.ok else ""

    def version_installed(self, version: str) -> bool:
        return self.runner.run(self._command("prefix", version)).ok

    def reconcile_interpreter(self, report: RunReport) -> bool:
        """Build and select the target interpreter. Returns True when usable."""
        target = self.config.interpreter_version
        active = self.active_version()
        report.check(COMPONENT, f"active interpreter: {active or 'none'}, target {target}")

        if active == target:
            report.ok(COMPONENT, f"ruby {target} is the global default")
            return True

        if not self.version_installed(target):
            report.check(COMPONENT, f"building ruby {target} from source (this takes several minutes)")
            built = self.runner.run(self._command("install", target, capture=False, label=f"build ruby {target}"))
            if built.failed:
                report.error(COMPONENT, f"ruby {target} build failed: {built.describe_failure()}")
                return False
            report.changed(COMPONENT, f"built ruby {target}")

        selected = self.runner.run(self._command("global", target))
        if selected.failed:
            report.error(COMPONENT, f"could not select ruby {target}: {selected.describe_failure()}")
            return False
        self.rehash()
        report.changed(COMPONENT, f"ruby {target} selected as global default")
        return True

    def rehash(self) -> None:
        result = self.runner.run(self._command("rehash"))
        if result.failed:
            logger.debug("rbenv rehash failed: %s", result.describe_failure())

    # ── Libraries ───────────────────────────────────────────────

    def library_installed(self, library: LibraryConfig) -> bool:
        return self.runner.run(self._command("exec", "gem", "list", "-i", library.name)).ok

    def probe_feature(self, library: LibraryConfig, report: RunReport) -> bool:
        """Run the library's feature probe. Absence is recorded, never fatal."""
        result = self.runner.run(self._command("exec", "ruby", "-e", library.probe))
        if result.returncode == PROBE_OK:
            report.ok(COMPONENT, f"{library.name} feature probe passed")
            return True
        if result.returncode == PROBE_FEATURE_MISSING:
            report.error(COMPONENT, f"{library.name} is installed but lacks the required feature")
        else:
            report.error(COMPONENT, f"{library.name} failed to load: {result.describe_failure()}")
        report.mark_degraded(library.name)
        return False

    def ensure_library(self, library: LibraryConfig, report: RunReport) -> bool:
        if self.library_installed(library):
            report.ok(COMPONENT, f"gem {library.name} is installed")
        else:
            installed = self.runner.run(self._command(
                "exec", "gem", "install", library.name, *library.install_args,
                capture=False, label=f"gem install {library.name}",
            ))
            if installed.failed:
                report.error(COMPONENT, f"gem {library.name} install failed: {installed.describe_failure()}")
                report.mark_degraded(library.name)
                return False
            self.rehash()
            report.changed(COMPONENT, f"installed gem {library.name}")

        if library.probe:
            return self.probe_feature(library, report)
        return True

    def ensure_libraries(self, report: RunReport) -> bool:
        """Install every configured library. Returns False if any is degraded."""
        ok = True
        for library in self.config.libraries:
            ok = self.ensure_library(library, report) and ok
        return ok


def reconcile_runtime(manager: RuntimeManager, report: RunReport, shell: ShellConfig) -> bool:
    """Manager, plugin, and interpreter. Libraries come later (distribution step)."""
    report.check(COMPONENT, f"checking {manager.config.manager.name}")
    manager.reconcile_manager(report, shell)
    return manager.reconcile_interpreter(report)
