"""
Distribution repository reconciler — companion tools in the bin farm.

Clone-or-update the companion repository, then link every tool its
manifest lists. A tool that already resolves and is already linked
is left alone, with one exception: envboot itself. An ad-hoc copy of
the bootstrapper (downloaded and run by hand) is superseded by the
repository-tracked copy as soon as the repository is available.
"""

from __future__ import annotations

import logging
from pathlib import Path

from envboot.adapters.base import CommandRunner
from envboot.adapters.shell.filesystem import PublishError, link_points_into, publish_link, read_text
from envboot.adapters.vcs.git import GitClient
from envboot.core.engine.reconcile import TargetState, git_target, reconcile_target
from envboot.core.models.config import DistributionConfig
from envboot.core.models.layout import ManagedTree
from envboot.core.models.report import RunReport
from envboot.core.services.capabilities import path_exists
from envboot.core.services.runtime import RuntimeManager

logger = logging.getLogger(__name__)

COMPONENT = "distribution"


def read_manifest(path: Path) -> list[str]:
    """Tool names from a manifest file: one per line, ``#`` comments ignored."""
    names: list[str] = []
    for line in read_text(path).splitlines():
        name = line.split("#", 1)[0].strip()
        if name and name not in names:
            names.append(name)
    return names


class DistributionReconciler:
    def __init__(
        self,
        config: DistributionConfig,
        tree: ManagedTree,
        runner: CommandRunner,
        git: GitClient,
        self_path: Path | None = None,
    ):
        self.config = config
        self.tree = tree
        self.runner = runner
        self.git = git
        self.self_path = Path(self_path) if self_path else None

    @property
    def checkout(self) -> Path:
        return self.tree.lib_path(self.config.repository.name)

    @property
    def tools_dir(self) -> Path:
        return self.checkout / self.config.tools_dir

    def tracked_by_repository(self, path: Path | None) -> bool:
        return path is not None and link_points_into(path, self.checkout)

    def needs_self_replacement(self, tool: str) -> bool:
        """Is the bootstrapper running from a copy the repository does not track?"""
        if tool != self.config.self_name:
            return False
        if self.tracked_by_repository(self.self_path):
            return False
        return not self.tracked_by_repository(self.tree.link_path(tool))

    def reconcile_tool(self, tool: str, report: RunReport) -> bool:
        """Link one manifest tool. Returns True when the farm was changed."""
        source = self.tools_dir / tool
        link = self.tree.link_path(tool)

        if self.runner.which(tool) and link.is_symlink() and not self.needs_self_replacement(tool):
            report.ok(COMPONENT, f"{tool} is linked")
            return False

        if not path_exists(source):
            report.error(COMPONENT, f"{tool} is listed in {self.config.manifest} but {source} does not exist")
            return False

        try:
            publish_link(link, source)
        except (PublishError, OSError) as e:
            report.error(COMPONENT, f"could not link {tool}: {e}")
            return False

        if tool == self.config.self_name:
            report.changed(COMPONENT, f"{tool} now runs from the repository copy")
        else:
            report.changed(COMPONENT, f"linked {tool}")
        return True

    def reconcile(self, report: RunReport) -> list[str]:
        """Clone/update the repository and link its tools. Returns the changed tools."""
        repo = self.config.repository
        target = git_target(repo.name, repo.url, self.checkout, self.git)
        if reconcile_target(target, report, COMPONENT) is not TargetState.INSTALLED:
            return []

        manifest = self.checkout / self.config.manifest
        if not manifest.is_file():
            report.error(COMPONENT, f"{repo.name} has no manifest {self.config.manifest}")
            return []

        changed: list[str] = []
        for tool in read_manifest(manifest):
            if self.reconcile_tool(tool, report):
                changed.append(tool)
        return changed


def reconcile_distribution(
    reconciler: DistributionReconciler,
    runtime: RuntimeManager,
    report: RunReport,
) -> list[str]:
    """Companion tools, then the runtime libraries they depend on."""
    report.check(COMPONENT, f"checking {reconciler.config.repository.name}")
    changed = reconciler.reconcile(report)
    runtime.ensure_libraries(report)
    return changed
