"""
Status use case — read-only survey of the managed environment.

Classifies the OS, lists the symlink farm, and asks the installed
tools for their versions. Never installs, links, or edits anything.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from envboot.adapters.base import CommandRunner
from envboot.adapters.shell.command import SubprocessRunner
from envboot.core.models.config import BootstrapConfig
from envboot.core.models.layout import ManagedTree
from envboot.core.models.state import LastRun
from envboot.core.persistence.state_file import load_last_run
from envboot.core.services.capabilities import is_working_copy
from envboot.core.services.native_build import parse_version
from envboot.core.services.prober import classify_distribution, gather_probe

logger = logging.getLogger(__name__)


@dataclass
class LinkInfo:
    name: str
    target: str
    broken: bool


@dataclass
class StatusResult:
    distro_family: str = ""
    base_dir: str = ""
    tree_exists: bool = False
    links: list[LinkInfo] = field(default_factory=list)
    repositories: dict[str, bool] = field(default_factory=dict)
    native_version: str | None = None
    native_target: str = ""
    interpreter: str | None = None
    interpreter_target: str = ""
    last_run: LastRun = field(default_factory=LastRun)

    @property
    def native_current(self) -> bool:
        return self.native_version == self.native_target

    def to_dict(self) -> dict:
        return {
            "distro_family": self.distro_family,
            "base_dir": self.base_dir,
            "tree_exists": self.tree_exists,
            "links": [
                {"name": l.name, "target": l.target, "broken": l.broken}
                for l in self.links
            ],
            "repositories": dict(self.repositories),
            "native": {
                "installed": self.native_version,
                "target": self.native_target,
                "current": self.native_current,
            },
            "interpreter": {
                "active": self.interpreter,
                "target": self.interpreter_target,
            },
            "last_run": self.last_run.model_dump(mode="json") if self.last_run.recorded else None,
        }


def _list_links(bin_dir: Path) -> list[LinkInfo]:
    if not bin_dir.is_dir():
        return []
    links: list[LinkInfo] = []
    for entry in sorted(bin_dir.iterdir()):
        if entry.is_symlink():
            links.append(LinkInfo(
                name=entry.name,
                target=os.readlink(entry),
                broken=not entry.exists(),
            ))
    return links


def get_status(
    config: BootstrapConfig,
    runner: CommandRunner | None = None,
    root: Path = Path("/"),
) -> StatusResult:
    """Survey the machine without changing it."""
    tree = ManagedTree.from_base(config.base_dir)
    runner = runner or SubprocessRunner()
    runner.add_path(tree.bin)

    result = StatusResult(
        distro_family=classify_distribution(gather_probe(root)).value,
        base_dir=str(tree.base),
        tree_exists=tree.lib.is_dir() and tree.bin.is_dir(),
        native_target=config.native.version,
        interpreter_target=config.runtime.interpreter_version,
    )
    result.links = _list_links(tree.bin)

    for name in (
        config.runtime.manager.name,
        config.distribution.repository.name,
    ):
        result.repositories[name] = is_working_copy(tree.lib_path(name))

    native = config.native
    if runner.which(native.cli):
        out = runner.run_argv(native.cli, *native.version_args)
        result.native_version = parse_version(out.output) if out.ok else None

    manager = config.runtime.manager.name
    if runner.which(manager):
        out = runner.run_argv(
            manager, "version-name",
            env={"RBENV_ROOT": str(tree.lib_path(manager))},
        )
        result.interpreter = out.stdout.strip() if out.ok else None

    result.last_run = load_last_run(tree.state_file)
    return result
