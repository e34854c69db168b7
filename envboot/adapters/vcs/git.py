"""
Git client — clone and update operations over a CommandRunner.

Uses the git CLI through the runner, so tests can script clones
without network access. Every operation names its working tree
explicitly; nothing depends on the process working directory.
"""

from __future__ import annotations

import logging
from pathlib import Path

from envboot.adapters.base import CommandRunner
from envboot.core.models.action import Command, CommandResult

logger = logging.getLogger(__name__)


class GitClient:
    """Source-control operations needed by the reconcilers."""

    def __init__(self, runner: CommandRunner, executable: str = "git"):
        self._runner = runner
        self._git = executable

    def clone(self, url: str, dest: Path) -> CommandResult:
        """Clone ``url`` into ``dest`` (which must not exist)."""
        argv = [self._git, "clone", "--quiet", url, str(dest)]
        logger.debug("Cloning %s into %s", url, dest)
        return self._runner.run(Command(argv=argv, cwd=Path(dest).parent, label=f"clone {url}"))

    def pull(self, dest: Path) -> CommandResult:
        """Fast-forward the working copy at ``dest``."""
        return self._runner.run(Command(
            argv=[self._git, "-C", str(dest), "pull", "--ff-only", "--quiet"],
            cwd=Path(dest),
            label=f"pull {dest.name}",
        ))
