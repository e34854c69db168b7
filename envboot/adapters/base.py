"""
Runner base — the protocol contract between reconcilers and tools.

Reconcilers never call ``subprocess`` directly: they build typed
``Command`` objects and hand them to a CommandRunner. Swapping the
runner (see ``adapters.mock.FakeRunner``) makes every step testable
without a real machine.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from pathlib import Path

from envboot.core.models.action import Command, CommandResult
from envboot.core.services.capabilities import command_exists


class CommandRunner(ABC):
    """Abstract base class for command runners.

    Runners execute commands and return results.
    They NEVER raise for a failing command — failures are captured
    in the CommandResult.
    """

    def __init__(self, extra_path: list[Path] | None = None):
        self._extra_path = [Path(p) for p in (extra_path or [])]

    @property
    @abstractmethod
    def name(self) -> str:
        """Runner identifier (e.g., 'subprocess', 'fake')."""

    @abstractmethod
    def run(self, command: Command) -> CommandResult:
        """Execute a command and return its result.

        MUST never raise for tool failures. A missing executable is
        reported as a result with return code 127.
        """

    @property
    def search_path(self) -> str:
        """PATH used for lookups: managed directories first, then the process PATH."""
        parts = [str(p) for p in self._extra_path]
        inherited = os.environ.get("PATH", "")
        if inherited:
            parts.append(inherited)
        return os.pathsep.join(parts)

    def add_path(self, directory: Path) -> None:
        """Prepend a directory to the lookup path (e.g. the managed bin)."""
        directory = Path(directory)
        if directory not in self._extra_path:
            self._extra_path.insert(0, directory)

    def which(self, name: str) -> bool:
        """Is ``name`` resolvable with this runner's search path?"""
        return command_exists(name, path=self.search_path)

    def run_argv(self, *argv: str, **kwargs) -> CommandResult:
        """Shorthand for ``run(Command(argv=[...], **kwargs))``."""
        return self.run(Command(argv=list(argv), **kwargs))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
