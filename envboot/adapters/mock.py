"""
Fake runner — universal test double for command execution.

Scripted by argv prefix: the longest registered prefix matching a
command decides its result. Unscripted commands succeed with empty
output. Responses may be callables, which lets tests emulate side
effects (a clone creating a directory, a build producing binaries).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Union

from envboot.adapters.base import CommandRunner
from envboot.core.models.action import Command, CommandResult
from envboot.core.services.capabilities import command_exists

Response = Union[CommandResult, Callable[[Command], Union[CommandResult, None]]]


class FakeRunner(CommandRunner):
    """Scriptable runner for tests.

    ``commands`` is the set of command names ``which()`` reports as
    installed; anything executable on the runner's extra path (e.g.
    links published into a temporary bin directory) also resolves.
    """

    def __init__(
        self,
        commands: set[str] | None = None,
        extra_path: list[Path] | None = None,
        default: CommandResult | None = None,
    ):
        super().__init__(extra_path=extra_path)
        self.commands: set[str] = set(commands or ())
        self._default = default
        self._responses: dict[tuple[str, ...], Response] = {}
        self._call_log: list[Command] = []

    @property
    def name(self) -> str:
        return "fake"

    @property
    def call_log(self) -> list[Command]:
        """All commands this runner has received, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def which(self, name: str) -> bool:
        if name in self.commands:
            return True
        extra = [str(p) for p in self._extra_path]
        return bool(extra) and command_exists(name, path=os.pathsep.join(extra))

    def set_response(self, prefix: tuple[str, ...] | list[str], response: Response) -> None:
        """Script the result for every command starting with ``prefix``."""
        self._responses[tuple(prefix)] = response

    def set_failure(
        self,
        prefix: tuple[str, ...] | list[str],
        returncode: int = 1,
        stderr: str = "fake failure",
    ) -> None:
        self._responses[tuple(prefix)] = CommandResult.failure(
            argv=list(prefix), returncode=returncode, stderr=stderr,
        )

    def set_output(self, prefix: tuple[str, ...] | list[str], stdout: str) -> None:
        self._responses[tuple(prefix)] = CommandResult.success(argv=list(prefix), stdout=stdout)

    def _lookup(self, argv: list[str]) -> Response | None:
        best: tuple[str, ...] | None = None
        for prefix in self._responses:
            if tuple(argv[: len(prefix)]) == prefix:
                if best is None or len(prefix) > len(best):
                    best = prefix
        return self._responses[best] if best is not None else None

    def run(self, command: Command) -> CommandResult:
        self._call_log.append(command)
        response = self._lookup(command.argv)

        if response is None:
            if self._default is not None:
                return self._default.model_copy(update={"argv": list(command.argv)})
            return CommandResult.success(argv=command.argv)

        if callable(response):
            produced = response(command)
            return produced if produced is not None else CommandResult.success(argv=command.argv)

        return response.model_copy(update={"argv": list(command.argv)})

    # ── Assertions helpers ──────────────────────────────────────

    def calls(self, *prefix: str) -> list[Command]:
        """Commands whose argv starts with ``prefix``."""
        return [c for c in self._call_log if tuple(c.argv[: len(prefix)]) == prefix]

    def ran(self, *prefix: str) -> bool:
        return bool(self.calls(*prefix))

    def reset(self) -> None:
        """Clear the call log (scripted responses are kept)."""
        self._call_log.clear()
