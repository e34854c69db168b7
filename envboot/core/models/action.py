"""
Command and CommandResult models — the execution contract.

Commands are typed invocations (argument vectors, never interpolated
shell strings). Results capture the full outcome. Runners return a
CommandResult for every Command they receive: a failing tool is data,
not an exception.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

# Conventional "command not found" status, as reported by POSIX shells
EXIT_NOT_FOUND = 127


class Command(BaseModel):
    """A requested external invocation.

    ``timeout`` is None by default: provisioning steps (compilation,
    interpreter builds) block until the tool itself finishes or fails.
    """

    argv: list[str]
    cwd: Path | None = None
    env: dict[str, str] = Field(default_factory=dict)
    sudo: bool = False               # run with elevated privileges
    capture: bool = True             # False = stream to the terminal
    timeout: int | None = None
    label: str = ""                  # human-readable step name

    @property
    def program(self) -> str:
        return self.argv[0] if self.argv else ""

    def display(self) -> str:
        """Printable form of the command (for logs only)."""
        prefix = "sudo " if self.sudo else ""
        return prefix + " ".join(self.argv)


class CommandResult(BaseModel):
    """Outcome of a Command."""

    argv: list[str] = Field(default_factory=list)
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the command exited with status 0."""
        return self.returncode == 0

    @property
    def failed(self) -> bool:
        return not self.ok

    @property
    def output(self) -> str:
        """Combined stdout and stderr (some tools print versions to stderr)."""
        return (self.stdout or "") + (self.stderr or "")

    def describe_failure(self) -> str:
        """Short, single-line failure description for the error log."""
        detail = (self.stderr or self.stdout or "").strip().splitlines()
        tail = detail[-1] if detail else ""
        cmd = " ".join(self.argv)
        if tail:
            return f"`{cmd}` exited with {self.returncode}: {tail}"
        return f"`{cmd}` exited with {self.returncode}"

    @classmethod
    def success(cls, argv: list[str] | None = None, stdout: str = "", **kwargs: Any) -> CommandResult:
        """Create a successful result."""
        return cls(argv=list(argv or []), returncode=0, stdout=stdout, **kwargs)

    @classmethod
    def failure(
        cls,
        argv: list[str] | None = None,
        returncode: int = 1,
        stderr: str = "",
        **kwargs: Any,
    ) -> CommandResult:
        """Create a failed result."""
        return cls(argv=list(argv or []), returncode=returncode, stderr=stderr, **kwargs)
