"""
Subprocess runner — execute typed commands on the real machine.

This is the SINGLE PLACE where ``subprocess.run`` is called. Commands
are argument vectors (never ``shell=True``), so nothing is ever
re-parsed by a shell.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from pathlib import Path

from envboot.adapters.base import CommandRunner
from envboot.core.models.action import EXIT_NOT_FOUND, Command, CommandResult

logger = logging.getLogger(__name__)


class SubprocessRunner(CommandRunner):
    """Run commands with ``subprocess.run`` and capture the outcome.

    Privileged commands are prefixed with ``sudo`` unless the process
    is already root; sudo prompts on the terminal itself. Managed
    directories passed as ``extra_path`` are prepended to the child
    PATH so freshly linked tools resolve immediately.
    """

    def __init__(self, extra_path: list[Path] | None = None, sudo: str = "sudo"):
        super().__init__(extra_path=extra_path)
        self._sudo = sudo

    @property
    def name(self) -> str:
        return "subprocess"

    def _argv(self, command: Command) -> list[str]:
        if command.sudo and os.geteuid() != 0:
            return [self._sudo, *command.argv]
        return list(command.argv)

    def _env(self, command: Command) -> dict[str, str]:
        env = os.environ.copy()
        env["PATH"] = self.search_path
        env.update(command.env)
        return env

    def run(self, command: Command) -> CommandResult:
        argv = self._argv(command)
        logger.debug("Executing: %s (cwd=%s)", " ".join(argv), command.cwd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                cwd=command.cwd,
                env=self._env(command),
                capture_output=command.capture,
                text=True,
                errors="replace",
                timeout=command.timeout,
            )
        except FileNotFoundError as e:
            return CommandResult.failure(
                argv=argv,
                returncode=EXIT_NOT_FOUND,
                stderr=f"command not found: {e.filename or argv[0]}",
            )
        except subprocess.TimeoutExpired:
            return CommandResult.failure(
                argv=argv,
                stderr=f"timed out after {command.timeout}s",
                metadata={"timeout": command.timeout},
            )
        except OSError as e:
            return CommandResult.failure(argv=argv, stderr=f"cannot execute: {e}")
        except Exception as e:
            logger.warning("Command %s failed unexpectedly: %s", argv[0], e)
            return CommandResult.failure(argv=argv, stderr=str(e))

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if result.returncode != 0:
            logger.debug("Command %s exited with %d", argv[0], result.returncode)

        return CommandResult(
            argv=argv,
            returncode=result.returncode,
            stdout=(result.stdout or "").strip() if command.capture else "",
            stderr=(result.stderr or "").strip() if command.capture else "",
            duration_ms=elapsed_ms,
        )
