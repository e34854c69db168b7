"""Adapters — bindings to external tools.

Public re-exports for convenient access.
"""

from envboot.adapters.base import CommandRunner
from envboot.adapters.mock import FakeRunner
from envboot.adapters.shell.command import SubprocessRunner
from envboot.adapters.vcs.git import GitClient

__all__ = [
    "CommandRunner",
    "FakeRunner",
    "GitClient",
    "SubprocessRunner",
]
