"""
Managed directory tree — everything envboot installs lives here.

    <base>/
      .lib/   version manager, native library trees, companion repo, state
      .bin/   flat symlink farm (expected on PATH)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

LIB_DIRNAME = ".lib"
BIN_DIRNAME = ".bin"
STATE_FILENAME = ".envboot-state.json"


@dataclass(frozen=True)
class ManagedTree:
    """The directories envboot owns. Created on demand, never removed."""

    base: Path

    @property
    def lib(self) -> Path:
        return self.base / LIB_DIRNAME

    @property
    def bin(self) -> Path:
        return self.base / BIN_DIRNAME

    @property
    def state_file(self) -> Path:
        return self.lib / STATE_FILENAME

    def lib_path(self, name: str) -> Path:
        """Path of a named artifact inside the library directory."""
        return self.lib / name

    def link_path(self, name: str) -> Path:
        """Path of a named entry in the symlink farm."""
        return self.bin / name

    def ensure(self) -> list[Path]:
        """Create missing directories. Returns the ones that were created."""
        created: list[Path] = []
        for directory in (self.base, self.lib, self.bin):
            if not directory.is_dir():
                directory.mkdir(parents=True, exist_ok=True)
                created.append(directory)
                logger.debug("Created managed directory %s", directory)
        return created

    @classmethod
    def from_base(cls, base: str | Path) -> ManagedTree:
        return cls(base=Path(base).expanduser())
