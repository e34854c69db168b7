"""
Machine profile — what kind of machine are we provisioning.

The profile is built exactly once by the prober and never mutated.
Every later branch (package syntax, linker flags, profile chaining)
reads it instead of re-probing the OS.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DistroFamily(str, Enum):
    """Closed set of distribution families we know how to provision."""

    DEBIAN = "debian-like"
    REDHAT = "redhat-like"
    OPENSUSE = "opensuse-like"
    UNSUPPORTED = "unsupported"


class DistroProbe(BaseModel):
    """Raw, structured probe results fed to the classifier.

    Gathered from the filesystem (or built by hand in tests), so the
    classification itself never touches the OS.
    """

    model_config = ConfigDict(frozen=True)

    release_markers: frozenset[str] = Field(default_factory=frozenset)
    os_release: str = ""        # full text of /etc/os-release
    lsb_id: str = ""            # output of `lsb_release -si`

    def os_release_fields(self) -> dict[str, str]:
        """Parse KEY=value lines of os-release (quotes stripped)."""
        fields: dict[str, str] = {}
        for line in self.os_release.splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            fields[key.strip()] = value.strip().strip('"').strip("'")
        return fields


class MachineProfile(BaseModel):
    """Immutable description of the target machine."""

    model_config = ConfigDict(frozen=True)

    family: DistroFamily
    package_manager: str = ""
    query_command: tuple[str, ...] = ()
    install_command: tuple[str, ...] = ()
    prep_command: tuple[str, ...] = ()
    required_packages: tuple[str, ...] = ()
    admin_groups: tuple[str, ...] = ()
    description: str = ""       # free-text OS description (PRETTY_NAME etc.)

    @property
    def supported(self) -> bool:
        return self.family is not DistroFamily.UNSUPPORTED
