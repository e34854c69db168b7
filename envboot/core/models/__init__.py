"""
Domain models for envboot.

All models are re-exported here for convenient access:

    from envboot.core.models import Command, CommandResult, MachineProfile, RunReport
"""

from envboot.core.models.action import Command, CommandResult
from envboot.core.models.config import (
    BootstrapConfig,
    DistributionConfig,
    LibraryConfig,
    NativeLibraryConfig,
    RepositoryConfig,
    RuntimeConfig,
    ShellConfig,
    ThirdPartyRepoConfig,
)
from envboot.core.models.layout import ManagedTree
from envboot.core.models.profile import DistroFamily, DistroProbe, MachineProfile
from envboot.core.models.report import RunEvent, RunReport
from envboot.core.models.state import LastRun

__all__ = [
    # config.py
    "BootstrapConfig",
    # action.py
    "Command",
    "CommandResult",
    "DistributionConfig",
    # profile.py
    "DistroFamily",
    "DistroProbe",
    # state.py
    "LastRun",
    "LibraryConfig",
    "MachineProfile",
    # layout.py
    "ManagedTree",
    "NativeLibraryConfig",
    "RepositoryConfig",
    # report.py
    "RunEvent",
    "RunReport",
    "RuntimeConfig",
    "ShellConfig",
    "ThirdPartyRepoConfig",
]
