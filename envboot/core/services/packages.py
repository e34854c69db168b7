"""
Package reconciler — install the missing subset of the base packages.

    query each package → partition present/missing (input order kept)
    missing empty      → done, nothing privileged runs
    opensuse-like      → register the third-party repository first
    prep (index refresh) failure → recorded, continue
    install (one call, whole missing set) failure → fatal
    sudo -k            → always, once anything privileged ran
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from envboot.adapters.base import CommandRunner
from envboot.core.errors import FatalError
from envboot.core.models.action import Command
from envboot.core.models.config import ThirdPartyRepoConfig
from envboot.core.models.profile import DistroFamily, MachineProfile
from envboot.core.models.report import RunReport
from envboot.core.services.capabilities import string_contains

logger = logging.getLogger(__name__)

COMPONENT = "packages"

_DPKG_INSTALLED = "install ok installed"


@dataclass
class PackagePartition:
    present: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


def is_installed(package: str, profile: MachineProfile, runner: CommandRunner) -> bool:
    """Query the package database for one package."""
    result = runner.run(Command(argv=[*profile.query_command, package]))
    if profile.family is DistroFamily.DEBIAN:
        return result.ok and string_contains(result.stdout, _DPKG_INSTALLED)
    return result.ok


def partition_packages(profile: MachineProfile, runner: CommandRunner) -> PackagePartition:
    """Split required packages into present and missing, preserving order."""
    partition = PackagePartition()
    for package in profile.required_packages:
        if is_installed(package, profile, runner):
            partition.present.append(package)
        else:
            partition.missing.append(package)
    return partition


def match_supported_version(description: str, versions: list[str]) -> str | None:
    """Find which supported version the free-text OS description names.

    A version only matches as a whole token: 15.5 does not match 15.50.
    """
    for version in versions:
        if re.search(rf"(?<![\d.]){re.escape(version)}(?![\d.])", description or ""):
            return version
    return None


def register_third_party_repo(
    profile: MachineProfile,
    repo: ThirdPartyRepoConfig,
    runner: CommandRunner,
    report: RunReport,
) -> bool:
    """Add the family's extra repository unless it is already registered.

    Returns True when a privileged command was issued.

    Raises:
        FatalError: the OS version is not one the repository supports.
    """
    listed = runner.run(Command(argv=["zypper", "--non-interactive", "repos"]))
    if listed.ok and string_contains(listed.stdout, repo.alias):
        report.ok(COMPONENT, f"repository {repo.alias} already registered")
        return False

    version = match_supported_version(profile.description, list(repo.urls))
    if version is None:
        supported = ", ".join(repo.urls)
        raise FatalError(
            f"unrecognised OS version {profile.description!r} (supported: {supported})",
            component=COMPONENT,
        )

    added = runner.run(Command(
        argv=["zypper", "--non-interactive", "addrepo", "--refresh", repo.urls[version], repo.alias],
        sudo=True,
        label=f"add repository {repo.alias}",
    ))
    if added.failed:
        report.error(COMPONENT, f"could not add repository {repo.alias}: {added.describe_failure()}")
        return True

    trusted = runner.run(Command(
        argv=["zypper", "--non-interactive", "--gpg-auto-import-keys", "refresh", repo.alias],
        sudo=True,
    ))
    if trusted.failed:
        report.error(COMPONENT, f"could not refresh repository {repo.alias}: {trusted.describe_failure()}")
    else:
        report.changed(COMPONENT, f"registered repository {repo.alias} for {version}")
    return True


def drop_privileges(runner: CommandRunner) -> None:
    """Invalidate cached sudo credentials."""
    result = runner.run(Command(argv=["sudo", "-k"]))
    if result.failed:
        logger.debug("sudo -k failed: %s", result.describe_failure())


def reconcile_packages(
    profile: MachineProfile,
    runner: CommandRunner,
    report: RunReport,
    third_party_repo: ThirdPartyRepoConfig | None = None,
) -> PackagePartition:
    """Install whatever base packages are missing.

    Raises:
        FatalError: the install command failed, or the OS version is not
            supported by the third-party repository.
    """
    report.check(COMPONENT, f"checking {len(profile.required_packages)} packages")
    partition = partition_packages(profile, runner)

    if not partition.missing:
        report.ok(COMPONENT, "all required packages are installed")
        return partition

    report.check(COMPONENT, f"missing: {' '.join(partition.missing)}")
    elevated = False
    try:
        if third_party_repo is not None and profile.family is third_party_repo.family:
            elevated = register_third_party_repo(profile, third_party_repo, runner, report) or elevated

        if profile.prep_command:
            elevated = True
            prep = runner.run(Command(argv=list(profile.prep_command), sudo=True, capture=False))
            if prep.failed:
                report.error(COMPONENT, f"package index refresh failed: {prep.describe_failure()}")

        elevated = True
        install = runner.run(Command(
            argv=[*profile.install_command, *partition.missing],
            sudo=True,
            capture=False,
            label="install base packages",
        ))
        if install.failed:
            raise FatalError(
                f"could not install base packages: {install.describe_failure()}",
                component=COMPONENT,
            )
        report.changed(COMPONENT, f"installed {' '.join(partition.missing)}")
    finally:
        if elevated:
            drop_privileges(runner)

    return partition
