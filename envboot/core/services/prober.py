"""
Environment prober — classify the OS and gate the whole run.

Detection order (first hit wins):

    1. dedicated release-file markers   (/etc/debian_version, /etc/redhat-release, …)
    2. generic /etc/os-release           (ID, then ID_LIKE)
    3. ``lsb_release -si``               (only when both above are silent)

Gathering the probe touches the OS; ``classify_distribution`` is pure
and works on the gathered ``DistroProbe`` alone.
"""

from __future__ import annotations

import grp
import logging
import os
import platform
import pwd
from pathlib import Path
from typing import Callable

from envboot.adapters.base import CommandRunner
from envboot.core.errors import FatalError
from envboot.core.models.config import BootstrapConfig
from envboot.core.models.profile import DistroFamily, DistroProbe, MachineProfile
from envboot.core.models.report import RunReport

logger = logging.getLogger(__name__)

COMPONENT = "prober"

# Priority order matters: fedora ships both fedora- and redhat-release.
RELEASE_MARKERS: tuple[tuple[str, DistroFamily], ...] = (
    ("etc/debian_version", DistroFamily.DEBIAN),
    ("etc/fedora-release", DistroFamily.REDHAT),
    ("etc/redhat-release", DistroFamily.REDHAT),
    ("etc/centos-release", DistroFamily.REDHAT),
    ("etc/SuSE-release", DistroFamily.OPENSUSE),
    ("etc/SUSE-brand", DistroFamily.OPENSUSE),
)

_OS_RELEASE_IDS: dict[str, DistroFamily] = {
    "debian": DistroFamily.DEBIAN,
    "ubuntu": DistroFamily.DEBIAN,
    "linuxmint": DistroFamily.DEBIAN,
    "pop": DistroFamily.DEBIAN,
    "raspbian": DistroFamily.DEBIAN,
    "rhel": DistroFamily.REDHAT,
    "fedora": DistroFamily.REDHAT,
    "centos": DistroFamily.REDHAT,
    "rocky": DistroFamily.REDHAT,
    "almalinux": DistroFamily.REDHAT,
    "ol": DistroFamily.REDHAT,
    "suse": DistroFamily.OPENSUSE,
    "opensuse": DistroFamily.OPENSUSE,
    "opensuse-leap": DistroFamily.OPENSUSE,
    "opensuse-tumbleweed": DistroFamily.OPENSUSE,
    "sles": DistroFamily.OPENSUSE,
}

# Package backends: (manager binary, query argv, install argv, prep argv)
PACKAGE_BACKENDS: dict[DistroFamily, list[tuple[str, tuple[str, ...], tuple[str, ...], tuple[str, ...]]]] = {
    DistroFamily.DEBIAN: [
        (
            "apt-get",
            ("dpkg-query", "-W", "-f=${Status}"),
            ("apt-get", "install", "-y"),
            ("apt-get", "update"),
        ),
    ],
    DistroFamily.REDHAT: [
        ("dnf", ("rpm", "-q"), ("dnf", "install", "-y"), ("dnf", "makecache")),
        ("yum", ("rpm", "-q"), ("yum", "install", "-y"), ("yum", "makecache")),
    ],
    DistroFamily.OPENSUSE: [
        (
            "zypper",
            ("rpm", "-q"),
            ("zypper", "--non-interactive", "install"),
            ("zypper", "--non-interactive", "refresh"),
        ),
    ],
}

ADMIN_GROUPS: dict[DistroFamily, tuple[str, ...]] = {
    DistroFamily.DEBIAN: ("sudo", "admin"),
    DistroFamily.REDHAT: ("wheel",),
    DistroFamily.OPENSUSE: ("wheel", "sudo"),
}


# ── Probe gathering (touches the OS) ─────────────────────────────


def gather_probe(root: Path = Path("/"), runner: CommandRunner | None = None) -> DistroProbe:
    """Collect the raw facts the classifier needs.

    ``lsb_release`` is only invoked when neither markers nor
    os-release are available.
    """
    root = Path(root)
    markers = frozenset(rel for rel, _ in RELEASE_MARKERS if (root / rel).exists())

    os_release = ""
    for candidate in ("etc/os-release", "usr/lib/os-release"):
        try:
            os_release = (root / candidate).read_text(encoding="utf-8", errors="replace")
            break
        except OSError:
            continue

    lsb_id = ""
    if not markers and not os_release and runner is not None and runner.which("lsb_release"):
        result = runner.run_argv("lsb_release", "-si")
        if result.ok:
            lsb_id = result.stdout.strip()

    return DistroProbe(release_markers=markers, os_release=os_release, lsb_id=lsb_id)


# ── Classification (pure) ────────────────────────────────────────


def _family_for_id(value: str) -> DistroFamily | None:
    value = value.strip().lower()
    if not value:
        return None
    if value in _OS_RELEASE_IDS:
        return _OS_RELEASE_IDS[value]
    if value.startswith("opensuse") or value.startswith("suse"):
        return DistroFamily.OPENSUSE
    return None


def classify_distribution(probe: DistroProbe) -> DistroFamily:
    """Map probe results to exactly one distribution family."""
    for rel, family in RELEASE_MARKERS:
        if rel in probe.release_markers:
            return family

    fields = probe.os_release_fields()
    if fields:
        family = _family_for_id(fields.get("ID", ""))
        if family:
            return family
        for like in fields.get("ID_LIKE", "").split():
            family = _family_for_id(like)
            if family:
                return family

    family = _family_for_id(probe.lsb_id)
    if family:
        return family

    return DistroFamily.UNSUPPORTED


def describe_os(probe: DistroProbe) -> str:
    """Free-text OS description (PRETTY_NAME plus VERSION) for version matching."""
    fields = probe.os_release_fields()
    parts = [fields.get("PRETTY_NAME", ""), fields.get("VERSION", ""), fields.get("VERSION_ID", "")]
    text = " ".join(p for p in parts if p)
    return text or probe.lsb_id


# ── Profile construction ─────────────────────────────────────────


def build_profile(
    family: DistroFamily,
    config: BootstrapConfig,
    which: Callable[[str], bool],
    description: str = "",
) -> MachineProfile:
    """Select the package backend for ``family``.

    Raises:
        FatalError: unsupported family, or no supported package manager
            (or its query tool) is installed.
    """
    if family is DistroFamily.UNSUPPORTED:
        raise FatalError("this operating system is not supported", component=COMPONENT)

    for manager, query, install, prep in PACKAGE_BACKENDS[family]:
        if which(manager) and which(query[0]):
            logger.debug("Package backend for %s: %s", family.value, manager)
            return MachineProfile(
                family=family,
                package_manager=manager,
                query_command=query,
                install_command=install,
                prep_command=prep,
                required_packages=tuple(config.packages_for(family)),
                admin_groups=ADMIN_GROUPS[family],
                description=description,
            )

    names = ", ".join(b[0] for b in PACKAGE_BACKENDS[family])
    raise FatalError(
        f"no supported package manager found (looked for {names})",
        component=COMPONENT,
    )


# ── Preconditions ────────────────────────────────────────────────


def current_groups(user: str | None = None) -> set[str]:
    """Group names of the invoking user (primary and supplementary)."""
    names: set[str] = set()
    for gid in os.getgroups():
        try:
            names.add(grp.getgrgid(gid).gr_name)
        except KeyError:
            continue
    user = user or _username()
    if user:
        names.update(g.gr_name for g in grp.getgrall() if user in g.gr_mem)
    return names


def _username() -> str:
    try:
        return pwd.getpwuid(os.geteuid()).pw_name
    except KeyError:
        return os.environ.get("USER", "")


def check_kernel(system: str | None = None) -> None:
    system = system if system is not None else platform.system()
    if system != "Linux":
        raise FatalError(f"unsupported kernel {system!r}; Linux is required", component=COMPONENT)


def check_privileges(
    euid: int,
    confirm: Callable[[str], bool],
) -> bool:
    """Refuse to run as root unless the operator explicitly confirms.

    Returns True when running as root (with confirmation).
    """
    if euid != 0:
        return False
    if not confirm("envboot is meant to run as a regular user. Continue as root?"):
        raise FatalError("refusing to run as root", component=COMPONENT)
    logger.warning("Continuing as root at operator request")
    return True


def check_admin_group(profile: MachineProfile, groups: set[str], is_root: bool) -> None:
    if is_root:
        return
    if not set(profile.admin_groups) & groups:
        wanted = " or ".join(profile.admin_groups)
        raise FatalError(
            f"user must be a member of {wanted} to install packages",
            component=COMPONENT,
        )


def check_host_commands(commands: list[str], which: Callable[[str], bool], is_root: bool) -> None:
    missing = [c for c in commands if not (is_root and c == "sudo") and not which(c)]
    if missing:
        raise FatalError(f"required command(s) not found: {', '.join(missing)}", component=COMPONENT)


def probe_machine(
    config: BootstrapConfig,
    runner: CommandRunner,
    report: RunReport,
    *,
    confirm: Callable[[str], bool],
    root: Path = Path("/"),
    system: str | None = None,
    euid: int | None = None,
    groups: set[str] | None = None,
) -> MachineProfile:
    """Run every precondition and return the machine profile.

    Raises:
        FatalError: on any failed precondition.
    """
    report.check(COMPONENT, "checking kernel and privileges")
    check_kernel(system)
    is_root = check_privileges(os.geteuid() if euid is None else euid, confirm)

    probe = gather_probe(root, runner)
    family = classify_distribution(probe)
    report.check(COMPONENT, f"distribution family: {family.value}")
    profile = build_profile(family, config, runner.which, description=describe_os(probe))

    check_admin_group(profile, current_groups() if groups is None else groups, is_root)
    check_host_commands(config.host_commands, runner.which, is_root)

    report.ok(COMPONENT, f"{family.value} machine, packages via {profile.package_manager}")
    return profile
