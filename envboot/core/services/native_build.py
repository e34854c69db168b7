"""
Native library build reconciler — version-gated rebuild from source.

The library counts as installed only when its companion CLI reports
exactly the target version. Otherwise:

    clear build dir → verify cached tarball (sha256)
        mismatch/absent → delete, download, verify again
    extract → configure → make → make install (isolated prefix)
    publish every produced binary into the bin farm

Extraction never runs against an unverified file. Every failure is
recorded; none of them stops the run.
"""

from __future__ import annotations

import hashlib
import logging
import re
import tarfile
from pathlib import Path
from urllib.parse import urlparse

from envboot.adapters.base import CommandRunner
from envboot.adapters.shell.filesystem import PublishError, executables_in, publish_link, remove_path
from envboot.core.models.action import Command
from envboot.core.models.config import NativeLibraryConfig
from envboot.core.models.layout import ManagedTree
from envboot.core.models.profile import MachineProfile
from envboot.core.models.report import RunReport
from envboot.core.services.capabilities import path_exists

logger = logging.getLogger(__name__)

COMPONENT = "native"

_VERSION_RE = re.compile(r"(\d+(?:\.\d+)+)")


def file_sha256(path: Path) -> str:
    """Hex SHA-256 digest of a file, streamed in chunks."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


def verify_checksum(path: Path, expected: str) -> bool:
    """True if ``path`` exists and its digest equals ``expected``."""
    if not Path(path).is_file():
        return False
    return file_sha256(path) == expected.lower()


def parse_version(output: str) -> str | None:
    """First dotted version number in a CLI's output."""
    match = _VERSION_RE.search(output or "")
    return match.group(1) if match else None


class NativeLibraryBuilder:
    """Builds one native library into ``<lib>/<name>`` and links its binaries."""

    def __init__(
        self,
        config: NativeLibraryConfig,
        tree: ManagedTree,
        runner: CommandRunner,
        profile: MachineProfile,
    ):
        self.config = config
        self.tree = tree
        self.runner = runner
        self.profile = profile

    # ── Paths ───────────────────────────────────────────────────

    @property
    def prefix(self) -> Path:
        """Isolated install prefix (never the bin farm)."""
        return self.tree.lib_path(self.config.name)

    @property
    def build_dir(self) -> Path:
        return self.tree.lib_path(f"{self.config.name}-build")

    @property
    def tarball(self) -> Path:
        return self.tree.lib_path(self.config.tarball_name)

    # ── Version gate ────────────────────────────────────────────

    def installed_version(self) -> str | None:
        if not self.runner.which(self.config.cli):
            return None
        result = self.runner.run(Command(argv=[self.config.cli, *self.config.version_args]))
        if result.failed:
            return None
        return parse_version(result.output)

    def is_current(self, report: RunReport) -> bool:
        found = self.installed_version()
        target = self.config.version
        report.check(COMPONENT, f"{self.config.name}: installed {found or 'none'}, target {target}")
        return found == target

    # ── Source acquisition ──────────────────────────────────────

    def download(self, report: RunReport) -> bool:
        url = self.config.tarball_url
        result = self.runner.run(Command(
            argv=["curl", "-fL", "--silent", "--show-error", "-o", str(self.tarball), url],
            cwd=self.tree.lib,
            label=f"download {self.config.tarball_name}",
        ))
        if result.ok:
            return True

        report.error(COMPONENT, f"download of {url} failed: {result.describe_failure()}")
        host = urlparse(url).hostname
        if host:
            ping = self.runner.run(Command(argv=["ping", "-c", "1", host]))
            if ping.ok:
                report.warn(COMPONENT, f"{host} is reachable; the download itself failed")
            else:
                report.warn(COMPONENT, f"{host} is not reachable; check the network connection")
        return False

    def ensure_verified_tarball(self, report: RunReport) -> bool:
        """Cached tarball verified against the pinned digest, re-fetched once if needed."""
        expected = self.config.sha256
        if verify_checksum(self.tarball, expected):
            report.ok(COMPONENT, f"cached {self.tarball.name} matches its checksum")
            return True

        if path_exists(self.tarball):
            report.warn(COMPONENT, f"cached {self.tarball.name} has the wrong checksum; re-downloading")
            remove_path(self.tarball)

        if not self.download(report):
            return False
        report.changed(COMPONENT, f"downloaded {self.tarball.name}")

        if not verify_checksum(self.tarball, expected):
            report.error(
                COMPONENT,
                f"{self.tarball.name} checksum mismatch after download (expected sha256 {expected})",
            )
            return False
        return True

    def extract(self, report: RunReport) -> Path | None:
        """Unpack the verified tarball into the build directory."""
        self.build_dir.mkdir(parents=True, exist_ok=True)
        try:
            with tarfile.open(self.tarball) as archive:
                archive.extractall(self.build_dir, filter="data")
        except (tarfile.TarError, OSError) as e:
            report.error(COMPONENT, f"could not extract {self.tarball.name}: {e}")
            return None

        entries = [p for p in self.build_dir.iterdir() if p.is_dir()]
        source = entries[0] if len(entries) == 1 else self.build_dir
        return source

    # ── Build ───────────────────────────────────────────────────

    def ldflags(self) -> str:
        template = self.config.ldflags.get(self.profile.family.value, "")
        return template.replace("{prefix}", str(self.prefix))

    def build(self, source: Path, report: RunReport) -> bool:
        steps = [
            [
                "./configure",
                f"--prefix={self.prefix}",
                f"LDFLAGS={self.ldflags()}",
                f"CFLAGS={self.config.cflags}",
            ],
            ["make"],
            ["make", "install"],
        ]
        for argv in steps:
            step = "configure" if argv[0] == "./configure" else " ".join(argv)
            result = self.runner.run(Command(argv=argv, cwd=source, capture=False, label=step))
            if result.failed:
                report.error(COMPONENT, f"{self.config.name} {step} failed: {result.describe_failure()}")
                return False
        return True

    def publish(self, report: RunReport) -> list[str]:
        """Link every binary in the prefix into the bin farm, replacing old links."""
        published: list[str] = []
        for binary in executables_in(self.prefix / "bin"):
            try:
                publish_link(self.tree.link_path(binary.name), binary)
                published.append(binary.name)
            except (PublishError, OSError) as e:
                report.error(COMPONENT, f"could not link {binary.name}: {e}")
        if published:
            report.changed(COMPONENT, f"linked {', '.join(published)}")
        else:
            report.error(COMPONENT, f"{self.config.name} installed no binaries into {self.prefix / 'bin'}")
        return published

    # ── Entry point ─────────────────────────────────────────────

    def reconcile(self, report: RunReport) -> bool:
        """Return True when the target version is installed and linked."""
        if self.is_current(report):
            report.ok(COMPONENT, f"{self.config.name} {self.config.version} is installed")
            return True

        if remove_path(self.build_dir):
            logger.debug("Cleared previous build directory %s", self.build_dir)

        if not self.ensure_verified_tarball(report):
            return False

        source = self.extract(report)
        if source is None:
            return False

        if not self.build(source, report):
            return False
        report.changed(COMPONENT, f"built {self.config.name} {self.config.version} into {self.prefix}")

        return bool(self.publish(report))
