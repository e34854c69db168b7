"""
Tests for core models — commands, results, profile, tree, report, config.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from envboot.core.models import (
    BootstrapConfig,
    Command,
    CommandResult,
    DistroFamily,
    DistroProbe,
    LastRun,
    MachineProfile,
    ManagedTree,
    NativeLibraryConfig,
    RunReport,
)


class TestCommand:
    def test_display_plain(self):
        cmd = Command(argv=["git", "pull", "--ff-only"])
        assert cmd.display() == "git pull --ff-only"
        assert cmd.program == "git"

    def test_display_sudo(self):
        cmd = Command(argv=["apt-get", "install", "-y", "curl"], sudo=True)
        assert cmd.display() == "sudo apt-get install -y curl"

    def test_defaults(self):
        cmd = Command(argv=["make"])
        assert cmd.timeout is None
        assert cmd.capture is True
        assert cmd.env == {}


class TestCommandResult:
    def test_success(self):
        result = CommandResult.success(argv=["true"], stdout="done")
        assert result.ok
        assert not result.failed
        assert result.output == "done"

    def test_failure_description_uses_last_stderr_line(self):
        result = CommandResult.failure(argv=["make"], returncode=2, stderr="warning\nerror: boom")
        assert result.failed
        assert result.describe_failure() == "`make` exited with 2: error: boom"

    def test_failure_description_without_output(self):
        result = CommandResult.failure(argv=["false"])
        assert result.describe_failure() == "`false` exited with 1"

    def test_output_combines_streams(self):
        result = CommandResult(stdout="a", stderr="b")
        assert result.output == "ab"


class TestProfile:
    def test_os_release_fields(self):
        probe = DistroProbe(os_release='# comment\nID="ubuntu"\nID_LIKE=debian\nBROKEN\n')
        assert probe.os_release_fields() == {"ID": "ubuntu", "ID_LIKE": "debian"}

    def test_supported(self):
        assert MachineProfile(family=DistroFamily.REDHAT).supported
        assert not MachineProfile(family=DistroFamily.UNSUPPORTED).supported

    def test_profile_is_frozen(self):
        profile = MachineProfile(family=DistroFamily.DEBIAN)
        with pytest.raises(ValidationError):
            profile.family = DistroFamily.REDHAT


class TestManagedTree:
    def test_paths(self, tmp_path: Path):
        tree = ManagedTree.from_base(tmp_path / "envboot")
        assert tree.lib == tmp_path / "envboot" / ".lib"
        assert tree.bin == tmp_path / "envboot" / ".bin"
        assert tree.state_file.parent == tree.lib
        assert tree.link_path("rbenv") == tree.bin / "rbenv"

    def test_ensure_reports_only_new_dirs(self, tmp_path: Path):
        tree = ManagedTree.from_base(tmp_path / "envboot")
        created = tree.ensure()
        assert tree.base in created
        assert tree.lib.is_dir() and tree.bin.is_dir()
        assert tree.ensure() == []

    def test_from_base_expands_home(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("HOME", str(tmp_path))
        tree = ManagedTree.from_base("~/envboot")
        assert tree.base == tmp_path / "envboot"


class TestRunReport:
    def test_events_and_changes(self):
        report = RunReport()
        report.check("packages", "checking")
        report.ok("packages", "all installed")
        report.changed("shell", "added PATH")
        assert len(report.events) == 3
        assert [e.message for e in report.changes] == ["added PATH"]
        assert report.status == "ok"

    def test_error_is_recorded_with_component(self):
        report = RunReport()
        report.error("native", "download failed")
        assert report.errors == ["native: download failed"]
        assert report.has_errors
        assert report.status == "partial"

    def test_listener_receives_events(self):
        seen = []
        report = RunReport(listener=seen.append)
        report.warn("runtime", "careful")
        assert seen[0].kind == "warn"
        assert seen[0].component == "runtime"

    def test_restart_flag_and_degraded(self):
        report = RunReport()
        assert report.shell_restart is False
        report.request_restart()
        report.mark_degraded("curses")
        report.mark_degraded("curses")
        assert report.shell_restart is True
        assert report.degraded == ["curses"]

    def test_to_dict(self):
        report = RunReport()
        report.changed("tree", "created")
        data = report.to_dict()
        assert data["status"] == "ok"
        assert data["changes"] == ["created"]
        assert data["events"][0]["kind"] == "change"


class TestConfig:
    def test_defaults_cover_every_family(self):
        config = BootstrapConfig()
        for family in (DistroFamily.DEBIAN, DistroFamily.REDHAT, DistroFamily.OPENSUSE):
            assert config.packages_for(family)
        assert config.packages_for(DistroFamily.UNSUPPORTED) == []

    def test_packages_for_returns_a_copy(self):
        config = BootstrapConfig()
        config.packages_for(DistroFamily.DEBIAN).append("extra")
        assert "extra" not in config.packages_for(DistroFamily.DEBIAN)

    def test_tarball_url_substitutes_version(self):
        native = NativeLibraryConfig(version="1.2.3", url="https://example.org/lib-{version}.tgz")
        assert native.tarball_url == "https://example.org/lib-1.2.3.tgz"
        assert native.tarball_name == "libtrack-1.2.3.tar.gz"

    def test_sha256_is_normalised(self):
        native = NativeLibraryConfig(sha256="AB" * 32)
        assert native.sha256 == "ab" * 32

    def test_bad_sha256_rejected(self):
        with pytest.raises(ValidationError):
            NativeLibraryConfig(sha256="not-a-digest")

    def test_curses_has_feature_probe(self):
        libraries = {lib.name: lib for lib in BootstrapConfig().runtime.libraries}
        assert libraries["curses"].probe
        assert not libraries["nokogiri"].probe


class TestLastRun:
    def test_blank_record_is_not_recorded(self):
        assert not LastRun().recorded
        assert LastRun(status="ok").recorded

    def test_touch_updates_end_time(self):
        record = LastRun(ended_at="2000-01-01T00:00:00+00:00")
        record.touch()
        assert record.ended_at != "2000-01-01T00:00:00+00:00"
