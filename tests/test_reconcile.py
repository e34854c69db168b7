"""
Tests for the reconciliation engine (absent / foreign / installed).
"""

from pathlib import Path

from envboot.adapters.mock import FakeRunner
from envboot.adapters.vcs.git import GitClient
from envboot.core.engine.reconcile import TargetState, git_target, reconcile_target
from envboot.core.models.report import RunReport


class TestGitTarget:
    def test_observe(self, tmp_path: Path):
        dest = tmp_path / "repo"
        target = git_target("repo", "u", dest, GitClient(FakeRunner()))
        assert target.observe() is TargetState.ABSENT
        dest.mkdir()
        assert target.observe() is TargetState.FOREIGN
        (dest / ".git").mkdir()
        assert target.observe() is TargetState.INSTALLED

    def test_git_file_is_not_a_working_copy(self, tmp_path: Path):
        dest = tmp_path / "repo"
        dest.mkdir()
        (dest / ".git").write_text("gitdir: elsewhere\n")
        target = git_target("repo", "u", dest, GitClient(FakeRunner()))
        assert target.observe() is TargetState.FOREIGN


class TestReconcileTarget:
    def test_absent_is_acquired_then_updated(self, tmp_path: Path, clone_into):
        dest = tmp_path / "repo"
        runner = FakeRunner()
        runner.set_response(("git", "clone"), clone_into())
        target = git_target("repo", "https://example.org/repo.git", dest, GitClient(runner))

        report = RunReport()
        assert reconcile_target(target, report) is TargetState.INSTALLED
        assert runner.ran("git", "clone")
        assert len(report.changes) == 1

        runner.reset()
        again = RunReport()
        assert reconcile_target(target, again) is TargetState.INSTALLED
        assert not runner.ran("git", "clone")
        assert runner.ran("git", "-C", str(dest), "pull")
        assert again.changes == []

    def test_foreign_directory_is_replaced(self, tmp_path: Path, clone_into):
        dest = tmp_path / "repo"
        dest.mkdir()
        (dest / "stray.txt").write_text("not a checkout")
        runner = FakeRunner()
        runner.set_response(("git", "clone"), clone_into())
        target = git_target("repo", "u", dest, GitClient(runner))

        report = RunReport()
        assert reconcile_target(target, report) is TargetState.INSTALLED
        assert not (dest / "stray.txt").exists()
        assert (dest / ".git").is_dir()
        assert any(e.kind == "warn" for e in report.events)

    def test_failed_clone_is_recorded(self, tmp_path: Path):
        runner = FakeRunner()
        runner.set_failure(("git", "clone"), returncode=128, stderr="could not resolve host")
        target = git_target("repo", "u", tmp_path / "repo", GitClient(runner))

        report = RunReport()
        assert reconcile_target(target, report, "runtime") is TargetState.ABSENT
        assert report.errors[0].startswith("runtime: install of repo failed")

    def test_failed_pull_keeps_installed(self, tmp_path: Path):
        dest = tmp_path / "repo"
        (dest / ".git").mkdir(parents=True)
        runner = FakeRunner()
        runner.set_failure(("git", "-C"), stderr="not possible to fast-forward")
        target = git_target("repo", "u", dest, GitClient(runner))

        report = RunReport()
        assert reconcile_target(target, report) is TargetState.INSTALLED
        assert report.errors
        assert dest.is_dir()

    def test_clone_that_leaves_no_working_copy(self, tmp_path: Path):
        runner = FakeRunner()
        target = git_target("repo", "u", tmp_path / "repo", GitClient(runner))
        report = RunReport()
        assert reconcile_target(target, report) is TargetState.ABSENT
        assert "not usable" in report.errors[0]
