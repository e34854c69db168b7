"""
Tests for adapters — runners, filesystem primitives, git client.
"""

import os
from pathlib import Path

import pytest

from envboot.adapters import FakeRunner, GitClient, SubprocessRunner
from envboot.adapters.shell.filesystem import (
    PublishError,
    append_text,
    executables_in,
    link_points_into,
    publish_link,
    read_text,
    remove_path,
)
from envboot.core.models.action import EXIT_NOT_FOUND, Command, CommandResult


class TestFakeRunner:
    def test_unscripted_commands_succeed(self):
        runner = FakeRunner()
        result = runner.run_argv("anything", "at", "all")
        assert result.ok
        assert runner.call_count == 1

    def test_longest_prefix_wins(self):
        runner = FakeRunner()
        runner.set_failure(("git",))
        runner.set_output(("git", "rev-parse"), "abc123")
        assert runner.run_argv("git", "pull").failed
        assert runner.run_argv("git", "rev-parse", "HEAD").stdout == "abc123"

    def test_result_carries_actual_argv(self):
        runner = FakeRunner()
        runner.set_output(("echo",), "hi")
        assert runner.run_argv("echo", "hi").argv == ["echo", "hi"]

    def test_callable_response(self, tmp_path: Path):
        runner = FakeRunner()
        marker = tmp_path / "made"
        runner.set_response(("touch",), lambda cmd: marker.write_text("x") and None)
        assert runner.run_argv("touch").ok
        assert marker.is_file()

    def test_default_result(self):
        runner = FakeRunner(default=CommandResult.failure(returncode=3))
        result = runner.run_argv("whatever")
        assert result.returncode == 3
        assert result.argv == ["whatever"]

    def test_which_uses_commands_and_extra_path(self, tmp_path: Path):
        tool = tmp_path / "tool"
        tool.write_text("#!/bin/sh\n")
        tool.chmod(0o755)
        runner = FakeRunner(commands={"git"})
        assert runner.which("git")
        assert not runner.which("tool")
        runner.add_path(tmp_path)
        assert runner.which("tool")

    def test_calls_and_reset(self):
        runner = FakeRunner()
        runner.run_argv("git", "clone", "x")
        runner.run_argv("git", "pull")
        assert len(runner.calls("git")) == 2
        assert runner.ran("git", "clone")
        assert not runner.ran("curl")
        runner.reset()
        assert runner.call_count == 0


class TestSubprocessRunner:
    def test_captures_stdout(self):
        result = SubprocessRunner().run_argv("echo", "hello")
        assert result.ok
        assert result.stdout == "hello"

    def test_nonzero_exit_is_a_result(self):
        result = SubprocessRunner().run_argv("false")
        assert result.failed
        assert result.returncode == 1

    def test_missing_executable_is_127(self):
        result = SubprocessRunner().run_argv("envboot-definitely-not-a-command")
        assert result.returncode == EXIT_NOT_FOUND
        assert "not found" in result.stderr

    def test_undecodable_output_is_replaced(self):
        result = SubprocessRunner().run(Command(argv=["printf", "\\377ok\\n"]))
        assert result.ok
        assert result.stdout == "\ufffdok"

    def test_cwd_and_env(self, tmp_path: Path):
        runner = SubprocessRunner()
        result = runner.run(Command(argv=["sh", "-c", 'pwd; echo "$ENVBOOT_TEST"'], cwd=tmp_path, env={"ENVBOOT_TEST": "yes"}))
        lines = result.stdout.splitlines()
        assert Path(lines[0]).resolve() == tmp_path.resolve()
        assert lines[1] == "yes"

    def test_extra_path_is_prepended(self, tmp_path: Path):
        tool = tmp_path / "envboot-managed-tool"
        tool.write_text("#!/bin/sh\necho from-managed-bin\n")
        tool.chmod(0o755)
        runner = SubprocessRunner(extra_path=[tmp_path])
        assert runner.which("envboot-managed-tool")
        assert runner.run_argv("envboot-managed-tool").stdout == "from-managed-bin"

    def test_sudo_prefix(self, monkeypatch):
        monkeypatch.setattr(os, "geteuid", lambda: 1000)
        runner = SubprocessRunner(sudo="echo")
        result = runner.run(Command(argv=["elevated"], sudo=True))
        assert result.stdout == "elevated"

    def test_no_sudo_prefix_as_root(self, monkeypatch):
        monkeypatch.setattr(os, "geteuid", lambda: 0)
        runner = SubprocessRunner(sudo="false")
        assert runner.run(Command(argv=["true"], sudo=True)).ok


class TestFilesystem:
    def test_publish_link_replaces_file(self, tmp_path: Path):
        target = tmp_path / "real"
        target.write_text("x")
        link = tmp_path / "bin" / "tool"
        link.parent.mkdir()
        link.write_text("ad-hoc copy")
        publish_link(link, target)
        assert link.is_symlink()
        assert link.resolve() == target.resolve()

    def test_publish_link_refuses_directory(self, tmp_path: Path):
        link = tmp_path / "tool"
        link.mkdir()
        with pytest.raises(PublishError):
            publish_link(link, tmp_path / "real")

    def test_link_points_into(self, tmp_path: Path):
        repo = tmp_path / "repo"
        (repo / "bin").mkdir(parents=True)
        link = tmp_path / "tool"
        link.symlink_to(repo / "bin" / "tool")
        assert link_points_into(link, repo)
        assert not link_points_into(link, tmp_path / "elsewhere")
        assert not link_points_into(tmp_path / "missing", repo)

    def test_remove_path(self, tmp_path: Path):
        directory = tmp_path / "d"
        (directory / "sub").mkdir(parents=True)
        assert remove_path(directory)
        assert not directory.exists()
        assert not remove_path(directory)

    def test_remove_dangling_symlink(self, tmp_path: Path):
        link = tmp_path / "dangling"
        link.symlink_to(tmp_path / "nowhere")
        assert remove_path(link)
        assert not os.path.lexists(link)

    def test_append_text_adds_missing_newline(self, tmp_path: Path):
        path = tmp_path / "rc"
        path.write_text("existing")
        append_text(path, "new line")
        assert path.read_text() == "existing\nnew line\n"

    def test_read_text_missing(self, tmp_path: Path):
        assert read_text(tmp_path / "nope") == ""

    def test_read_text_latin1(self, tmp_path: Path):
        path = tmp_path / "latin1"
        path.write_bytes(b"# caf\xe9\nexport PATH\n")
        assert read_text(path).splitlines() == ["# caf\ufffd", "export PATH"]

    def test_executables_in(self, tmp_path: Path):
        (tmp_path / "b").write_text("")
        (tmp_path / "b").chmod(0o755)
        (tmp_path / "a").write_text("")
        (tmp_path / "a").chmod(0o755)
        (tmp_path / "data").write_text("")
        assert [p.name for p in executables_in(tmp_path)] == ["a", "b"]
        assert executables_in(tmp_path / "missing") == []


class TestGitClient:
    def test_clone_argv_and_cwd(self, tmp_path: Path):
        runner = FakeRunner()
        GitClient(runner).clone("https://example.org/r.git", tmp_path / "r")
        cmd = runner.call_log[0]
        assert cmd.argv == ["git", "clone", "--quiet", "https://example.org/r.git", str(tmp_path / "r")]
        assert cmd.cwd == tmp_path

    def test_pull_is_fast_forward_only(self, tmp_path: Path):
        runner = FakeRunner()
        GitClient(runner).pull(tmp_path)
        assert runner.call_log[0].argv == ["git", "-C", str(tmp_path), "pull", "--ff-only", "--quiet"]
