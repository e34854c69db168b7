"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from envboot.adapters.mock import FakeRunner
from envboot.core.models.action import CommandResult
from envboot.core.models.config import BootstrapConfig
from envboot.core.models.layout import ManagedTree
from envboot.core.models.profile import DistroFamily
from envboot.core.models.report import RunReport
from envboot.core.services.prober import build_profile


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """A throwaway home directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def config(home: Path) -> BootstrapConfig:
    """Default configuration rooted in the throwaway home."""
    return BootstrapConfig(base_dir=str(home / "envboot"))


@pytest.fixture
def tree(config: BootstrapConfig) -> ManagedTree:
    """Managed tree with .lib and .bin already created."""
    managed = ManagedTree.from_base(config.base_dir)
    managed.ensure()
    return managed


@pytest.fixture
def runner(tree: ManagedTree) -> FakeRunner:
    """Fake runner whose lookup path includes the managed bin."""
    return FakeRunner(commands={"git", "curl", "ping", "sudo"}, extra_path=[tree.bin])


@pytest.fixture
def report() -> RunReport:
    return RunReport()


@pytest.fixture
def debian_profile(config: BootstrapConfig):
    return build_profile(DistroFamily.DEBIAN, config, which=lambda _: True, description="Debian GNU/Linux 12")


@pytest.fixture
def clone_into():
    """Factory for a ``git clone`` response that materialises a working copy.

    ``layouts`` maps the destination directory name to the files the
    clone should contain; files under ``bin/`` are made executable.
    """

    def factory(layouts: dict[str, dict[str, str]] | None = None):
        layouts = layouts or {}

        def respond(command):
            dest = Path(command.argv[-1])
            (dest / ".git").mkdir(parents=True, exist_ok=True)
            for rel, content in layouts.get(dest.name, {}).items():
                path = dest / rel
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(content)
                if "bin/" in rel:
                    path.chmod(0o755)
            return CommandResult.success(argv=command.argv)

        return respond

    return factory
