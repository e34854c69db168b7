"""
Tests for configuration loading and validation.
"""

import textwrap
from pathlib import Path

import pytest
import yaml

from envboot.core.config.loader import (
    CONFIG_ENV_VAR,
    ConfigError,
    dump_config,
    find_config_file,
    load_config,
    parse_config,
)
from envboot.core.models.profile import DistroFamily
from envboot.core.use_cases.config_check import check_config


class TestParse:
    def test_empty_document_gives_defaults(self):
        config = parse_config("")
        assert config.base_dir == "~/envboot"
        assert config.native.version == "2.10.31"

    def test_partial_override(self):
        config = parse_config(textwrap.dedent("""\
            native:
              version: 2.11.0
            packages:
              debian-like: [git, curl]
        """))
        assert config.native.version == "2.11.0"
        assert config.packages_for(DistroFamily.DEBIAN) == ["git", "curl"]
        # untouched families keep their defaults
        assert config.packages_for(DistroFamily.REDHAT) == []

    def test_wrapped_under_envboot_key(self):
        config = parse_config("envboot:\n  base_dir: /srv/dev\n")
        assert config.base_dir == "/srv/dev"

    def test_invalid_yaml(self):
        with pytest.raises(ConfigError, match="Invalid YAML"):
            parse_config("a: [b", source="x.yml")

    def test_non_mapping(self):
        with pytest.raises(ConfigError, match="mapping"):
            parse_config("- a\n- b\n")

    def test_schema_violation(self):
        with pytest.raises(ConfigError, match="sha256"):
            parse_config("native:\n  sha256: short\n")


class TestFind:
    def test_explicit_path_wins(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "env.yml"))
        assert find_config_file(tmp_path / "explicit.yml") == tmp_path / "explicit.yml"

    def test_env_var(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "env.yml"))
        assert find_config_file() == tmp_path / "env.yml"

    def test_default_location_only_when_present(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert find_config_file() is None

        default = tmp_path / ".config" / "envboot" / "config.yml"
        default.parent.mkdir(parents=True)
        default.write_text("{}\n")
        assert find_config_file() == default


class TestLoad:
    def test_no_file_gives_defaults(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert load_config().base_dir == "~/envboot"

    def test_missing_explicit_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.yml")

    def test_load_file(self, tmp_path: Path):
        path = tmp_path / "c.yml"
        path.write_text("runtime:\n  conflicting_manager: asdf\n")
        assert load_config(path).runtime.conflicting_manager == "asdf"

    def test_dump_is_reloadable(self):
        text = dump_config(parse_config("base_dir: /srv/dev\n"))
        data = yaml.safe_load(text)
        assert data["base_dir"] == "/srv/dev"
        assert data["third_party_repo"]["family"] == "opensuse-like"
        assert parse_config(text).base_dir == "/srv/dev"


class TestCheck:
    def test_no_file_is_valid_with_warning(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        result = check_config()
        assert result.valid
        assert any("defaults" in w for w in result.warnings)

    def test_semantic_errors(self, tmp_path: Path):
        path = tmp_path / "c.yml"
        path.write_text(textwrap.dedent("""\
            third_party_repo:
              urls: {}
            runtime:
              conflicting_manager: rbenv
              libraries:
                - name: nokogiri
                - name: nokogiri
        """))
        result = check_config(path)
        assert not result.valid
        text = " ".join(result.errors)
        assert "urls" in text
        assert "Duplicate runtime libraries" in text
        assert "conflicting_manager" in text

    def test_warnings_do_not_invalidate(self, tmp_path: Path):
        path = tmp_path / "c.yml"
        path.write_text("base_dir: relative/dir\nnative:\n  url: https://example.org/fixed.tgz\n")
        result = check_config(path)
        assert result.valid
        assert len(result.warnings) == 2
        assert result.to_dict()["base_dir"] == "relative/dir"
