"""
Bootstrap configuration — the declared target state.

Every value has a default, so envboot runs with no configuration
file at all. An optional YAML file (see ``core.config.loader``)
overrides any subset of these fields.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from envboot.core.models.profile import DistroFamily

_COMMON_BUILD = ["git", "curl", "tar", "bzip2", "autoconf", "patch"]

DEFAULT_PACKAGES: dict[str, list[str]] = {
    DistroFamily.DEBIAN.value: _COMMON_BUILD + [
        "build-essential",
        "libssl-dev",
        "libreadline-dev",
        "zlib1g-dev",
        "libyaml-dev",
        "libffi-dev",
        "libncurses-dev",
        "libxml2-dev",
        "libxslt1-dev",
        "iputils-ping",
    ],
    DistroFamily.REDHAT.value: _COMMON_BUILD + [
        "gcc",
        "gcc-c++",
        "make",
        "openssl-devel",
        "readline-devel",
        "zlib-devel",
        "libyaml-devel",
        "libffi-devel",
        "ncurses-devel",
        "libxml2-devel",
        "libxslt-devel",
        "iputils",
    ],
    DistroFamily.OPENSUSE.value: _COMMON_BUILD + [
        "gcc",
        "gcc-c++",
        "make",
        "libopenssl-devel",
        "readline-devel",
        "zlib-devel",
        "libyaml-devel",
        "libffi-devel",
        "ncurses-devel",
        "libxml2-devel",
        "libxslt-devel",
        "iputils",
    ],
}


class RepositoryConfig(BaseModel):
    """A git repository cloned into the library directory."""

    name: str
    url: str


class ThirdPartyRepoConfig(BaseModel):
    """Extra binary-package repository registered for one family.

    ``urls`` maps each supported OS version (as it appears in the
    OS description) to the repository URL for that version.
    """

    family: DistroFamily = DistroFamily.OPENSUSE
    alias: str = "devel-languages-ruby"
    urls: dict[str, str] = Field(default_factory=lambda: {
        "15.5": "https://download.opensuse.org/repositories/devel:/languages:/ruby/15.5/",
        "15.6": "https://download.opensuse.org/repositories/devel:/languages:/ruby/15.6/",
    })


class LibraryConfig(BaseModel):
    """A runtime library (gem) installed on top of the interpreter.

    ``probe`` is an optional Ruby snippet run after installation;
    it must exit 0 when the feature is present and 2 when missing.
    """

    name: str
    install_args: list[str] = Field(default_factory=list)
    probe: str = ""


class RuntimeConfig(BaseModel):
    manager: RepositoryConfig = RepositoryConfig(
        name="rbenv", url="https://github.com/rbenv/rbenv.git",
    )
    plugin: RepositoryConfig = RepositoryConfig(
        name="ruby-build", url="https://github.com/rbenv/ruby-build.git",
    )
    conflicting_manager: str = "rvm"
    interpreter_version: str = "3.3.6"
    libraries: list[LibraryConfig] = Field(default_factory=lambda: [
        LibraryConfig(name="nokogiri"),
        LibraryConfig(
            name="curses",
            probe=(
                "begin; require 'curses'; rescue LoadError; exit 1; end; "
                "exit(Curses.respond_to?(:get_char) ? 0 : 2)"
            ),
        ),
    ])


class NativeLibraryConfig(BaseModel):
    """Native library built from a pinned, checksummed source tarball.

    ``ldflags`` is keyed by distro family; ``{prefix}`` expands to the
    isolated install prefix.
    """

    name: str = "libtrack"
    version: str = "2.10.31"
    url: str = "https://downloads.libtrack.org/releases/libtrack-{version}.tar.gz"
    sha256: str = "6a1f0d1f5b4e7c1c0c9d0e3d7f7b2a5c8e9f4a3b2c1d0e9f8a7b6c5d4e3f2a1b"
    cli: str = "track-config"
    version_args: list[str] = Field(default_factory=lambda: ["--version"])
    ldflags: dict[str, str] = Field(default_factory=lambda: {
        DistroFamily.DEBIAN.value: "-Wl,--no-as-needed -Wl,-rpath,{prefix}/lib",
        DistroFamily.REDHAT.value: "-Wl,-rpath,{prefix}/lib -L{prefix}/lib64",
        DistroFamily.OPENSUSE.value: "-Wl,-rpath,{prefix}/lib -L{prefix}/lib64",
    })
    cflags: str = "-fcommon"

    @field_validator("sha256")
    @classmethod
    def _check_digest(cls, value: str) -> str:
        value = value.strip().lower()
        if len(value) != 64 or any(c not in "0123456789abcdef" for c in value):
            raise ValueError("sha256 must be 64 hexadecimal characters")
        return value

    @property
    def tarball_url(self) -> str:
        return self.url.replace("{version}", self.version)

    @property
    def tarball_name(self) -> str:
        return f"{self.name}-{self.version}.tar.gz"


class DistributionConfig(BaseModel):
    """Companion tool repository and its manifest."""

    repository: RepositoryConfig = RepositoryConfig(
        name="workbench-tools", url="https://github.com/envboot/workbench-tools.git",
    )
    manifest: str = "tools.list"
    tools_dir: str = "bin"
    self_name: str = "envboot"


class ShellConfig(BaseModel):
    primary: str = ".bash_profile"
    secondary: str = ".bashrc"
    inputrc: str = ".inputrc"
    readline_setting: str = "show-all-if-ambiguous"
    readline_value: str = "on"


class BootstrapConfig(BaseModel):
    """Root configuration model."""

    base_dir: str = "~/envboot"
    packages: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_PACKAGES.items()},
    )
    host_commands: list[str] = Field(default_factory=lambda: ["sudo"])
    third_party_repo: ThirdPartyRepoConfig = Field(default_factory=ThirdPartyRepoConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    native: NativeLibraryConfig = Field(default_factory=NativeLibraryConfig)
    distribution: DistributionConfig = Field(default_factory=DistributionConfig)
    shell: ShellConfig = Field(default_factory=ShellConfig)

    def packages_for(self, family: DistroFamily) -> list[str]:
        return list(self.packages.get(family.value, []))
