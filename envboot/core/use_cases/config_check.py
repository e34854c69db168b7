"""
Config check use case — validate the configuration file and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from envboot.core.config.loader import ConfigError, find_config_file, load_config
from envboot.core.models.config import BootstrapConfig
from envboot.core.models.profile import DistroFamily


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: BootstrapConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "base_dir": self.config.base_dir if self.config else None,
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate the configuration and report issues.

    No file at all is valid (the defaults apply) but earns a warning.
    """
    result = ConfigCheckResult()
    result.config_path = find_config_file(config_path)
    if result.config_path is None:
        result.warnings.append("No configuration file found; built-in defaults apply.")

    try:
        config = load_config(result.config_path)
        result.config = config
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    # Semantic checks
    for family in DistroFamily:
        if family is DistroFamily.UNSUPPORTED:
            continue
        if not config.packages_for(family):
            result.warnings.append(f"No packages declared for {family.value}.")

    if not config.third_party_repo.urls:
        result.errors.append("third_party_repo.urls is empty: no OS version can be matched.")

    if "{version}" not in config.native.url:
        result.warnings.append(
            "native.url has no {version} placeholder; changing native.version will not change the download."
        )

    names = [lib.name for lib in config.runtime.libraries]
    dupes = {n for n in names if names.count(n) > 1}
    if dupes:
        result.errors.append(f"Duplicate runtime libraries: {', '.join(sorted(dupes))}")

    if config.shell.readline_value not in ("on", "off"):
        result.errors.append(
            f"shell.readline_value must be 'on' or 'off', got {config.shell.readline_value!r}"
        )

    if config.runtime.conflicting_manager == config.runtime.manager.name:
        result.errors.append("runtime.conflicting_manager cannot be the manager itself.")

    base = Path(config.base_dir).expanduser()
    if not base.is_absolute():
        result.warnings.append(f"base_dir {config.base_dir!r} is relative to the working directory.")

    result.valid = len(result.errors) == 0
    return result
