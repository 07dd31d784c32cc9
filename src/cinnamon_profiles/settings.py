"""Runtime settings for the profile manager.

Settings are built once by :func:`load_settings` at process start and passed
explicitly to every service.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

import yaml

from cinnamon_profiles.domain.components import COMPONENT_KEYS, ComponentSelection, SourceLocation, build_location_table
from cinnamon_profiles.domain.errors import ConfigError, StartupError
from cinnamon_profiles.domain.profile import ProfileRegistry
from cinnamon_profiles.resources import load_default_config

PROFILES_DIR_ENV = "CINNAMON_PROFILES_DIR"
CONFIG_FILENAME = "config.yaml"
REQUIRED_TOOLS = ("zip", "unzip", "dconf")


@dataclass(frozen=True)
class RuntimeSettings:
    home_dir: Path
    profiles_root: Path
    system_data_dir: Path = Path("/usr/share")
    dconf_namespace: str = "/org/cinnamon/"
    default_components: ComponentSelection = field(default_factory=ComponentSelection)

    @property
    def registry_file(self) -> Path:
        return self.profiles_root / "profiles.json"

    @property
    def backup_dir(self) -> Path:
        return self.profiles_root / "backup"

    @property
    def auto_backup_dir(self) -> Path:
        return self.profiles_root / "auto-backup"

    @property
    def log_dir(self) -> Path:
        return self.profiles_root / "logs"

    @property
    def config_file(self) -> Path:
        return self.profiles_root / CONFIG_FILENAME

    @property
    def downloads_dir(self) -> Path:
        return self.home_dir / "Downloads"

    @property
    def core_dirs(self) -> Tuple[Path, Path]:
        return (
            self.home_dir / ".local" / "share" / "cinnamon",
            self.home_dir / ".config" / "cinnamon",
        )

    def source_locations(self) -> Tuple[SourceLocation, ...]:
        return build_location_table(self.home_dir, self.system_data_dir)


def load_settings(environ: Mapping[str, str] | None = None) -> RuntimeSettings:
    env = os.environ if environ is None else environ
    home = env.get("HOME")
    if not home:
        raise StartupError("HOME environment variable not set. This tool cannot operate.")
    home_dir = Path(home).expanduser()
    override = env.get(PROFILES_DIR_ENV)
    profiles_root = Path(override).expanduser() if override else home_dir / ".cinnamon-profiles"

    config = _load_config(profiles_root / CONFIG_FILENAME)
    try:
        components = ComponentSelection.from_dict(config.get("components") or {})
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid components section in {CONFIG_FILENAME}: {exc}") from exc
    return RuntimeSettings(
        home_dir=home_dir,
        profiles_root=profiles_root,
        system_data_dir=Path(str(config.get("system_data_dir", "/usr/share"))).expanduser(),
        dconf_namespace=str(config.get("dconf_namespace", "/org/cinnamon/")),
        default_components=components,
    )


def _load_config(path: Path) -> Dict[str, Any]:
    config = load_default_config()
    if not path.exists():
        return config
    try:
        user_config = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse {path}: {exc}") from exc
    if not isinstance(user_config, dict):
        raise ConfigError(f"{path} must contain a mapping")
    components = user_config.get("components")
    if components is not None:
        if not isinstance(components, dict):
            raise ConfigError(f"'components' in {path} must be a mapping")
        unknown = set(components) - set(COMPONENT_KEYS)
        if unknown:
            raise ConfigError(f"Unknown component keys in {path}: {', '.join(sorted(unknown))}")
        config["components"] = {**config.get("components", {}), **components}
    for key in ("dconf_namespace", "system_data_dir"):
        if key in user_config:
            config[key] = user_config[key]
    return config


def ensure_app_directories(settings: RuntimeSettings) -> list[str]:
    """Create the profiles root, registry document and both backup tiers."""

    created: list[str] = []
    if not settings.profiles_root.exists():
        settings.profiles_root.mkdir(parents=True, exist_ok=True)
        created.append(f"Creating custom profiles directory: {settings.profiles_root}")
    if ProfileRegistry(settings.registry_file).initialise():
        created.append(f"Creating profiles file: {settings.registry_file}")
    for directory in (settings.backup_dir, settings.auto_backup_dir):
        directory.mkdir(parents=True, exist_ok=True)
    return created


__all__ = [
    "PROFILES_DIR_ENV",
    "REQUIRED_TOOLS",
    "RuntimeSettings",
    "ensure_app_directories",
    "load_settings",
]
