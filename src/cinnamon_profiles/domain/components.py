"""Component selection and the table of captured source locations."""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Tuple

CATEGORY_CORE = "core"
ASSET_CATEGORIES = ("themes", "icons", "fonts")
SCOPE_USER = "user"
SCOPE_SYSTEM = "system"

COMPONENT_KEYS = ("themes", "icons", "fonts", "dconf", "user_scope", "system_scope")

DCONF_SETTINGS_FILE = "org.cinnamon.dconf.ini"
COMPONENTS_MANIFEST_FILE = "cinnamon-profile-manager-components.json"


@dataclass(frozen=True)
class SourceLocation:
    """A live directory captured into a named subdirectory of an archive."""

    key: str
    archive_name: str
    live_path: Path
    category: str
    scope: str = SCOPE_USER

    @property
    def core(self) -> bool:
        return self.category == CATEGORY_CORE


@dataclass(frozen=True)
class ComponentSelection:
    """Per-operation toggles deciding which source locations participate.

    File-based Cinnamon settings (the two core directories) are always included.
    """

    themes: bool = True
    icons: bool = True
    fonts: bool = True
    dconf: bool = True
    user_scope: bool = True
    system_scope: bool = False

    def enables(self, location: SourceLocation) -> bool:
        if location.core:
            return True
        if not getattr(self, location.category):
            return False
        if location.scope == SCOPE_SYSTEM:
            return self.system_scope
        return self.user_scope

    def with_overrides(self, overrides: Mapping[str, bool]) -> "ComponentSelection":
        unknown = set(overrides) - set(COMPONENT_KEYS)
        if unknown:
            raise ValueError(f"Unknown component keys: {', '.join(sorted(unknown))}")
        return replace(self, **{key: bool(value) for key, value in overrides.items()})

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ComponentSelection":
        return cls().with_overrides({key: data[key] for key in COMPONENT_KEYS if key in data})

    def disabled_against(self, recorded: "ComponentSelection", locations: Iterable[SourceLocation]) -> list[str]:
        """Return archive names ``recorded`` captured but this selection skips."""

        skipped = [
            location.archive_name
            for location in locations
            if recorded.enables(location) and not self.enables(location)
        ]
        if recorded.dconf and not self.dconf:
            skipped.append(DCONF_SETTINGS_FILE)
        return skipped


def build_location_table(home: Path, system_data_dir: Path) -> Tuple[SourceLocation, ...]:
    """Return every location a capture or apply may visit, core ones first."""

    table = [
        SourceLocation("share", "share", home / ".local" / "share" / "cinnamon", CATEGORY_CORE),
        SourceLocation("config", "config", home / ".config" / "cinnamon", CATEGORY_CORE),
    ]
    for category in ASSET_CATEGORIES:
        table.append(SourceLocation(f"{category}-user", category, home / f".{category}", category, SCOPE_USER))
    for category in ASSET_CATEGORIES:
        table.append(
            SourceLocation(
                f"{category}-system",
                f"system-{category}",
                system_data_dir / category,
                category,
                SCOPE_SYSTEM,
            )
        )
    return tuple(table)


__all__ = [
    "ASSET_CATEGORIES",
    "COMPONENTS_MANIFEST_FILE",
    "COMPONENT_KEYS",
    "ComponentSelection",
    "DCONF_SETTINGS_FILE",
    "SourceLocation",
    "build_location_table",
]
