"""Value objects describing registered profiles."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict

from cinnamon_profiles.domain.errors import InvalidProfileNameError
from cinnamon_profiles.domain.timestamps import iso_timestamp

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def sanitize_name(value: str) -> str:
    """Replace every character outside ``[A-Za-z0-9_-]`` with ``_``."""

    cleaned = _UNSAFE_CHARS.sub("_", value.strip())
    if not cleaned:
        raise InvalidProfileNameError("Profile name must contain at least one character.")
    return cleaned


@dataclass(frozen=True)
class Profile:
    """A named snapshot registered in ``profiles.json``."""

    name: str
    active: bool
    last_modified: str
    archive: Path

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "active": self.active,
            "lastModified": self.last_modified,
            "zipFile": str(self.archive),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Profile":
        return cls(
            name=str(data["name"]),
            active=bool(data["active"]),
            last_modified=str(data["lastModified"]),
            archive=Path(data["zipFile"]),
        )

    def activated(self, active: bool) -> "Profile":
        return replace(self, active=active)

    def touched(self) -> "Profile":
        return replace(self, last_modified=iso_timestamp())


__all__ = ["Profile", "sanitize_name"]
