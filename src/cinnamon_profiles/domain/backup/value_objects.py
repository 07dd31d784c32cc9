"""Backup archives are identified purely by tier directory and filename."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from cinnamon_profiles.domain.timestamps import filesystem_timestamp, parse_filesystem_timestamp

TIER_MANUAL = "manual"
TIER_AUTO = "auto"

ARCHIVE_SUFFIX = ".zip"

_STAMP_SUFFIX = re.compile(r"(\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3}Z)\.zip$")


def backup_filename(prefix: str, moment: datetime | None = None) -> str:
    return f"{prefix}-{filesystem_timestamp(moment)}{ARCHIVE_SUFFIX}"


def parse_backup_timestamp(filename: str) -> datetime | None:
    match = _STAMP_SUFFIX.search(filename)
    if match is None:
        return None
    return parse_filesystem_timestamp(match.group(1))


@dataclass(frozen=True)
class BackupEntry:
    path: Path
    tier: str
    created_at: datetime | None

    @property
    def filename(self) -> str:
        return self.path.name

    @classmethod
    def from_path(cls, path: Path, tier: str) -> "BackupEntry":
        return cls(path=path, tier=tier, created_at=parse_backup_timestamp(path.name))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "path": str(self.path),
            "tier": self.tier,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


__all__ = [
    "ARCHIVE_SUFFIX",
    "BackupEntry",
    "TIER_AUTO",
    "TIER_MANUAL",
    "backup_filename",
    "parse_backup_timestamp",
]
