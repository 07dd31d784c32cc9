"""Read-only enumeration and selection of backups across both tiers."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from cinnamon_profiles.domain.errors import InvalidSelectionError

from .value_objects import ARCHIVE_SUFFIX, TIER_AUTO, TIER_MANUAL, BackupEntry


@dataclass(frozen=True)
class BackupCatalog:
    manual_dir: Path
    auto_dir: Path

    def list(self) -> List[BackupEntry]:
        """Newest first; entries without a parseable timestamp last, by filename."""

        entries: list[BackupEntry] = []
        for directory, tier in ((self.manual_dir, TIER_MANUAL), (self.auto_dir, TIER_AUTO)):
            if not directory.is_dir():
                continue
            for path in directory.iterdir():
                if path.is_file() and path.name.endswith(ARCHIVE_SUFFIX):
                    entries.append(BackupEntry.from_path(path, tier))
        dated = sorted(
            (entry for entry in entries if entry.created_at is not None),
            key=lambda entry: (entry.created_at, entry.filename),
            reverse=True,
        )
        undated = sorted((entry for entry in entries if entry.created_at is None), key=lambda entry: entry.filename)
        return dated + undated


def select_backup(entries: Sequence[BackupEntry], raw: str | None) -> BackupEntry | None:
    """Resolve a 1-based index typed by the operator.

    ``0``, an empty answer or ``None`` cancel. Anything else out of range is an
    error; there is no retry loop.
    """

    text = (raw or "").strip()
    if not text or text == "0":
        return None
    try:
        index = int(text)
    except ValueError:
        raise InvalidSelectionError(
            f"Invalid selection. Please enter a number between 0 and {len(entries)}."
        ) from None
    if index < 0 or index > len(entries):
        raise InvalidSelectionError(f"Invalid selection. Please enter a number between 0 and {len(entries)}.")
    if index == 0:
        return None
    return entries[index - 1]


__all__ = ["BackupCatalog", "select_backup"]
