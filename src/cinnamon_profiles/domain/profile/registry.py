"""Persistence of the profile registry (``profiles.json``)."""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List

import jsonschema

from cinnamon_profiles.domain.errors import DuplicateProfileError, ProfileNotFoundError
from cinnamon_profiles.domain.timestamps import epoch_millis, iso_timestamp
from cinnamon_profiles.resources import load_schema

from .value_objects import Profile


@dataclass(frozen=True)
class RemovedProfile:
    profile: Profile
    archive_deleted: bool
    warning: str | None = None


class ProfileRegistry:
    """Ordered collection of profiles with at most one active entry.

    Every mutation reads the whole document, edits it in memory and rewrites it.
    There is no inter-process lock: concurrent invocations against the same
    registry are last-writer-wins.
    """

    def __init__(self, registry_path: Path) -> None:
        self._path = registry_path
        self.recovered: Path | None = None
        self.warnings: List[str] = []

    @property
    def path(self) -> Path:
        return self._path

    def initialise(self) -> bool:
        """Write an empty registry when none exists; report whether one was created."""

        if self._path.exists():
            return False
        self._write([])
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list(self) -> List[Profile]:
        return self._read()

    def find_by_name(self, name: str) -> Profile | None:
        return next((profile for profile in self._read() if profile.name == name), None)

    def find_active(self) -> Profile | None:
        return next((profile for profile in self._read() if profile.active), None)

    def get(self, name: str) -> Profile:
        profile = self.find_by_name(name)
        if profile is None:
            raise ProfileNotFoundError(name)
        return profile

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, name: str, archive: Path, *, active: bool = True) -> Profile:
        profiles = self._read()
        if any(profile.name == name for profile in profiles):
            raise DuplicateProfileError(name)
        if active:
            profiles = [profile.activated(False) for profile in profiles]
        created = Profile(name=name, active=active, last_modified=iso_timestamp(), archive=archive)
        profiles.append(created)
        self._write(profiles)
        return created

    def activate(self, name: str) -> Profile:
        """Mark ``name`` as the only active profile and bump its timestamp."""

        profiles = self._read()
        self._index_of(profiles, name)
        updated = [
            profile.activated(True).touched() if profile.name == name else profile.activated(False)
            for profile in profiles
        ]
        self._write(updated)
        return updated[self._index_of(updated, name)]

    def touch(self, name: str) -> Profile:
        profiles = self._read()
        index = self._index_of(profiles, name)
        profiles[index] = profiles[index].touched()
        self._write(profiles)
        return profiles[index]

    def rename(self, old_name: str, new_name: str) -> Profile:
        profiles = self._read()
        index = self._index_of(profiles, old_name)
        if old_name != new_name and any(profile.name == new_name for profile in profiles):
            raise DuplicateProfileError(new_name)
        current = profiles[index]
        profiles[index] = Profile(
            name=new_name,
            active=current.active,
            last_modified=current.last_modified,
            archive=current.archive,
        )
        self._write(profiles)
        return profiles[index]

    def remove(self, name: str) -> RemovedProfile:
        """Drop ``name``; its archive is deleted best-effort first."""

        profiles = self._read()
        index = self._index_of(profiles, name)
        profile = profiles.pop(index)
        archive_deleted = False
        warning = None
        try:
            profile.archive.unlink()
            archive_deleted = True
        except FileNotFoundError:
            warning = f"Profile archive not found: {profile.archive.name}"
        except OSError as exc:
            warning = f"Error deleting profile archive {profile.archive.name}: {exc}"
        self._write(profiles)
        return RemovedProfile(profile=profile, archive_deleted=archive_deleted, warning=warning)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _index_of(profiles: List[Profile], name: str) -> int:
        for index, profile in enumerate(profiles):
            if profile.name == name:
                return index
        raise ProfileNotFoundError(name)

    def _read(self) -> List[Profile]:
        if not self._path.exists():
            return []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            jsonschema.validate(raw, load_schema("registry"))
            names = [item["name"] for item in raw]
            if len(names) != len(set(names)):
                raise ValueError("duplicate profile names")
            if sum(1 for item in raw if item["active"]) > 1:
                raise ValueError("more than one active profile")
        except (json.JSONDecodeError, UnicodeDecodeError, jsonschema.ValidationError, ValueError) as exc:
            self._quarantine(exc)
            return []
        return [Profile.from_dict(item) for item in raw]

    def _quarantine(self, reason: Exception) -> None:
        quarantine = self._path.with_name(f"{self._path.name}.corrupted-{epoch_millis()}")
        self.warnings.append(f"Error parsing {self._path.name}: {reason}.")
        try:
            shutil.copy2(self._path, quarantine)
            self.recovered = quarantine
            self.warnings.append(f"Corrupted registry preserved as {quarantine.name}; starting with an empty registry.")
        except OSError as exc:
            self.warnings.append(f"Failed to preserve corrupted {self._path.name}: {exc}")
        self._write([])

    def _write(self, profiles: List[Profile]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps([profile.to_dict() for profile in profiles], indent=2)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=str(self._path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(data)
            os.replace(tmp_path, self._path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)


__all__ = ["ProfileRegistry", "RemovedProfile"]
