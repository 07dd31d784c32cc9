"""Application service for registering, exporting and importing profiles."""

from __future__ import annotations

import json
import re
import shutil
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from packaging.version import InvalidVersion, Version

from cinnamon_profiles import PROGRAM_NAME, __version__
from cinnamon_profiles.app.interaction import Confirm, Prompt
from cinnamon_profiles.app.snapshot.service import CaptureReport, SnapshotService
from cinnamon_profiles.domain.components import ComponentSelection
from cinnamon_profiles.domain.errors import (
    BackupNotFoundError,
    DuplicateProfileError,
    InvalidProfileNameError,
    OperationCancelled,
    ProfileManagerError,
)
from cinnamon_profiles.domain.profile import Profile, ProfileRegistry, RemovedProfile, sanitize_name
from cinnamon_profiles.domain.timestamps import epoch_millis, filesystem_timestamp, iso_timestamp
from cinnamon_profiles.settings import RuntimeSettings

EXPORT_METADATA_FILE = "cinnamon-profile-manager-metadata.json"

_EXPORT_PREFIX = re.compile(r"^cinnamon-profile-", re.IGNORECASE)
_EXPORT_SUFFIX = re.compile(r"-export-\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3}Z$", re.IGNORECASE)


@dataclass
class CreateResult:
    profile: Profile
    capture: CaptureReport
    requested_name: str


@dataclass
class ExportResult:
    path: Path
    warnings: List[str] = field(default_factory=list)


@dataclass
class ImportResult:
    profile: Profile
    replaced: bool = False
    warnings: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)


@dataclass
class ProfileService:
    """High-level operations on registered profiles."""

    settings: RuntimeSettings
    registry: ProfileRegistry
    snapshots: SnapshotService

    def list(self) -> List[Profile]:
        return self.registry.list()

    def create(self, name: str, selection: ComponentSelection | None = None) -> CreateResult:
        safe_name = sanitize_name(name)
        if self.registry.find_by_name(safe_name) is not None:
            raise DuplicateProfileError(safe_name)
        archive = self._new_archive_path(safe_name)
        report = self.snapshots.capture(archive, selection)
        try:
            profile = self.registry.create(safe_name, archive, active=True)
        except DuplicateProfileError:
            archive.unlink(missing_ok=True)
            raise
        return CreateResult(profile=profile, capture=report, requested_name=name)

    def delete(self, name: str) -> RemovedProfile:
        return self.registry.remove(name)

    def rename(self, old_name: str, new_name: str) -> Profile:
        return self.registry.rename(old_name, sanitize_name(new_name))

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export(self, name: str, output_dir: Path | None = None) -> ExportResult:
        profile = self.registry.get(name)
        target_dir = output_dir or self._default_export_dir()
        export_path = target_dir / f"cinnamon-profile-{sanitize_name(name)}-export-{filesystem_timestamp()}.zip"
        result = ExportResult(path=export_path)
        metadata = {
            "appName": PROGRAM_NAME,
            "appVersion": __version__,
            "profileName": profile.name,
            "exportedAt": iso_timestamp(),
            "originalCreatedAt": profile.last_modified,
            "description": f"Exported Cinnamon desktop profile: {profile.name}",
        }
        with self.snapshots.extracted(profile.archive, prefix="cinnamon-export-") as scratch:
            (scratch / EXPORT_METADATA_FILE).write_text(json.dumps(metadata, indent=2), encoding="utf-8")
            result.warnings.extend(self.snapshots.archiver.pack(scratch, export_path))
        return result

    def import_profile(
        self,
        source: Path,
        *,
        name: str | None = None,
        prompt: Prompt | None = None,
        confirm: Confirm | None = None,
        force: bool = False,
    ) -> ImportResult:
        if not source.is_file():
            raise BackupNotFoundError(f"File not found: {source}")
        warnings: list[str] = []
        notes: list[str] = []
        with self.snapshots.extracted(source, prefix="cinnamon-import-") as scratch:
            default_name = self._derive_import_name(source, scratch / EXPORT_METADATA_FILE, warnings, notes)
            chosen = name
            if chosen is None and prompt is not None:
                chosen = prompt(f'Enter name for this imported profile (default: "{default_name}"):', default_name)
            profile_name = _safe_or_none(chosen) or default_name

            existing = self.registry.find_by_name(profile_name)
            if existing is not None and not force:
                if confirm is None or not confirm(f'A profile named "{profile_name}" already exists. Overwrite?'):
                    raise OperationCancelled("Import cancelled.")

            metadata_file = scratch / EXPORT_METADATA_FILE
            if metadata_file.exists():
                metadata_file.unlink()
            archive = self._new_archive_path(profile_name)
            warnings.extend(self.snapshots.archiver.pack(scratch, archive))

        if existing is not None:
            removed = self.registry.remove(profile_name)
            if removed.warning:
                warnings.append(removed.warning)
        profile = self.registry.create(profile_name, archive, active=False)
        return ImportResult(profile=profile, replaced=existing is not None, warnings=warnings, notes=notes)

    def _derive_import_name(self, source: Path, metadata_path: Path, warnings: List[str], notes: List[str]) -> str:
        stem = source.name[: -len(".zip")] if source.name.lower().endswith(".zip") else source.name
        stem = _EXPORT_SUFFIX.sub("", _EXPORT_PREFIX.sub("", stem))
        derived = _safe_or_none(stem) or f"imported-{epoch_millis()}"
        if not metadata_path.exists():
            return derived
        try:
            metadata = json.loads(metadata_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            warnings.append(f"Could not parse metadata file: {exc}")
            return derived
        if not isinstance(metadata, dict):
            warnings.append("Could not parse metadata file: expected a JSON object")
            return derived
        self._check_exporter_version(metadata.get("appVersion"), warnings)
        original = metadata.get("profileName")
        if isinstance(original, str) and _safe_or_none(original):
            derived = sanitize_name(original)
            notes.append(f'Found metadata. Original profile name (sanitized): "{derived}"')
        return derived

    @staticmethod
    def _check_exporter_version(raw: object, warnings: List[str]) -> None:
        if raw is None:
            return
        try:
            exported = Version(str(raw))
        except InvalidVersion:
            warnings.append(f"Export metadata has an unrecognised appVersion '{raw}'.")
            return
        if exported.major > Version(__version__).major:
            warnings.append(
                f"Profile was exported by {PROGRAM_NAME} {exported}, newer than this version ({__version__})."
            )

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset(self, confirm: Confirm) -> Path:
        root = self.settings.profiles_root
        if not confirm("Are you absolutely sure you want to continue?"):
            raise OperationCancelled("Reset aborted.")
        if not confirm(f"This action CANNOT be undone. All data in {root} will be lost. Delete everything?"):
            raise OperationCancelled("Reset aborted.")
        try:
            shutil.rmtree(root)
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise ProfileManagerError(
                f"Error during reset: {exc}. The application data directory might be in an inconsistent state."
            ) from exc
        return root

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _new_archive_path(self, name: str) -> Path:
        return self.settings.profiles_root / f"{name}-{uuid.uuid4()}.zip"

    def _default_export_dir(self) -> Path:
        downloads = self.settings.downloads_dir
        return downloads if downloads.is_dir() else self.settings.home_dir


def _safe_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        return sanitize_name(value)
    except InvalidProfileNameError:
        return None


__all__ = [
    "CreateResult",
    "EXPORT_METADATA_FILE",
    "ExportResult",
    "ImportResult",
    "ProfileService",
]
