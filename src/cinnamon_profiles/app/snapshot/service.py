"""Application service capturing live Cinnamon state into archives and back."""

from __future__ import annotations

import json
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, List

from cinnamon_profiles.domain.components import (
    COMPONENTS_MANIFEST_FILE,
    DCONF_SETTINGS_FILE,
    ComponentSelection,
)
from cinnamon_profiles.domain.errors import ApplyFailed, ArchiveReadError, ArchiveWriteError, CaptureFailed
from cinnamon_profiles.domain.timestamps import iso_timestamp
from cinnamon_profiles.ports.archiver import Archiver
from cinnamon_profiles.ports.settings_store import SettingsStore
from cinnamon_profiles.settings import RuntimeSettings

MANIFEST_VERSION = 1

BeforeMutate = Callable[[ComponentSelection], None]


@dataclass
class CaptureReport:
    archive: Path
    selection: ComponentSelection
    captured: List[str] = field(default_factory=list)
    settings_captured: bool = False
    warnings: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)


@dataclass
class ApplyReport:
    archive: Path
    selection: ComponentSelection
    restored: List[str] = field(default_factory=list)
    settings_restored: bool = False
    warnings: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)


@dataclass
class SnapshotService:
    """Capture and apply snapshots of the configured source locations."""

    settings: RuntimeSettings
    archiver: Archiver
    settings_store: SettingsStore

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def capture(self, destination: Path, selection: ComponentSelection | None = None) -> CaptureReport:
        selection = selection or self.settings.default_components
        report = CaptureReport(archive=destination, selection=selection)
        with self.scratch("cinnamon-profile-") as scratch:
            for location in self.settings.source_locations():
                if not selection.enables(location):
                    continue
                if copy_directory_contents(location.live_path, scratch / location.archive_name, report.warnings):
                    report.captured.append(location.archive_name)

            if selection.dconf:
                report.settings_captured = self._dump_settings(scratch / DCONF_SETTINGS_FILE, report)

            manifest = {
                "version": MANIFEST_VERSION,
                "capturedAt": iso_timestamp(),
                "components": selection.to_dict(),
            }
            (scratch / COMPONENTS_MANIFEST_FILE).write_text(json.dumps(manifest, indent=2), encoding="utf-8")

            try:
                report.warnings.extend(self.archiver.pack(scratch, destination))
            except ArchiveWriteError as exc:
                raise CaptureFailed(str(exc)) from exc
        return report

    def _dump_settings(self, target: Path, report: CaptureReport) -> bool:
        namespace = self.settings.dconf_namespace
        result = self.settings_store.dump(namespace)
        if not result.success or not result.output.strip():
            detail = f" ({result.error})" if result.error else ""
            report.warnings.append(
                f"Failed to dump dconf settings for {namespace}{detail}. Snapshot will not include them."
            )
            return False
        try:
            target.write_text(result.output, encoding="utf-8")
        except OSError as exc:
            report.warnings.append(f"Cannot write dconf dump {target.name}: {exc}")
            return False
        report.notes.append(f"dconf settings for {namespace} dumped successfully.")
        return True

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    def apply(
        self,
        archive: Path,
        selection: ComponentSelection | None = None,
        *,
        before_mutate: BeforeMutate | None = None,
    ) -> ApplyReport:
        """Restore live state from ``archive``.

        Extraction happens before anything destructive; ``before_mutate`` is
        called with the effective selection right before the live
        configuration directories are wiped.
        """

        if not archive.is_file():
            raise ApplyFailed(f"Archive file not found: {archive}")
        with self.scratch("cinnamon-restore-") as scratch:
            try:
                self.archiver.unpack(archive, scratch)
            except ArchiveReadError as exc:
                raise ApplyFailed(str(exc)) from exc

            recorded = self._read_manifest(scratch)
            effective = selection or recorded or self.settings.default_components
            report = ApplyReport(archive=archive, selection=effective)
            if recorded is None and selection is None:
                report.notes.append("Archive has no component manifest; using configured defaults.")
            if recorded is not None and selection is not None:
                for skipped in selection.disabled_against(recorded, self.settings.source_locations()):
                    report.warnings.append(f"'{skipped}' is present in the archive but disabled; it will not be restored.")

            if before_mutate is not None:
                before_mutate(effective)

            self._wipe_core_directories()

            for location in self.settings.source_locations():
                if not effective.enables(location):
                    continue
                source = scratch / location.archive_name
                if not source.is_dir():
                    report.warnings.append(f"No '{location.archive_name}' directory found in the archive.")
                    continue
                if copy_directory_contents(source, location.live_path, report.warnings):
                    report.restored.append(location.archive_name)

            if effective.dconf:
                report.settings_restored = self._restore_settings(scratch / DCONF_SETTINGS_FILE, report)
        return report

    def _read_manifest(self, scratch: Path) -> ComponentSelection | None:
        path = scratch / COMPONENTS_MANIFEST_FILE
        if not path.is_file():
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            return ComponentSelection.from_dict(payload.get("components") or {})
        except (OSError, ValueError, TypeError, AttributeError):
            return None

    def _wipe_core_directories(self) -> None:
        for directory in self.settings.core_dirs:
            try:
                if directory.is_dir():
                    empty_directory(directory)
                # emptying may remove a directory that was already empty
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise ApplyFailed(
                    f"Failed to clear {directory}: {exc}",
                    live_state_touched=True,
                ) from exc

    def _restore_settings(self, blob: Path, report: ApplyReport) -> bool:
        namespace = self.settings.dconf_namespace
        if not blob.is_file():
            report.notes.append(f"No dconf settings file ({DCONF_SETTINGS_FILE}) found in archive. Skipping dconf restore.")
            return False
        try:
            content = blob.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            report.warnings.append(f"Error reading dconf settings file {blob.name}: {exc}. Skipping dconf restore.")
            return False
        if not content.strip():
            report.notes.append(f"dconf settings file {blob.name} is empty. Skipping dconf load.")
            return False
        reset = self.settings_store.reset(namespace)
        if not reset.success:
            report.warnings.append(
                f"Failed to reset dconf namespace {namespace} ({reset.error}); stale keys may remain."
            )
        loaded = self.settings_store.load(namespace, content)
        if not loaded.success:
            report.warnings.append(f"Failed to restore dconf settings for {namespace} ({loaded.error}).")
            return False
        report.notes.append(f"dconf settings for {namespace} restored successfully.")
        return True

    # ------------------------------------------------------------------
    # Scratch helpers shared with export/import
    # ------------------------------------------------------------------

    @contextmanager
    def scratch(self, prefix: str) -> Iterator[Path]:
        with tempfile.TemporaryDirectory(prefix=prefix) as tmp:
            yield Path(tmp)

    @contextmanager
    def extracted(self, archive: Path, prefix: str = "cinnamon-extract-") -> Iterator[Path]:
        """Yield a scratch directory holding the contents of ``archive``."""

        with self.scratch(prefix) as scratch:
            self.archiver.unpack(archive, scratch)
            yield scratch


def copy_directory_contents(source: Path, destination: Path, warnings: List[str]) -> bool:
    """Copy the entries of ``source`` into ``destination``, overwriting.

    Per-entry failures are appended to ``warnings`` and skipped. Returns False
    only when ``source`` is missing or ``destination`` cannot be created.
    """

    if not source.is_dir():
        warnings.append(f"Source directory {source} does not exist. Skipping copy of its contents.")
        return False
    try:
        destination.mkdir(parents=True, exist_ok=True)
        entries = sorted(source.iterdir())
    except OSError as exc:
        warnings.append(f"Cannot copy {source} to {destination}: {exc}")
        return False
    for entry in entries:
        target = destination / entry.name
        try:
            if entry.is_dir() and not entry.is_symlink():
                if target.is_symlink() or target.is_file():
                    target.unlink()
                shutil.copytree(entry, target, symlinks=True, dirs_exist_ok=True)
            else:
                if target.is_symlink() or target.is_file():
                    target.unlink()
                elif target.is_dir():
                    shutil.rmtree(target)
                shutil.copy2(entry, target, follow_symlinks=False)
        except (OSError, shutil.Error) as exc:
            warnings.append(f"Failed to copy {entry}: {exc}")
    return True


def empty_directory(directory: Path) -> None:
    for child in directory.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


__all__ = [
    "ApplyReport",
    "BeforeMutate",
    "CaptureReport",
    "SnapshotService",
    "copy_directory_contents",
    "empty_directory",
]
