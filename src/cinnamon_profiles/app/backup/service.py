"""Backup orchestrator: capture-before-mutate around every destructive command."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from cinnamon_profiles.app.interaction import Confirm
from cinnamon_profiles.app.snapshot.service import ApplyReport, CaptureReport, SnapshotService
from cinnamon_profiles.domain.backup import BackupCatalog, BackupEntry, backup_filename
from cinnamon_profiles.domain.components import ComponentSelection
from cinnamon_profiles.domain.errors import (
    ApplyFailed,
    BackupNotFoundError,
    CaptureFailed,
    MutationFailed,
    NoActiveProfileError,
    OperationCancelled,
)
from cinnamon_profiles.domain.profile import Profile, ProfileRegistry, sanitize_name
from cinnamon_profiles.settings import RuntimeSettings

BACKUP_CREATED = "created"
BACKUP_FAILED = "failed"
BACKUP_SKIPPED = "skipped"
BACKUP_NOT_ATTEMPTED = "not-attempted"


@dataclass
class MutationOutcome:
    """What a switch/restore/update did, including the safety-net backup."""

    command: str
    target: str
    backup_path: Path | None = None
    backup_status: str = BACKUP_NOT_ATTEMPTED
    backup_warnings: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    apply: ApplyReport | None = None
    capture: CaptureReport | None = None
    profile: Profile | None = None


@dataclass
class BackupOrchestrator:
    """Sequences confirm, pre-mutate backup, apply and commit."""

    settings: RuntimeSettings
    registry: ProfileRegistry
    snapshots: SnapshotService
    confirm: Confirm

    @property
    def catalog(self) -> BackupCatalog:
        return BackupCatalog(self.settings.backup_dir, self.settings.auto_backup_dir)

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    def create_backup(self, directory: Path, prefix: str, selection: ComponentSelection | None = None) -> CaptureReport:
        directory.mkdir(parents=True, exist_ok=True)
        return self.snapshots.capture(directory / backup_filename(prefix), selection)

    def manual_backup(self, selection: ComponentSelection | None = None) -> CaptureReport:
        return self.create_backup(self.settings.backup_dir, "manual-backup", selection)

    def list_backups(self) -> List[BackupEntry]:
        return self.catalog.list()

    # ------------------------------------------------------------------
    # Mutating commands
    # ------------------------------------------------------------------

    def switch(self, name: str, selection: ComponentSelection | None = None, *, skip_backup: bool = False) -> MutationOutcome:
        profile = self.registry.get(name)
        if profile.active:
            question = f'Profile "{name}" is already active. Re-applying it will reset any unsaved changes. Continue?'
        else:
            question = f'Switching to profile "{name}" will override your current settings. Continue?'
        if not self.confirm(question):
            raise OperationCancelled("Profile switch cancelled by user.")

        outcome = MutationOutcome(command="switch", target=name)
        prefix = f"pre-switch-to-{sanitize_name(name)}"

        def before_mutate(effective: ComponentSelection) -> None:
            self._pre_mutate_backup(outcome, prefix, effective, skip_backup, "Profile switch aborted by user.")

        outcome.apply = self._apply(outcome, profile.archive, selection, before_mutate, f'Failed to switch to profile "{name}"')
        outcome.profile = self.registry.activate(name)
        return outcome

    def restore(self, archive: Path, selection: ComponentSelection | None = None, *, skip_backup: bool = False) -> MutationOutcome:
        if not archive.is_file():
            raise BackupNotFoundError(f"Archive file not found: {archive}")
        if not self.confirm(f'Restoring "{archive.name}" will override your current settings. Continue?'):
            raise OperationCancelled("Restore cancelled by user.")

        outcome = MutationOutcome(command="restore", target=archive.name)

        def before_mutate(effective: ComponentSelection) -> None:
            self._pre_mutate_backup(outcome, "pre-restore", effective, skip_backup, "Restore aborted by user.")

        outcome.apply = self._apply(outcome, archive, selection, before_mutate, "Failed to restore settings from backup")
        return outcome

    def update(self, selection: ComponentSelection | None = None, *, skip_backup: bool = False) -> MutationOutcome:
        """Recapture live state into the active profile's archive."""

        active = self.registry.find_active()
        if active is None:
            raise NoActiveProfileError("No active profile found. Create or switch to a profile first.")
        if not self.confirm(f'This will update "{active.name}" with your current settings. Continue?'):
            raise OperationCancelled("Update cancelled.")

        outcome = MutationOutcome(command="update", target=active.name)
        effective = selection or self.settings.default_components
        self._pre_mutate_backup(outcome, f"pre-update-{sanitize_name(active.name)}", effective, skip_backup, "Update cancelled.")
        try:
            # the archiver replaces the archive only once the new one is complete
            outcome.capture = self.snapshots.capture(active.archive, effective)
        except CaptureFailed as exc:
            raise MutationFailed(
                f'Failed to update profile "{active.name}": {exc}',
                backup_path=outcome.backup_path,
                backup_status=outcome.backup_status,
                possibly_inconsistent=False,
            ) from exc
        outcome.profile = self.registry.touch(active.name)
        return outcome

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply(self, outcome: MutationOutcome, archive: Path, selection, before_mutate, failure: str) -> ApplyReport:
        try:
            return self.snapshots.apply(archive, selection, before_mutate=before_mutate)
        except ApplyFailed as exc:
            raise MutationFailed(
                f"{failure}: {exc}",
                backup_path=outcome.backup_path,
                backup_status=outcome.backup_status,
                possibly_inconsistent=exc.live_state_touched,
            ) from exc

    def _pre_mutate_backup(
        self,
        outcome: MutationOutcome,
        prefix: str,
        selection: ComponentSelection,
        skip_backup: bool,
        abort_message: str,
    ) -> None:
        if skip_backup:
            outcome.backup_status = BACKUP_SKIPPED
            outcome.warnings.append("Automatic backup skipped; no safety net exists for this change.")
            return
        try:
            report = self.create_backup(self.settings.auto_backup_dir, prefix, selection)
        except (CaptureFailed, OSError) as exc:
            outcome.backup_status = BACKUP_FAILED
            outcome.warnings.append(f"Automatic backup failed: {exc}")
            if not self.confirm(f"Automatic backup failed. Continue {outcome.command} anyway? (Not Recommended)"):
                raise OperationCancelled(abort_message) from exc
            outcome.warnings.append(f"Proceeding with {outcome.command} despite backup failure.")
            return
        outcome.backup_path = report.archive
        outcome.backup_status = BACKUP_CREATED
        outcome.backup_warnings.extend(report.warnings)


__all__ = [
    "BACKUP_CREATED",
    "BACKUP_FAILED",
    "BACKUP_NOT_ATTEMPTED",
    "BACKUP_SKIPPED",
    "BackupOrchestrator",
    "MutationOutcome",
]
