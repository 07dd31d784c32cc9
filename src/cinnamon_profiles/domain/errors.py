"""Error taxonomy shared by every layer of the profile manager."""

from __future__ import annotations

from pathlib import Path


class ProfileManagerError(RuntimeError):
    """Base class for failures reported to the operator."""


class StartupError(ProfileManagerError):
    """Raised before any state is touched (missing tool, unset HOME, bad config)."""


class ConfigError(StartupError):
    """Raised when config.yaml cannot be parsed or contains unknown keys."""


class OperationCancelled(ProfileManagerError):
    """Raised when the operator declines a confirmation. Never an error exit."""


class ProfileNotFoundError(ProfileManagerError):
    def __init__(self, name: str) -> None:
        super().__init__(f'Profile "{name}" not found.')
        self.name = name


class NoActiveProfileError(ProfileManagerError):
    """Raised by update when no profile is marked active."""


class BackupNotFoundError(ProfileManagerError):
    """Raised when a backup or import file path does not exist."""


class DuplicateProfileError(ProfileManagerError):
    def __init__(self, name: str) -> None:
        super().__init__(f'Profile with name "{name}" already exists.')
        self.name = name


class InvalidProfileNameError(ProfileManagerError):
    """Raised when a profile name is empty after sanitising."""


class InvalidSelectionError(ProfileManagerError):
    """Raised for out-of-range or non-numeric backup selections."""


class ArchiveWriteError(ProfileManagerError):
    """Raised when the archive tool cannot produce an archive."""


class ArchiveReadError(ProfileManagerError):
    """Raised when the archive tool cannot extract an archive."""


class CaptureFailed(ProfileManagerError):
    """Raised when a capture could not produce its archive."""


class ApplyFailed(ProfileManagerError):
    """Raised when an apply could not complete.

    ``live_state_touched`` is False when the failure happened before the live
    configuration directories were wiped.
    """

    def __init__(self, message: str, *, live_state_touched: bool = False) -> None:
        super().__init__(message)
        self.live_state_touched = live_state_touched


class MutationFailed(ProfileManagerError):
    """Raised by the backup orchestrator when a mutating command fails.

    Carries the pre-mutate backup (if any) so the operator can recover manually.
    """

    def __init__(
        self,
        message: str,
        *,
        backup_path: Path | None,
        backup_status: str,
        possibly_inconsistent: bool,
    ) -> None:
        super().__init__(message)
        self.backup_path = backup_path
        self.backup_status = backup_status
        self.possibly_inconsistent = possibly_inconsistent


__all__ = [
    "ApplyFailed",
    "ArchiveReadError",
    "ArchiveWriteError",
    "BackupNotFoundError",
    "CaptureFailed",
    "ConfigError",
    "DuplicateProfileError",
    "InvalidProfileNameError",
    "InvalidSelectionError",
    "MutationFailed",
    "NoActiveProfileError",
    "OperationCancelled",
    "ProfileManagerError",
    "ProfileNotFoundError",
    "StartupError",
]
