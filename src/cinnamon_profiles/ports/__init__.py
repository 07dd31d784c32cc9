"""Contracts for the external collaborators used by the snapshot services."""

from .archiver import Archiver
from .settings_store import SettingsResult, SettingsStore

__all__ = ["Archiver", "SettingsResult", "SettingsStore"]
