"""Backup domain exports."""

from .catalog import BackupCatalog, select_backup
from .value_objects import TIER_AUTO, TIER_MANUAL, BackupEntry, backup_filename, parse_backup_timestamp

__all__ = [
    "BackupCatalog",
    "BackupEntry",
    "TIER_AUTO",
    "TIER_MANUAL",
    "backup_filename",
    "parse_backup_timestamp",
    "select_backup",
]
