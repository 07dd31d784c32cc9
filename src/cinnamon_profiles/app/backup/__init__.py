"""Backup orchestration exports."""

from .service import BackupOrchestrator, MutationOutcome

__all__ = ["BackupOrchestrator", "MutationOutcome"]
