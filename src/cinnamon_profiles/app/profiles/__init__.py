"""Profile management exports."""

from .service import CreateResult, ExportResult, ImportResult, ProfileService

__all__ = ["CreateResult", "ExportResult", "ImportResult", "ProfileService"]
