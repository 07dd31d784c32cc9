"""Snapshot capture/apply exports."""

from .service import ApplyReport, CaptureReport, SnapshotService

__all__ = ["ApplyReport", "CaptureReport", "SnapshotService"]
