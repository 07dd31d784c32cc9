"""Archive adapter backed by the ``zip``/``unzip`` command-line tools."""

from __future__ import annotations

import os
import zipfile
from pathlib import Path
from typing import List

from cinnamon_profiles.adapters.process import run_command
from cinnamon_profiles.domain.errors import ArchiveReadError, ArchiveWriteError
from cinnamon_profiles.ports.archiver import Archiver

# unzip exits 1 when it only printed warnings, e.g. for an archive with no entries
UNZIP_OK_CODES = (0, 1)


class ZipArchiver(Archiver):
    """Packs into a hidden sibling file and moves it over the destination.

    ``zip -r`` merges into an existing archive, so a fresh file is always
    written; a failed pack leaves any previous destination untouched.
    """

    def __init__(self, zip_command: str = "zip", unzip_command: str = "unzip") -> None:
        self._zip = zip_command
        self._unzip = unzip_command

    def pack(self, source_dir: Path, destination: Path) -> List[str]:
        warnings: list[str] = []
        try:
            is_empty = not any(source_dir.iterdir())
        except OSError as exc:
            raise ArchiveWriteError(f"Error reading source directory {source_dir} for zipping: {exc}") from exc

        destination = destination.resolve()
        destination.parent.mkdir(parents=True, exist_ok=True)
        partial = destination.with_name(f".partial-{destination.name}")
        if partial.exists():
            partial.unlink()
        try:
            if is_empty:
                warnings.append(f"Source directory {source_dir} for zipping is empty. Archive will be empty.")
                # zip refuses to create an archive with no entries
                with zipfile.ZipFile(partial, "w"):
                    pass
            else:
                result = run_command([self._zip, "-rqy", str(partial), "."], cwd=source_dir)
                if not result.success:
                    raise ArchiveWriteError(
                        f"Failed to create archive at {destination} (zip exit {result.code}): {result.stderr.strip()}"
                    )
            os.replace(partial, destination)
        except OSError as exc:
            raise ArchiveWriteError(f"Failed to create archive at {destination}: {exc}") from exc
        finally:
            if partial.exists():
                partial.unlink()
        return warnings

    def unpack(self, archive: Path, destination_dir: Path) -> None:
        try:
            destination_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArchiveReadError(f"Cannot create extraction directory {destination_dir}: {exc}") from exc
        result = run_command([self._unzip, "-oq", str(archive), "-d", str(destination_dir)])
        if result.code not in UNZIP_OK_CODES:
            raise ArchiveReadError(
                f"Failed to extract archive {archive} (unzip exit {result.code}): {result.stderr.strip()}"
            )


__all__ = ["UNZIP_OK_CODES", "ZipArchiver"]
