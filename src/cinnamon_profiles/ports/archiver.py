"""Port definition for producing and extracting archives."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List


class Archiver(ABC):
    """Abstraction over an external compress/decompress capability."""

    @abstractmethod
    def pack(self, source_dir: Path, destination: Path) -> List[str]:
        """Archive the contents of ``source_dir`` (not the directory itself).

        Returns warnings (an empty source still yields a valid archive).
        Raises ``ArchiveWriteError`` on failure.
        """

    @abstractmethod
    def unpack(self, archive: Path, destination_dir: Path) -> None:
        """Extract with overwrite into ``destination_dir``, creating it if absent.

        Raises ``ArchiveReadError`` on failure.
        """


__all__ = ["Archiver"]
