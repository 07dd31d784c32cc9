"""Port definition for a key-value settings namespace (dconf)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class SettingsResult:
    success: bool
    output: str = ""
    error: str = ""


class SettingsStore(ABC):
    """Dump, reset and load one settings namespace.

    Failures are reported through :class:`SettingsResult` and are never fatal
    to the caller.
    """

    @abstractmethod
    def dump(self, namespace: str) -> SettingsResult:
        """Return the namespace serialised as text in ``output``."""

    @abstractmethod
    def reset(self, namespace: str) -> SettingsResult:
        """Remove every key below ``namespace``."""

    @abstractmethod
    def load(self, namespace: str, text: str) -> SettingsResult:
        """Load ``text`` (as produced by :meth:`dump`) into ``namespace``."""


__all__ = ["SettingsResult", "SettingsStore"]
