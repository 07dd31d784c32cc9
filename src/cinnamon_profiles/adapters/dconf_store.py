"""Settings adapter backed by the ``dconf`` command-line tool."""

from __future__ import annotations

from cinnamon_profiles.adapters.process import run_command
from cinnamon_profiles.ports.settings_store import SettingsResult, SettingsStore


class DconfSettingsStore(SettingsStore):
    def __init__(self, command: str = "dconf") -> None:
        self._command = command

    def dump(self, namespace: str) -> SettingsResult:
        result = run_command([self._command, "dump", namespace])
        return SettingsResult(success=result.success, output=result.stdout, error=result.stderr.strip())

    def reset(self, namespace: str) -> SettingsResult:
        result = run_command([self._command, "reset", "-f", namespace])
        return SettingsResult(success=result.success, error=result.stderr.strip())

    def load(self, namespace: str, text: str) -> SettingsResult:
        result = run_command([self._command, "load", namespace], stdin_text=text)
        return SettingsResult(success=result.success, error=result.stderr.strip())


__all__ = ["DconfSettingsStore"]
