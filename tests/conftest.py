from __future__ import annotations

import os
import sys
import zipfile
from pathlib import Path
from typing import List

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from cinnamon_profiles.app.backup.service import BackupOrchestrator  # noqa: E402
from cinnamon_profiles.app.profiles.service import ProfileService  # noqa: E402
from cinnamon_profiles.app.snapshot.service import SnapshotService  # noqa: E402
from cinnamon_profiles.domain.errors import ArchiveReadError, ArchiveWriteError  # noqa: E402
from cinnamon_profiles.domain.profile import ProfileRegistry  # noqa: E402
from cinnamon_profiles.ports.archiver import Archiver  # noqa: E402
from cinnamon_profiles.ports.settings_store import SettingsResult, SettingsStore  # noqa: E402
from cinnamon_profiles.settings import RuntimeSettings, ensure_app_directories  # noqa: E402


class FakeArchiver(Archiver):
    """zipfile-backed archiver so tests do not need the zip/unzip binaries."""

    def __init__(self) -> None:
        self.fail_pack = False
        self.fail_unpack = False
        self.packed: List[Path] = []

    def pack(self, source_dir: Path, destination: Path) -> List[str]:
        if self.fail_pack:
            raise ArchiveWriteError(f"Failed to create archive at {destination}: disk full")
        warnings: list[str] = []
        if not any(source_dir.iterdir()):
            warnings.append(f"Source directory {source_dir} for zipping is empty. Archive will be empty.")
        destination.parent.mkdir(parents=True, exist_ok=True)
        partial = destination.with_name(f".partial-{destination.name}")
        with zipfile.ZipFile(partial, "w") as zf:
            for path in sorted(source_dir.rglob("*")):
                zf.write(path, path.relative_to(source_dir).as_posix())
        os.replace(partial, destination)
        self.packed.append(destination)
        return warnings

    def unpack(self, archive: Path, destination_dir: Path) -> None:
        if self.fail_unpack:
            raise ArchiveReadError(f"Failed to extract archive {archive}: corrupt")
        try:
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(destination_dir)
        except (zipfile.BadZipFile, OSError) as exc:
            raise ArchiveReadError(f"Failed to extract archive {archive}: {exc}") from exc


class FakeSettingsStore(SettingsStore):
    """In-memory dconf: one text blob per namespace."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_dump = False
        self.fail_reset = False
        self.fail_load = False

    def dump(self, namespace: str) -> SettingsResult:
        self.calls.append(("dump", namespace))
        if self.fail_dump:
            return SettingsResult(success=False, error="dconf unavailable")
        return SettingsResult(success=True, output=self.values.get(namespace, ""))

    def reset(self, namespace: str) -> SettingsResult:
        self.calls.append(("reset", namespace))
        if self.fail_reset:
            return SettingsResult(success=False, error="permission denied")
        self.values.pop(namespace, None)
        return SettingsResult(success=True)

    def load(self, namespace: str, text: str) -> SettingsResult:
        self.calls.append(("load", namespace))
        if self.fail_load:
            return SettingsResult(success=False, error="malformed keyfile")
        self.values[namespace] = text
        return SettingsResult(success=True)


class Confirmer:
    """Scripted answers for confirmations; defaults to yes once exhausted."""

    def __init__(self, *answers: bool) -> None:
        self.answers = list(answers)
        self.questions: list[str] = []

    def __call__(self, message: str) -> bool:
        self.questions.append(message)
        if self.answers:
            return self.answers.pop(0)
        return True


class LiveState:
    """Writes and reads the live Cinnamon locations below a fake HOME."""

    def __init__(self, settings: RuntimeSettings, store: FakeSettingsStore) -> None:
        self.settings = settings
        self.store = store
        self.share, self.config = settings.core_dirs
        self.themes = settings.home_dir / ".themes"

    def seed(self, marker: str) -> None:
        (self.share / "applets").mkdir(parents=True, exist_ok=True)
        (self.share / "applets" / "menu.json").write_text(marker, encoding="utf-8")
        self.config.mkdir(parents=True, exist_ok=True)
        (self.config / "panel.json").write_text(marker, encoding="utf-8")
        (self.themes / marker).mkdir(parents=True, exist_ok=True)
        (self.themes / marker / "index.theme").write_text(marker, encoding="utf-8")
        self.store.values[self.settings.dconf_namespace] = f"[/]\nmarker='{marker}'\n"

    def marker(self) -> str | None:
        path = self.config / "panel.json"
        return path.read_text(encoding="utf-8") if path.exists() else None

    def dconf(self) -> str | None:
        return self.store.values.get(self.settings.dconf_namespace)


@pytest.fixture()
def runtime_settings(tmp_path: Path) -> RuntimeSettings:
    home = tmp_path / "home"
    home.mkdir()
    settings = RuntimeSettings(
        home_dir=home,
        profiles_root=home / ".cinnamon-profiles",
        system_data_dir=tmp_path / "usr-share",
    )
    ensure_app_directories(settings)
    return settings


@pytest.fixture()
def archiver() -> FakeArchiver:
    return FakeArchiver()


@pytest.fixture()
def settings_store() -> FakeSettingsStore:
    return FakeSettingsStore()


@pytest.fixture()
def live(runtime_settings: RuntimeSettings, settings_store: FakeSettingsStore) -> LiveState:
    return LiveState(runtime_settings, settings_store)


@pytest.fixture()
def snapshots(runtime_settings: RuntimeSettings, archiver: FakeArchiver, settings_store: FakeSettingsStore) -> SnapshotService:
    return SnapshotService(runtime_settings, archiver, settings_store)


@pytest.fixture()
def registry(runtime_settings: RuntimeSettings) -> ProfileRegistry:
    return ProfileRegistry(runtime_settings.registry_file)


@pytest.fixture()
def profile_service(runtime_settings: RuntimeSettings, registry: ProfileRegistry, snapshots: SnapshotService) -> ProfileService:
    return ProfileService(runtime_settings, registry, snapshots)


@pytest.fixture()
def confirmer() -> Confirmer:
    return Confirmer()


@pytest.fixture()
def orchestrator(
    runtime_settings: RuntimeSettings,
    registry: ProfileRegistry,
    snapshots: SnapshotService,
    confirmer: Confirmer,
) -> BackupOrchestrator:
    return BackupOrchestrator(runtime_settings, registry, snapshots, confirmer)

