from __future__ import annotations

import json
import zipfile
from pathlib import Path

import pytest

from cinnamon_profiles.app.profiles.service import EXPORT_METADATA_FILE, ProfileService
from cinnamon_profiles.domain.errors import (
    BackupNotFoundError,
    DuplicateProfileError,
    OperationCancelled,
    ProfileNotFoundError,
)
from cinnamon_profiles.settings import RuntimeSettings


def test_create_registers_active_profile_with_unique_archive(profile_service: ProfileService, runtime_settings: RuntimeSettings, live) -> None:
    live.seed("home")
    result = profile_service.create("my home")

    profile = result.profile
    assert profile.name == "my_home"
    assert result.requested_name == "my home"
    assert profile.active
    assert profile.archive.parent == runtime_settings.profiles_root
    assert profile.archive.name.startswith("my_home-")
    assert profile.archive.exists()


def test_create_duplicate_does_not_capture(profile_service: ProfileService, archiver, live) -> None:
    live.seed("home")
    profile_service.create("home")
    packed = len(archiver.packed)

    with pytest.raises(DuplicateProfileError):
        profile_service.create("home")
    assert len(archiver.packed) == packed


def test_delete_with_missing_archive_reports_warning(profile_service: ProfileService, live) -> None:
    live.seed("home")
    profile = profile_service.create("home").profile
    profile.archive.unlink()

    removed = profile_service.delete("home")

    assert removed.warning is not None
    assert profile_service.list() == []


def test_delete_unknown_profile(profile_service: ProfileService) -> None:
    with pytest.raises(ProfileNotFoundError):
        profile_service.delete("ghost")


def test_rename_sanitises_new_name(profile_service: ProfileService, live) -> None:
    live.seed("home")
    profile_service.create("home")
    renamed = profile_service.rename("home", "at home")
    assert renamed.name == "at_home"


def test_export_writes_metadata_into_archive(profile_service: ProfileService, runtime_settings: RuntimeSettings, live) -> None:
    live.seed("home")
    profile_service.create("home")

    result = profile_service.export("home")

    # no ~/Downloads in the fake home
    assert result.path.parent == runtime_settings.home_dir
    assert result.path.name.startswith("cinnamon-profile-home-export-")
    with zipfile.ZipFile(result.path) as zf:
        metadata = json.loads(zf.read(EXPORT_METADATA_FILE))
        assert "config/panel.json" in zf.namelist()
    assert metadata["profileName"] == "home"
    assert metadata["appName"] == "cinnamon-profile-manager"


def test_export_prefers_downloads(profile_service: ProfileService, runtime_settings: RuntimeSettings, live) -> None:
    runtime_settings.downloads_dir.mkdir()
    live.seed("home")
    profile_service.create("home")
    assert profile_service.export("home").path.parent == runtime_settings.downloads_dir


def test_import_uses_exported_profile_name(profile_service: ProfileService, registry, live, tmp_path: Path) -> None:
    live.seed("work")
    profile_service.create("work")
    exported = profile_service.export("work", tmp_path).path
    profile_service.delete("work")

    result = profile_service.import_profile(exported)

    assert result.profile.name == "work"
    assert not result.profile.active
    assert not result.replaced
    with zipfile.ZipFile(result.profile.archive) as zf:
        assert EXPORT_METADATA_FILE not in zf.namelist()
    assert registry.find_by_name("work") is not None


def test_import_without_metadata_derives_name_from_filename(profile_service: ProfileService, archiver, tmp_path: Path) -> None:
    source = tmp_path / "payload"
    (source / "config").mkdir(parents=True)
    (source / "config" / "panel.json").write_text("x", encoding="utf-8")
    exported = tmp_path / "cinnamon-profile-travel-export-2024-01-02T03-04-05-006Z.zip"
    archiver.pack(source, exported)

    result = profile_service.import_profile(exported)

    assert result.profile.name == "travel"


def test_import_prompt_overrides_name(profile_service: ProfileService, live, tmp_path: Path) -> None:
    live.seed("work")
    profile_service.create("work")
    exported = profile_service.export("work", tmp_path).path

    result = profile_service.import_profile(exported, prompt=lambda _msg, _default: "office copy")

    assert result.profile.name == "office_copy"


def test_import_existing_name_requires_confirmation(profile_service: ProfileService, live, tmp_path: Path) -> None:
    live.seed("work")
    profile_service.create("work")
    exported = profile_service.export("work", tmp_path).path

    with pytest.raises(OperationCancelled):
        profile_service.import_profile(exported, confirm=lambda _msg: False)

    result = profile_service.import_profile(exported, confirm=lambda _msg: True)
    assert result.replaced
    assert [p.name for p in profile_service.list()] == ["work"]


def test_import_force_skips_confirmation(profile_service: ProfileService, live, tmp_path: Path) -> None:
    live.seed("work")
    profile_service.create("work")
    exported = profile_service.export("work", tmp_path).path

    result = profile_service.import_profile(exported, force=True)
    assert result.replaced


def test_import_warns_about_newer_exporter(profile_service: ProfileService, archiver, tmp_path: Path) -> None:
    source = tmp_path / "payload"
    source.mkdir()
    (source / EXPORT_METADATA_FILE).write_text(
        json.dumps({"appVersion": "9.0.0", "profileName": "future"}), encoding="utf-8"
    )
    exported = tmp_path / "future.zip"
    archiver.pack(source, exported)

    result = profile_service.import_profile(exported)

    assert result.profile.name == "future"
    assert any("newer than this version" in warning for warning in result.warnings)


def test_import_missing_file(profile_service: ProfileService, tmp_path: Path) -> None:
    with pytest.raises(BackupNotFoundError):
        profile_service.import_profile(tmp_path / "nothing.zip")


def test_reset_requires_double_confirmation(profile_service: ProfileService, runtime_settings: RuntimeSettings) -> None:
    answers = iter([True, False])
    with pytest.raises(OperationCancelled):
        profile_service.reset(lambda _msg: next(answers))
    assert runtime_settings.profiles_root.exists()

    profile_service.reset(lambda _msg: True)
    assert not runtime_settings.profiles_root.exists()
