from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from cinnamon_profiles.domain.components import (
    DCONF_SETTINGS_FILE,
    ComponentSelection,
    build_location_table,
)
from cinnamon_profiles.domain.timestamps import filesystem_timestamp, iso_timestamp, parse_filesystem_timestamp

HOME = Path("/home/ada")
SYSTEM = Path("/usr/share")


def _by_name():
    return {loc.archive_name: loc for loc in build_location_table(HOME, SYSTEM)}


def test_location_table_layout() -> None:
    table = _by_name()
    assert table["share"].live_path == HOME / ".local" / "share" / "cinnamon"
    assert table["config"].live_path == HOME / ".config" / "cinnamon"
    assert table["themes"].live_path == HOME / ".themes"
    assert table["system-icons"].live_path == SYSTEM / "icons"
    assert table["share"].core and not table["fonts"].core


def test_default_selection_skips_system_scope() -> None:
    selection = ComponentSelection()
    table = _by_name()
    assert selection.enables(table["themes"])
    assert not selection.enables(table["system-themes"])


def test_core_locations_are_always_enabled() -> None:
    selection = ComponentSelection(themes=False, icons=False, fonts=False, dconf=False, user_scope=False)
    table = _by_name()
    assert selection.enables(table["share"])
    assert selection.enables(table["config"])
    assert not selection.enables(table["icons"])


def test_category_flag_gates_both_scopes() -> None:
    selection = ComponentSelection(fonts=False, system_scope=True)
    table = _by_name()
    assert not selection.enables(table["fonts"])
    assert not selection.enables(table["system-fonts"])
    assert selection.enables(table["system-themes"])


def test_with_overrides_rejects_unknown_keys() -> None:
    with pytest.raises(ValueError, match="wallpapers"):
        ComponentSelection().with_overrides({"wallpapers": True})


def test_from_dict_ignores_missing_keys() -> None:
    selection = ComponentSelection.from_dict({"icons": False})
    assert selection == ComponentSelection(icons=False)
    assert ComponentSelection.from_dict(selection.to_dict()) == selection


def test_disabled_against_lists_skipped_archive_entries() -> None:
    recorded = ComponentSelection(system_scope=True)
    requested = ComponentSelection(themes=False, dconf=False)
    skipped = requested.disabled_against(recorded, build_location_table(HOME, SYSTEM))
    assert set(skipped) == {"themes", "system-themes", "system-icons", "system-fonts", DCONF_SETTINGS_FILE}


def test_timestamps_are_millisecond_utc() -> None:
    moment = datetime(2024, 12, 31, 23, 59, 58, 7000, tzinfo=timezone.utc)
    assert iso_timestamp(moment) == "2024-12-31T23:59:58.007Z"
    assert filesystem_timestamp(moment) == "2024-12-31T23-59-58-007Z"
    assert parse_filesystem_timestamp("2024-12-31T23-59-58-007Z") == moment
    assert parse_filesystem_timestamp("2024-13-31T23-59-58-007Z") is None
