#!/usr/bin/env python3
"""Entry point for the cinnamon-profile-manager CLI."""

from __future__ import annotations

import argparse
import json
import sys
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from textwrap import dedent
from typing import Any, Iterable, Mapping

from cinnamon_profiles import PROGRAM_NAME, __version__
from cinnamon_profiles.adapters.dconf_store import DconfSettingsStore
from cinnamon_profiles.adapters.process import find_missing_tools
from cinnamon_profiles.adapters.zip_archiver import ZipArchiver
from cinnamon_profiles.app.backup.service import (
    BACKUP_CREATED,
    BACKUP_SKIPPED,
    BackupOrchestrator,
    MutationOutcome,
)
from cinnamon_profiles.app.interaction import Confirm, assume_yes
from cinnamon_profiles.app.profiles.service import ProfileService
from cinnamon_profiles.app.snapshot.service import ApplyReport, CaptureReport, SnapshotService
from cinnamon_profiles.domain.backup import select_backup
from cinnamon_profiles.domain.components import ComponentSelection
from cinnamon_profiles.domain.errors import (
    MutationFailed,
    OperationCancelled,
    ProfileManagerError,
    StartupError,
)
from cinnamon_profiles.domain.profile import ProfileRegistry
from cinnamon_profiles.settings import REQUIRED_TOOLS, RuntimeSettings, ensure_app_directories, load_settings
from cinnamon_profiles.utils.telemetry import clear as telemetry_clear
from cinnamon_profiles.utils.telemetry import iter_events as telemetry_iter
from cinnamon_profiles.utils.telemetry import log_path as telemetry_log_path
from cinnamon_profiles.utils.telemetry import record_command_event
from cinnamon_profiles.utils.telemetry import summarize as telemetry_summarize


HELP_OVERVIEW = dedent(
    """
    Manage and switch between Cinnamon desktop profiles.

    A profile captures ~/.local/share/cinnamon, ~/.config/cinnamon, optional
    theme/icon/font directories and the dconf namespace /org/cinnamon/.

    Every switch, restore and update first writes an automatic backup to
    <profiles-root>/auto-backup unless --skip-backup is given.

    Environment:
      CINNAMON_PROFILES_DIR=<dir>      - profiles root (default: ~/.cinnamon-profiles)
      CINNAMON_PROFILES_TELEMETRY=0    - disable the local telemetry log
    """
)

RESTART_HINT = "You may need to restart Cinnamon or log out/in for all changes to take effect."


@dataclass
class CommandTrace:
    """What the running command reported, for its closing telemetry record."""

    backup_status: str | None = None
    warning_count: int = 0


@dataclass
class Services:
    settings: RuntimeSettings
    registry: ProfileRegistry
    snapshots: SnapshotService
    profiles: ProfileService
    backups: BackupOrchestrator
    trace: CommandTrace = field(default_factory=CommandTrace)


def _build_services(settings: RuntimeSettings, confirm: Confirm) -> Services:
    registry = ProfileRegistry(settings.registry_file)
    snapshots = SnapshotService(settings, ZipArchiver(), DconfSettingsStore())
    return Services(
        settings=settings,
        registry=registry,
        snapshots=snapshots,
        profiles=ProfileService(settings, registry, snapshots),
        backups=BackupOrchestrator(settings, registry, snapshots, confirm),
    )


# ----------------------------------------------------------------------
# Terminal interaction
# ----------------------------------------------------------------------


def _confirm(message: str) -> bool:
    try:
        answer = input(f"{message} [y/N] ").strip().lower()
    except EOFError:
        return False
    return answer in {"y", "yes"}


def _prompt(message: str, default: str) -> str:
    try:
        answer = input(f"{message} ").strip()
    except EOFError:
        return default
    return answer or default


def _warn(message: str) -> None:
    print(f"warning: {message}", file=sys.stderr)


def _error(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)


def _emit_warnings(messages: Iterable[str], trace: CommandTrace | None = None) -> None:
    for message in messages:
        _warn(message)
        if trace is not None:
            trace.warning_count += 1


def _emit_notes(messages: Iterable[str]) -> None:
    for message in messages:
        print(f"  {message}")


def _format_timestamp(value: str | None) -> str:
    if not value:
        return "Unknown"
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone().strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return value


def _print_table(headers: list[str], rows: list[list[str]]) -> None:
    widths = [max(len(str(cell)) for cell in column) for column in zip(headers, *rows)]
    print("  ".join(header.ljust(width) for header, width in zip(headers, widths)))
    print("  ".join("-" * width for width in widths))
    for row in rows:
        print("  ".join(str(cell).ljust(width) for cell, width in zip(row, widths)))


def _selection_from_args(args: argparse.Namespace, settings: RuntimeSettings) -> ComponentSelection | None:
    """Return an explicit selection only when a component flag was given."""

    overrides: dict[str, bool] = {}
    for flag in ("themes", "icons", "fonts", "dconf"):
        if getattr(args, f"no_{flag}", False):
            overrides[flag] = False
    if getattr(args, "no_user_scope", False):
        overrides["user_scope"] = False
    if getattr(args, "system_scope", False):
        overrides["system_scope"] = True
    if not overrides:
        return None
    return settings.default_components.with_overrides(overrides)


def _print_capture(report: CaptureReport, trace: CommandTrace) -> None:
    _emit_notes(report.notes)
    _emit_warnings(report.warnings, trace)


def _print_apply(report: ApplyReport, trace: CommandTrace) -> None:
    if report.restored:
        print(f"  restored: {', '.join(report.restored)}")
    _emit_notes(report.notes)
    _emit_warnings(report.warnings, trace)


def _print_outcome_backup(outcome: MutationOutcome, trace: CommandTrace) -> None:
    trace.backup_status = outcome.backup_status
    if outcome.backup_status == BACKUP_CREATED and outcome.backup_path is not None:
        print(f"Automatic backup created at {outcome.backup_path.name}")
        _emit_notes(outcome.backup_warnings)
    elif outcome.backup_status == BACKUP_SKIPPED:
        print("Automatic backup skipped.")
    _emit_warnings(outcome.warnings, trace)


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------


def _list_cmd(args: argparse.Namespace, services: Services) -> int:
    profiles = services.profiles.list()
    if getattr(args, "json", False):
        print(json.dumps({"profiles": [profile.to_dict() for profile in profiles]}, ensure_ascii=False, indent=2))
        return 0
    if not profiles:
        print("No profiles created yet. Use 'create <name>' to make one.")
        return 0
    print("Available Profiles:")
    rows = [
        [profile.name, "Active" if profile.active else "Inactive", _format_timestamp(profile.last_modified)]
        for profile in profiles
    ]
    _print_table(["Name", "Status", "Last Modified"], rows)
    print(f"Use {PROGRAM_NAME} switch <name> to switch profiles")
    return 0


def _create_cmd(args: argparse.Namespace, services: Services) -> int:
    print(f"Creating new profile: {args.name}")
    result = services.profiles.create(args.name, _selection_from_args(args, services.settings))
    if result.profile.name != result.requested_name:
        print(f'Profile name sanitized to "{result.profile.name}".')
    _print_capture(result.capture, services.trace)
    print(f"Profile created and activated successfully @ {result.profile.archive}")
    return 0


def _switch_cmd(args: argparse.Namespace, services: Services) -> int:
    outcome = services.backups.switch(
        args.name,
        _selection_from_args(args, services.settings),
        skip_backup=args.skip_backup,
    )
    _print_outcome_backup(outcome, services.trace)
    if outcome.apply is not None:
        _print_apply(outcome.apply, services.trace)
    print(f'Profile "{args.name}" switched successfully.')
    print(RESTART_HINT)
    return 0


def _delete_cmd(args: argparse.Namespace, services: Services) -> int:
    print(f"Deleting profile: {args.name}")
    removed = services.profiles.delete(args.name)
    if removed.warning:
        _emit_warnings([removed.warning], services.trace)
    elif removed.archive_deleted:
        print(f"Deleted profile archive: {removed.profile.archive.name}")
    print(f'Profile "{args.name}" deleted successfully from records.')
    return 0


def _rename_cmd(args: argparse.Namespace, services: Services) -> int:
    profile = services.profiles.rename(args.old_name, args.new_name)
    print(f'Profile "{args.old_name}" renamed to "{profile.name}".')
    return 0


def _backup_cmd(args: argparse.Namespace, services: Services) -> int:
    print("Backing up current settings...")
    report = services.backups.manual_backup(_selection_from_args(args, services.settings))
    _print_capture(report, services.trace)
    print(f"Backup created successfully @ {report.archive}")
    return 0


def _list_backups_cmd(args: argparse.Namespace, services: Services) -> int:
    entries = services.backups.list_backups()
    if getattr(args, "json", False):
        print(json.dumps({"backups": [entry.to_dict() for entry in entries]}, ensure_ascii=False, indent=2))
        return 0
    if not entries:
        print("No backup files found in the backup directories.")
        return 0
    _print_backup_table(entries)
    return 0


def _print_backup_table(entries) -> None:
    print("Available backup files (both manual and automatic):")
    rows = [
        [
            str(index),
            entry.filename,
            entry.created_at.astimezone().strftime("%Y-%m-%d %H:%M:%S") if entry.created_at else "Unknown",
            entry.tier.capitalize(),
        ]
        for index, entry in enumerate(entries, start=1)
    ]
    _print_table(["#", "Backup File", "Date", "Type"], rows)


def _restore_cmd(args: argparse.Namespace, services: Services) -> int:
    if args.file:
        archive = Path(args.file).expanduser()
    else:
        entries = services.backups.list_backups()
        if not entries:
            print("No backup files found in the backup directories. Nothing to restore.")
            return 0
        _print_backup_table(entries)
        try:
            raw = input("Enter the number of the backup to restore (or 0 to cancel): ")
        except EOFError:
            raw = None
        entry = select_backup(entries, raw)
        if entry is None:
            raise OperationCancelled("Restore cancelled.")
        archive = entry.path

    print(f"Restoring settings from backup: {archive.name}")
    outcome = services.backups.restore(
        archive,
        _selection_from_args(args, services.settings),
        skip_backup=args.skip_backup,
    )
    _print_outcome_backup(outcome, services.trace)
    if outcome.apply is not None:
        _print_apply(outcome.apply, services.trace)
    print("Settings restored successfully from backup.")
    print(RESTART_HINT)
    return 0


def _export_cmd(args: argparse.Namespace, services: Services) -> int:
    print(f"Exporting profile: {args.name}")
    output_dir = Path(args.output).expanduser() if args.output else None
    result = services.profiles.export(args.name, output_dir)
    _emit_warnings(result.warnings, services.trace)
    print(f"Profile exported successfully to {result.path}")
    return 0


def _import_cmd(args: argparse.Namespace, services: Services) -> int:
    print(f"Importing profile from: {args.filepath}")
    interactive = not args.yes
    result = services.profiles.import_profile(
        Path(args.filepath).expanduser(),
        name=args.name,
        prompt=_prompt if interactive and args.name is None else None,
        confirm=services.backups.confirm,
        force=args.force,
    )
    _emit_notes(result.notes)
    _emit_warnings(result.warnings, services.trace)
    print(f'Profile "{result.profile.name}" imported successfully.')
    print(f"Use '{PROGRAM_NAME} switch \"{result.profile.name}\"' to activate this profile.")
    return 0


def _update_cmd(args: argparse.Namespace, services: Services) -> int:
    print("Updating active profile with current settings...")
    outcome = services.backups.update(_selection_from_args(args, services.settings), skip_backup=args.skip_backup)
    _print_outcome_backup(outcome, services.trace)
    if outcome.capture is not None:
        _print_capture(outcome.capture, services.trace)
    print(f'Profile "{outcome.target}" updated successfully with current settings.')
    return 0


def _reset_cmd(args: argparse.Namespace, services: Services) -> int:
    print("WARNING: This will delete ALL profiles, backups, and manager settings!")
    root = services.profiles.reset(services.backups.confirm)
    print(f"Application reset successfully. Deleted {root}.")
    print("The profiles directory will be recreated on next run.")
    return 0


def _telemetry_cmd(args: argparse.Namespace, services: Services) -> int:
    settings = services.settings
    if args.telemetry_command == "report":
        print(json.dumps(telemetry_summarize(telemetry_iter(settings)), indent=2, ensure_ascii=False))
        return 0
    if args.telemetry_command == "clear":
        if telemetry_clear(settings):
            print("Telemetry log cleared")
        else:
            print("Telemetry log is already empty")
        return 0
    if args.telemetry_command == "tail":
        for evt in deque(telemetry_iter(settings, args.event), maxlen=args.limit):
            print(json.dumps(evt, ensure_ascii=False))
        return 0
    print("Unsupported telemetry command", file=sys.stderr)
    return 2


# ----------------------------------------------------------------------
# Dispatch
# ----------------------------------------------------------------------


def _record(settings: RuntimeSettings, command: str, **fields: Any) -> None:
    # the command outcome stands even when the log cannot be written
    try:
        record_command_event(settings, command, **fields)
    except OSError as exc:
        _warn(f"Could not write telemetry log {telemetry_log_path(settings)}: {exc}")


def _run_command(args: argparse.Namespace, services: Services) -> int:
    command = args.command
    settings = services.settings
    trace = services.trace
    record = getattr(args, "telemetry", True)
    if record:
        _record(settings, command, status="start")
    start = time.perf_counter()

    def finish(status: str, level: str = "info", extra: Mapping[str, Any] | None = None) -> None:
        if not record:
            return
        if level == "info" and trace.warning_count:
            level = "warn"
        _record(
            settings,
            command,
            status=status,
            level=level,
            duration_ms=(time.perf_counter() - start) * 1000,
            backup_status=trace.backup_status,
            warning_count=trace.warning_count,
            payload=extra,
        )

    try:
        exit_code = args.func(args, services)
    except OperationCancelled as exc:
        _emit_warnings(services.registry.warnings, services.trace)
        print(str(exc))
        finish("cancelled")
        return 0
    except MutationFailed as exc:
        _emit_warnings(services.registry.warnings, services.trace)
        _error(str(exc))
        if exc.possibly_inconsistent:
            _error("Current settings might be in an inconsistent state.")
        if exc.backup_path is not None:
            print(
                f"An automatic backup was created before the failure: {exc.backup_path}. "
                "You might need to restore it manually.",
                file=sys.stderr,
            )
        else:
            print(f"An automatic backup was attempted: Not created ({exc.backup_status}).", file=sys.stderr)
        trace.backup_status = exc.backup_status
        finish("error", "error", {"error": str(exc), "backup": str(exc.backup_path) if exc.backup_path else None})
        return 1
    except ProfileManagerError as exc:
        _emit_warnings(services.registry.warnings, services.trace)
        _error(str(exc))
        finish("error", "error", {"error": str(exc)})
        return 1
    _emit_warnings(services.registry.warnings, services.trace)
    finish("success", extra={"exitCode": exit_code})
    return exit_code


def _add_component_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("components")
    group.add_argument("--no-themes", action="store_true", help="Leave theme directories out")
    group.add_argument("--no-icons", action="store_true", help="Leave icon directories out")
    group.add_argument("--no-fonts", action="store_true", help="Leave font directories out")
    group.add_argument("--no-dconf", action="store_true", help="Leave the dconf namespace out")
    group.add_argument("--no-user-scope", action="store_true", help="Skip ~/.themes, ~/.icons and ~/.fonts")
    group.add_argument("--system-scope", action="store_true", help="Include <system_data_dir>/themes, icons and fonts")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROGRAM_NAME,
        description=HELP_OVERVIEW,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"{PROGRAM_NAME} {__version__}")
    parser.add_argument("-y", "--yes", action="store_true", help="Answer yes to every confirmation")

    # also accepted after the subcommand; SUPPRESS keeps a leading -y from being reset
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-y", "--yes", action="store_true", default=argparse.SUPPRESS, help="Answer yes to every confirmation"
    )

    sub = parser.add_subparsers(dest="command")

    list_cmd = sub.add_parser("list", parents=[common], aliases=["ls"], help="List all available profiles")
    list_cmd.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    list_cmd.set_defaults(func=_list_cmd, command="list")

    create_cmd = sub.add_parser("create", parents=[common], help="Create a new profile from current Cinnamon settings")
    create_cmd.add_argument("name", help="Name for the new profile")
    _add_component_flags(create_cmd)
    create_cmd.set_defaults(func=_create_cmd)

    switch_cmd = sub.add_parser("switch", parents=[common], help="Switch to a different profile (restores files and dconf)")
    switch_cmd.add_argument("name", help="Name of the profile to switch to")
    switch_cmd.add_argument("--skip-backup", action="store_true", help="Do not create the automatic backup")
    _add_component_flags(switch_cmd)
    switch_cmd.set_defaults(func=_switch_cmd)

    delete_cmd = sub.add_parser("delete", parents=[common], aliases=["rm"], help="Delete an existing profile")
    delete_cmd.add_argument("name", help="Name of the profile to delete")
    delete_cmd.set_defaults(func=_delete_cmd, command="delete")

    rename_cmd = sub.add_parser("rename", parents=[common], help="Rename an existing profile")
    rename_cmd.add_argument("old_name")
    rename_cmd.add_argument("new_name")
    rename_cmd.set_defaults(func=_rename_cmd)

    backup_cmd = sub.add_parser("backup", parents=[common], help="Create a manual backup of current Cinnamon settings")
    _add_component_flags(backup_cmd)
    backup_cmd.set_defaults(func=_backup_cmd)

    restore_cmd = sub.add_parser("restore", parents=[common], help="Restore Cinnamon settings from a backup")
    restore_cmd.add_argument("--file", help="Backup archive to restore (default: choose interactively)")
    restore_cmd.add_argument("--skip-backup", action="store_true", help="Do not create the automatic backup")
    _add_component_flags(restore_cmd)
    restore_cmd.set_defaults(func=_restore_cmd)

    list_backups_cmd = sub.add_parser("list-backups", parents=[common], help="List manual and automatic backups, newest first")
    list_backups_cmd.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    list_backups_cmd.set_defaults(func=_list_backups_cmd)

    export_cmd = sub.add_parser("export", parents=[common], help="Export a profile to an external zip file")
    export_cmd.add_argument("name", help="Name of the profile to export")
    export_cmd.add_argument("--output", help="Target directory (default: ~/Downloads or $HOME)")
    export_cmd.set_defaults(func=_export_cmd)

    import_cmd = sub.add_parser("import", parents=[common], help="Import a profile from an external zip file")
    import_cmd.add_argument("filepath", help="Path to the profile zip file to import")
    import_cmd.add_argument("--name", help="Name for the imported profile")
    import_cmd.add_argument("--force", action="store_true", help="Overwrite an existing profile of the same name")
    import_cmd.set_defaults(func=_import_cmd)

    update_cmd = sub.add_parser("update", parents=[common], aliases=["up"], help="Update the active profile with current settings")
    update_cmd.add_argument("--skip-backup", action="store_true", help="Do not create the automatic backup")
    _add_component_flags(update_cmd)
    update_cmd.set_defaults(func=_update_cmd, command="update")

    reset_cmd = sub.add_parser("reset", parents=[common], help="DANGER: Delete all profiles, backups, and manager settings")
    reset_cmd.set_defaults(func=_reset_cmd, telemetry=False)

    telemetry_cmd = sub.add_parser("telemetry", parents=[common], help="Inspect the local telemetry log")
    telemetry_sub = telemetry_cmd.add_subparsers(dest="telemetry_command", required=True)
    telemetry_sub.add_parser("report", help="Print aggregated telemetry stats")
    telemetry_sub.add_parser("clear", help="Remove telemetry log file")
    telemetry_tail = telemetry_sub.add_parser("tail", help="Print last N telemetry events")
    telemetry_tail.add_argument("--limit", type=int, default=20)
    telemetry_tail.add_argument("--command", dest="event", help="Only show records of this command")
    telemetry_cmd.set_defaults(func=_telemetry_cmd, telemetry=False, needs_tools=False)

    return parser


def _startup(args: argparse.Namespace) -> RuntimeSettings:
    settings = load_settings()
    if getattr(args, "needs_tools", True):
        missing = find_missing_tools(REQUIRED_TOOLS)
        if missing:
            raise StartupError(
                f"Required command(s) not found in PATH: {', '.join(missing)}. Please install them and try again."
            )
    for message in ensure_app_directories(settings):
        print(message)
    return settings


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    if getattr(args, "command", None) is None:
        parser.print_help()
        return 0
    try:
        settings = _startup(args)
    except StartupError as exc:
        _error(str(exc))
        return 1
    services = _build_services(settings, assume_yes if args.yes else _confirm)
    return _run_command(args, services)


if __name__ == "__main__":
    sys.exit(main())
