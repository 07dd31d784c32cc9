"""Timestamp helpers shared by the registry and backup naming."""

from __future__ import annotations

import re
from datetime import datetime, timezone

_FILESYSTEM_STAMP = re.compile(r"(\d{4}-\d{2}-\d{2})T(\d{2})-(\d{2})-(\d{2})-(\d{3})Z")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(moment: datetime | None = None) -> str:
    """ISO-8601 with millisecond precision and a ``Z`` suffix."""

    moment = (moment or utc_now()).astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def filesystem_timestamp(moment: datetime | None = None) -> str:
    """ISO timestamp with ``:`` and ``.`` replaced by ``-``."""

    return iso_timestamp(moment).replace(":", "-").replace(".", "-")


def parse_filesystem_timestamp(value: str) -> datetime | None:
    match = _FILESYSTEM_STAMP.fullmatch(value)
    if match is None:
        return None
    date_part, hour, minute, second, millis = match.groups()
    try:
        return datetime.fromisoformat(f"{date_part}T{hour}:{minute}:{second}.{millis}+00:00")
    except ValueError:
        return None


def epoch_millis(moment: datetime | None = None) -> int:
    return int((moment or utc_now()).timestamp() * 1000)


__all__ = [
    "epoch_millis",
    "filesystem_timestamp",
    "iso_timestamp",
    "parse_filesystem_timestamp",
    "utc_now",
]
