"""Packaged resources for the profile manager."""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from typing import Any, Dict

import yaml

__all__ = ["load_default_config", "load_schema"]


@lru_cache(maxsize=None)
def load_schema(name: str) -> Dict[str, Any]:
    """Return a JSON schema shipped with the package (e.g. ``registry``)."""

    entry = resources.files(__name__) / f"{name}.schema.json"
    return json.loads(entry.read_text("utf-8"))


def load_default_config() -> Dict[str, Any]:
    """Return the packaged ``defaults.yaml`` payload as a fresh dict."""

    raw = (resources.files(__name__) / "defaults.yaml").read_text("utf-8")
    return yaml.safe_load(raw) or {}
