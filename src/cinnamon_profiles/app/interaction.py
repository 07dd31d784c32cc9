"""Callables through which services ask the operator for decisions."""

from __future__ import annotations

from typing import Callable

Confirm = Callable[[str], bool]
Prompt = Callable[[str, str], str]


def assume_yes(_message: str) -> bool:
    return True


__all__ = ["Confirm", "Prompt", "assume_yes"]
