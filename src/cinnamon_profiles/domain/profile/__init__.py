"""Profile domain exports."""

from .registry import ProfileRegistry, RemovedProfile
from .value_objects import Profile, sanitize_name

__all__ = [
    "Profile",
    "ProfileRegistry",
    "RemovedProfile",
    "sanitize_name",
]
