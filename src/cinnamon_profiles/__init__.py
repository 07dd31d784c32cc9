"""Cinnamon desktop profile manager."""

__version__ = "0.1.0"
PROGRAM_NAME = "cinnamon-profile-manager"

__all__ = ["__version__", "PROGRAM_NAME"]
