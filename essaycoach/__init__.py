"""
Core package for the essay coach.

Holds the stage table, configuration and logging helpers shared by the
structuring components in `apps/` and the CLI.
"""

from importlib import metadata


def get_version() -> str:
    """Return the installed project version."""
    try:
        return metadata.version("essaycoach")
    except metadata.PackageNotFoundError:
        return "0.0.0"


__all__ = ["get_version"]
