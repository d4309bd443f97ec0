"""Automation skills for a personal agent workspace."""

from __future__ import annotations

from .versioning import VERSION as __version__

__all__ = ["main", "__version__"]


def main(*args, **kwargs):
    # Import lazily so `python -m clawkit.cli` does not warn.
    from .cli import main as _main

    return _main(*args, **kwargs)
