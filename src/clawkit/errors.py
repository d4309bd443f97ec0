from __future__ import annotations


class ClawkitError(Exception):
    """Base error for skill failures that callers may want to catch."""


class ArxivFetchError(ClawkitError):
    pass


class ArxivParseError(ClawkitError):
    pass


class VisionError(ClawkitError):
    pass


class ConversionError(ClawkitError):
    pass
