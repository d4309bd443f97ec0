from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as package_version

# Used when running from a checkout that was never installed.
FALLBACK_VERSION = "0.3.0"


def resolve_version() -> str:
    try:
        return package_version("clawkit")
    except PackageNotFoundError:
        return FALLBACK_VERSION


VERSION = resolve_version()
