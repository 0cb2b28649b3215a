"""Version parsing and selection of the best compatible version."""

import re
from collections.abc import Iterable

from packaging.version import InvalidVersion, Version

from .config import has_override
from .detect import normalize_framework
from .models import PackageVersionInfo

VersionKey = tuple[int, int, int, int]

_NUMERIC_VERSION = re.compile(r"^\d+(\.\d+){2,3}$")
LOWEST_VERSION: VersionKey = (0, 0, 0, 0)


def parse_version(text: str | None) -> VersionKey:
    """Parse ``major.minor.patch[.build]`` into four integers.

    Anything that is not purely numeric (pre-release tags, ranges, empty
    strings) sorts as ``0.0.0.0``.
    """
    if not text:
        return LOWEST_VERSION
    value = text.strip()
    if not _NUMERIC_VERSION.match(value):
        return LOWEST_VERSION

    parts = [int(part) for part in value.split(".")]
    parts.extend([0] * (4 - len(parts)))
    return tuple(parts)


def is_compatible(
    frameworks: list[str] | None,
    allowed_frameworks: Iterable[str],
) -> bool:
    """Check declared framework groups against the allow-list.

    A version that declares no groups at all is compatible with everything.
    """
    if not frameworks:
        return True
    allowed = {normalize_framework(name) for name in allowed_frameworks}
    return any(normalize_framework(name) in allowed for name in frameworks)


def highest_version(versions: Iterable[str]) -> str | None:
    candidates = list(versions)
    if not candidates:
        return None
    return max(candidates, key=parse_version)


def select_best(
    versions: list[PackageVersionInfo],
    allowed_frameworks: Iterable[str],
    package_name: str | None = None,
) -> str | None:
    """Pick the highest version compatible with the allowed frameworks.

    Args:
        versions: Versions published by the registry
        allowed_frameworks: Target framework and its compatible standards
        package_name: Used to consult the compatibility override table

    Returns:
        Best version string or None when nothing is compatible
    """
    allowed = list(allowed_frameworks)
    if package_name and has_override(package_name):
        candidates = [info.version for info in versions]
    else:
        candidates = [
            info.version for info in versions if is_compatible(info.frameworks, allowed)
        ]
    return highest_version(candidates)


def semver_delta(old_version: str, new_version: str) -> str:
    """Classify a version change as major, minor, patch or unknown."""
    try:
        old_ver = Version(old_version)
        new_ver = Version(new_version)
    except InvalidVersion:
        return "unknown"

    if new_ver <= old_ver:
        return "unknown"
    if new_ver.major > old_ver.major:
        return "major"
    if new_ver.minor > old_ver.minor:
        return "minor"
    if new_ver.micro > old_ver.micro:
        return "patch"
    return "unknown"


def is_version_range(text: str | None) -> bool:
    """True for range, floating or property-based version expressions."""
    if not text:
        return False
    value = text.strip()
    return value.startswith(("[", "(")) or "*" in value or "$(" in value or "," in value
