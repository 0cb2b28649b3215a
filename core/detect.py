"""Project shape and target framework detection."""

import re
import xml.etree.ElementTree as ET

from .config import OUTDATED_FRAMEWORKS
from .models import ProjectShape

MSBUILD_NAMESPACE = "http://schemas.microsoft.com/developer/msbuild/2003"

PROJECT_SUFFIXES = (".csproj", ".fsproj")

# Framework families that always need migration
LEGACY_FRAMEWORK_PATTERNS = [
    r"^v[1-4]\.",  # TargetFrameworkVersion, e.g. v4.7.2
    r"^net[1-4]\d{0,2}$",  # .NET Framework short monikers, e.g. net472
    r"^netcoreapp\d",  # .NET Core 1.x - 3.x
    r"^netstandard1\.",  # netstandard1.x
]


def detect_shape(root: ET.Element) -> ProjectShape:
    """Tell SDK-style projects from namespaced MSBuild 2003 ones.

    Args:
        root: Root element of the parsed project file

    Returns:
        ProjectShape.LEGACY for namespaced files, ProjectShape.MODERN otherwise
    """
    if root.tag.startswith(f"{{{MSBUILD_NAMESPACE}}}"):
        return ProjectShape.LEGACY
    return ProjectShape.MODERN


def qualify(tag: str, shape: ProjectShape) -> str:
    """Return the element tag as stored by ElementTree for the given shape."""
    if shape is ProjectShape.LEGACY:
        return f"{{{MSBUILD_NAMESPACE}}}{tag}"
    return tag


def is_project_file(filename: str) -> bool:
    return filename.lower().endswith(PROJECT_SUFFIXES)


def normalize_framework(name: str) -> str:
    """Normalise a framework identifier to its short moniker.

    Registry metadata uses long names such as ``.NETStandard2.0`` while
    project files use ``netstandard2.0``. Platform suffixes
    (``net8.0-windows``) are dropped.
    """
    value = name.strip().lower().split("-", 1)[0]

    if value.startswith(".netframework"):
        return "net" + value[len(".netframework"):].replace(".", "")
    if value.startswith(".netcoreapp"):
        version = value[len(".netcoreapp"):]
        major = version.split(".")[0]
        if major.isdigit() and int(major) >= 5:
            return "net" + version
        return "netcoreapp" + version
    if value.startswith(".netstandard"):
        return "netstandard" + value[len(".netstandard"):]

    return value


def needs_migration(moniker: str | None) -> bool:
    """Check whether a target framework moniker is outdated.

    Args:
        moniker: Target framework moniker read from the project file

    Returns:
        True for legacy framework families and known outdated monikers
    """
    if not moniker:
        return False

    value = normalize_framework(moniker)
    if value in OUTDATED_FRAMEWORKS:
        return True

    return any(re.match(pattern, value) for pattern in LEGACY_FRAMEWORK_PATTERNS)
