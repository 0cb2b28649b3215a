"""Project file (*.csproj, *.fsproj) parsing."""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from .detect import detect_shape, is_project_file, needs_migration, qualify
from .errors import ProjectParseError
from .models import PackageReference, ProjectDescriptor, ProjectShape

logger = logging.getLogger(__name__)

SKIPPED_DIRECTORIES = {"bin", "obj", ".git", "node_modules"}


def read_project_tree(path: str | Path) -> tuple[ET.ElementTree, ProjectShape]:
    """Load a project file keeping its comments.

    Raises:
        ProjectParseError: The file is not well-formed XML or cannot be read
    """
    parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True))
    try:
        tree = ET.parse(str(path), parser=parser)
    except (ET.ParseError, OSError) as e:
        raise ProjectParseError(f"Cannot parse {path}: {e}") from e
    return tree, detect_shape(tree.getroot())


def reference_version(element: ET.Element, shape: ProjectShape) -> str:
    """Read a PackageReference version from its attribute or child element."""
    version = element.get("Version")
    if version:
        return version.strip()
    child = element.find(qualify("Version", shape))
    if child is not None and child.text:
        return child.text.strip()
    return ""


def reference_name(element: ET.Element) -> str:
    return (element.get("Include") or element.get("Update") or "").strip()


class ProjectParser:
    """Parser for MSBuild project files."""

    FRAMEWORK_PROPERTIES = ("TargetFramework", "TargetFrameworkVersion")
    MULTI_TARGET_PROPERTY = "TargetFrameworks"

    def _first_property(self, root: ET.Element, shape: ProjectShape, name: str) -> str | None:
        for element in root.iter(qualify(name, shape)):
            if element.text and element.text.strip():
                return element.text.strip()
        return None

    def _target_frameworks(
        self, root: ET.Element, shape: ProjectShape
    ) -> tuple[list[str], str | None]:
        """Find the declared monikers and the property they came from."""
        for name in self.FRAMEWORK_PROPERTIES:
            value = self._first_property(root, shape, name)
            if value:
                return [value], name

        value = self._first_property(root, shape, self.MULTI_TARGET_PROPERTY)
        if value:
            monikers = [token.strip() for token in value.split(";") if token.strip()]
            return monikers, self.MULTI_TARGET_PROPERTY

        return [], None

    def _package_references(
        self, root: ET.Element, shape: ProjectShape
    ) -> list[PackageReference]:
        references: list[PackageReference] = []
        seen: set[str] = set()

        for element in root.iter(qualify("PackageReference", shape)):
            name = reference_name(element)
            if not name:
                continue
            # Names are unique per project; keep the first declaration
            if name.lower() in seen:
                logger.debug("Duplicate PackageReference %s ignored", name)
                continue
            seen.add(name.lower())
            references.append(
                PackageReference(name=name, version=reference_version(element, shape))
            )

        return references

    def parse(self, path: str | Path) -> ProjectDescriptor:
        """Parse a project file into a ProjectDescriptor."""
        path = Path(path)
        tree, shape = read_project_tree(path)
        root = tree.getroot()

        frameworks, framework_property = self._target_frameworks(root, shape)
        packages = self._package_references(root, shape)
        moniker = frameworks[0] if frameworks else None

        return ProjectDescriptor(
            name=path.stem,
            path=str(path),
            target_frameworks=frameworks,
            framework_property=framework_property,
            shape=shape,
            packages=packages,
            needs_migration=needs_migration(moniker),
        )


def scan(path: str | Path) -> ProjectDescriptor:
    """Parse a project file into a ProjectDescriptor.

    Args:
        path: Path to a .csproj or .fsproj file

    Returns:
        Parsed ProjectDescriptor
    """
    parser = ProjectParser()
    return parser.parse(path)


def find_project_files(root: str | Path) -> list[Path]:
    """List project files under a directory, skipping build output folders."""
    root = Path(root)
    found = []
    for candidate in root.rglob("*"):
        if not candidate.is_file() or not is_project_file(candidate.name):
            continue
        relative_parts = candidate.relative_to(root).parts[:-1]
        if any(part.lower() in SKIPPED_DIRECTORIES for part in relative_parts):
            continue
        found.append(candidate)
    return sorted(found)


def scan_directory(root: str | Path) -> list[ProjectDescriptor]:
    """Scan every project file under a directory, skipping unparseable ones."""
    projects = []
    for path in find_project_files(root):
        try:
            projects.append(scan(path))
        except ProjectParseError as e:
            logger.warning("Skipping %s: %s", path, e)
    return projects
