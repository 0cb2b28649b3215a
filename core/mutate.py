"""In-place rewrites of project files."""

import codecs
import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from .detect import MSBUILD_NAMESPACE, qualify
from .models import ProjectShape
from .parse_project import read_project_tree, reference_name

logger = logging.getLogger(__name__)

# Keep legacy files free of ns0: prefixes when serialised
ET.register_namespace("", MSBUILD_NAMESPACE)

XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>\n'


def find_package_reference(
    root: ET.Element, shape: ProjectShape, package_name: str
) -> ET.Element | None:
    """Return the first PackageReference whose name matches exactly."""
    for element in root.iter(qualify("PackageReference", shape)):
        if reference_name(element) == package_name:
            return element
    return None


def _set_version(element: ET.Element, shape: ProjectShape, version: str) -> bool:
    if element.get("Version") is not None:
        if element.get("Version") == version:
            return False
        element.set("Version", version)
        return True

    child = element.find(qualify("Version", shape))
    if child is not None:
        if (child.text or "").strip() == version:
            return False
        child.text = version
        return True

    element.set("Version", version)
    return True


def write_project_tree(tree: ET.ElementTree, path: str | Path) -> None:
    """Persist a project tree, keeping the original BOM and XML declaration."""
    path = Path(path)
    original = path.read_bytes()
    had_bom = original.startswith(codecs.BOM_UTF8)
    had_declaration = original.lstrip(codecs.BOM_UTF8).lstrip().startswith(b"<?xml")

    body = ET.tostring(tree.getroot(), encoding="unicode")
    text = (XML_DECLARATION if had_declaration else "") + body + "\n"

    data = text.encode("utf-8")
    if had_bom:
        data = codecs.BOM_UTF8 + data
    path.write_bytes(data)


def rewrite_package_version(
    path: str | Path,
    package_name: str,
    new_version: str,
    dry_run: bool = False,
) -> bool:
    """Set the version of a package reference.

    Args:
        path: Project file to rewrite
        package_name: Exact name of the referenced package
        new_version: Version to write
        dry_run: Report whether the file would change without writing it

    Returns:
        True if a matching reference was found and its version changed
    """
    tree, shape = read_project_tree(path)
    element = find_package_reference(tree.getroot(), shape, package_name)
    if element is None:
        logger.info("No PackageReference for %s in %s", package_name, path)
        return False

    if not _set_version(element, shape, new_version):
        return False

    if not dry_run:
        write_project_tree(tree, path)
        logger.debug("Set %s to %s in %s", package_name, new_version, path)
    return True


def rewrite_target_framework(
    path: str | Path,
    old_framework: str,
    new_framework: str,
    dry_run: bool = False,
) -> bool:
    """Replace a target framework moniker wherever the project declares it."""
    tree, shape = read_project_tree(path)
    root = tree.getroot()
    changed = False

    for name in ("TargetFramework", "TargetFrameworkVersion"):
        for element in root.iter(qualify(name, shape)):
            if (element.text or "").strip() == old_framework:
                element.text = new_framework
                changed = True

    for element in root.iter(qualify("TargetFrameworks", shape)):
        tokens = [token.strip() for token in (element.text or "").split(";") if token.strip()]
        if old_framework not in tokens:
            continue
        updated: list[str] = []
        for token in tokens:
            value = new_framework if token == old_framework else token
            if value not in updated:
                updated.append(value)
        element.text = ";".join(updated)
        changed = True

    if changed and not dry_run:
        write_project_tree(tree, path)
        logger.debug("Retargeted %s from %s to %s", path, old_framework, new_framework)
    return changed
