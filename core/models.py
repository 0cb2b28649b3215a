"""Core data models for netmigrate."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ProjectShape(str, Enum):
    """Layout of a project file."""

    MODERN = "modern"  # SDK-style, no XML namespace
    LEGACY = "legacy"  # MSBuild 2003 namespaced elements


class Compatibility(str, Enum):
    """Compatibility verdict for a package against the target framework."""

    COMPATIBLE = "compatible"
    INCOMPATIBLE = "incompatible"
    UNKNOWN = "unknown"


class PackageSource(str, Enum):
    """Where a package's metadata came from."""

    PUBLIC = "public"
    PRIVATE = "private"
    UNRESOLVED_PRIVATE = "unresolved-private"


@dataclass
class PackageReference:
    """A package dependency declared inside a project file."""

    name: str
    version: str = ""


@dataclass
class PackageCompatibilityRecord:
    """Resolved knowledge about one package name and version."""

    name: str
    current_version: str
    latest_version: str | None = None
    resolved_version: str | None = None
    compatibility: Compatibility = Compatibility.UNKNOWN
    source: PackageSource = PackageSource.PUBLIC
    source_url: str | None = None
    notes: str = ""

    @property
    def is_private(self) -> bool:
        return self.source != PackageSource.PUBLIC


@dataclass
class ProjectDescriptor:
    """A single buildable project discovered in the repository."""

    name: str
    path: str
    target_frameworks: list[str]
    framework_property: str | None = None
    shape: ProjectShape = ProjectShape.MODERN
    packages: list[PackageReference] = field(default_factory=list)
    needs_migration: bool = False
    records: list[PackageCompatibilityRecord] = field(default_factory=list)

    @property
    def target_framework(self) -> str | None:
        return self.target_frameworks[0] if self.target_frameworks else None


@dataclass
class PackageVersionInfo:
    """One version of a package as published by a registry."""

    version: str
    # None means the registry declared no dependency groups at all
    frameworks: list[str] | None = None


@dataclass
class PackageLookup:
    """Result of looking a package up in one registry."""

    name: str
    source: str
    versions: list[PackageVersionInfo]


@dataclass
class PackageUpdate:
    """A package version change applied (or planned) in one project."""

    package: str
    old_version: str
    new_version: str
    project: str
    semver_delta: str = "unknown"  # patch, minor, major, unknown
    applied: bool = True


@dataclass
class FailedUpdate:
    """A package that could not be moved to a compatible version."""

    package: str
    version: str
    project: str
    reason: str


@dataclass
class PrivatePackage:
    """A package served by a private feed, or not found anywhere."""

    package: str
    version: str
    source_url: str | None = None
    latest_version: str | None = None
    requires_manual_verification: bool = True


@dataclass
class FrameworkChange:
    """Target framework rewrite performed on a project."""

    project: str
    old_framework: str
    new_framework: str
    applied: bool = True


@dataclass
class BuildResult:
    """Outcome of restoring and building one project."""

    project: str
    succeeded: bool
    exit_code: int
    output: str = ""


@dataclass
class MigrationReport:
    """Aggregate of a whole migration run."""

    repository: str
    branch: str
    target_framework: str
    projects: list[ProjectDescriptor] = field(default_factory=list)
    framework_changes: list[FrameworkChange] = field(default_factory=list)
    successful_updates: list[PackageUpdate] = field(default_factory=list)
    failed_updates: list[FailedUpdate] = field(default_factory=list)
    private_packages: list[PrivatePackage] = field(default_factory=list)
    build_results: list[BuildResult] = field(default_factory=list)
    analysis_results: list[BuildResult] = field(default_factory=list)
    generated_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def add_failed_update(self, failure: FailedUpdate) -> bool:
        """Append a failure unless the same package/project pair is already listed."""
        for existing in self.failed_updates:
            if (
                existing.package.lower() == failure.package.lower()
                and existing.project == failure.project
            ):
                return False
        self.failed_updates.append(failure)
        return True

    def add_private_package(self, package: PrivatePackage) -> bool:
        """Append a private package unless its name is already listed."""
        for existing in self.private_packages:
            if existing.package.lower() == package.package.lower():
                return False
        self.private_packages.append(package)
        return True

    def summary(self) -> dict[str, int]:
        return {
            "projects": len(self.projects),
            "projects_needing_migration": sum(
                1 for project in self.projects if project.needs_migration
            ),
            "framework_changes": len(self.framework_changes),
            "successful_updates": len(self.successful_updates),
            "failed_updates": len(self.failed_updates),
            "private_packages": len(self.private_packages),
            "failed_builds": sum(
                1 for build in self.build_results if not build.succeeded
            ),
            "failed_analyses": sum(
                1 for analysis in self.analysis_results if not analysis.succeeded
            ),
        }
