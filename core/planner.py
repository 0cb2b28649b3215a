"""Migration planning: framework rewrite and package resolution per project."""

import logging

from .config import COMPATIBILITY_OVERRIDES, OUTDATED_FRAMEWORKS, MigrationSettings
from .detect import needs_migration
from .errors import ProjectParseError, RegistryError
from .models import (
    Compatibility,
    FailedUpdate,
    FrameworkChange,
    MigrationReport,
    PackageCompatibilityRecord,
    PackageLookup,
    PackageReference,
    PackageSource,
    PackageUpdate,
    PrivatePackage,
    ProjectDescriptor,
)
from .mutate import rewrite_package_version, rewrite_target_framework
from .registry import NuGetRegistryClient, clients_from_settings, lookup_in_sources
from .versions import (
    highest_version,
    is_version_range,
    parse_version,
    select_best,
    semver_delta,
)

logger = logging.getLogger(__name__)

REFERENCE_NOT_FOUND = "reference not found in project file"


class MigrationPlanner:
    """Plans and applies framework and package updates, one project at a time.

    Package lookups are deduplicated per (name, version): the registry is
    queried once per pair and every project referencing the pair shares the
    same PackageCompatibilityRecord.
    """

    def __init__(
        self,
        settings: MigrationSettings,
        registry: NuGetRegistryClient | None = None,
        private_registries: list[NuGetRegistryClient] | None = None,
    ):
        self.settings = settings
        public, private = clients_from_settings(settings)
        self.registry = registry or public
        self.private_registries = private if private_registries is None else private_registries
        self._records: dict[tuple[str, str], PackageCompatibilityRecord] = {}

    @property
    def records(self) -> dict[tuple[str, str], PackageCompatibilityRecord]:
        return self._records

    async def plan(
        self,
        projects: list[ProjectDescriptor],
        repository: str = "",
        branch: str = "",
    ) -> MigrationReport:
        """Run both phases for every project, in listing order."""
        report = MigrationReport(
            repository=repository,
            branch=branch,
            target_framework=self.settings.target_framework,
            projects=list(projects),
        )

        for project in projects:
            logger.info("Planning %s (%s)", project.name, project.target_framework or "no framework")
            self.migrate_framework(project, report)
            await self.resolve_packages(project, report)

        return report

    def migrate_framework(self, project: ProjectDescriptor, report: MigrationReport) -> bool:
        """Phase A: move an outdated moniker to the target framework."""
        moniker = project.target_framework
        target = self.settings.target_framework
        if not moniker or moniker.lower() not in OUTDATED_FRAMEWORKS:
            return False

        apply = self.settings.apply_changes
        try:
            changed = rewrite_target_framework(project.path, moniker, target, dry_run=not apply)
        except ProjectParseError as e:
            logger.warning("Cannot retarget %s: %s", project.name, e)
            return False

        if not changed:
            logger.info("Framework %s not found in %s", moniker, project.path)
            return False

        report.framework_changes.append(
            FrameworkChange(
                project=project.name,
                old_framework=moniker,
                new_framework=target,
                applied=apply,
            )
        )
        if apply:
            frameworks: list[str] = []
            for value in project.target_frameworks:
                value = target if value == moniker else value
                if value not in frameworks:
                    frameworks.append(value)
            project.target_frameworks = frameworks
            project.needs_migration = needs_migration(project.target_framework)
        return True

    async def resolve_packages(self, project: ProjectDescriptor, report: MigrationReport) -> None:
        """Phase B: resolve every package reference and apply updates."""
        project.records = []
        for reference in project.packages:
            if self.settings.is_excluded(reference.name):
                logger.debug("Skipping platform package %s", reference.name)
                continue

            record = await self._record_for(reference)
            project.records.append(record)
            self._apply(project, reference, record, report)

    async def _record_for(self, reference: PackageReference) -> PackageCompatibilityRecord:
        key = (reference.name.lower(), reference.version)
        record = self._records.get(key)
        if record is None:
            record = await self._resolve(reference)
            self._records[key] = record
        return record

    async def _resolve(self, reference: PackageReference) -> PackageCompatibilityRecord:
        if self.settings.is_private_name(reference.name):
            return await self._resolve_private(reference, "internal package prefix")

        try:
            lookup = await self.registry.lookup_package(reference.name)
        except RegistryError as e:
            logger.info("%s unresolved on public registry: %s", reference.name, e)
            return await self._resolve_private(reference, str(e))

        return self._public_record(reference, lookup)

    def _public_record(
        self, reference: PackageReference, lookup: PackageLookup
    ) -> PackageCompatibilityRecord:
        target = self.settings.target_framework
        latest = highest_version(info.version for info in lookup.versions)
        best = select_best(
            lookup.versions,
            self.settings.allowed_frameworks(),
            package_name=reference.name,
        )
        record = PackageCompatibilityRecord(
            name=reference.name,
            current_version=reference.version,
            latest_version=latest,
            source=PackageSource.PUBLIC,
        )

        if best is None:
            record.compatibility = Compatibility.INCOMPATIBLE
            record.notes = f"No version compatible with {target}"
            return record

        record.compatibility = Compatibility.COMPATIBLE
        notes = []
        override = COMPATIBILITY_OVERRIDES.get(reference.name.lower())
        if override:
            notes.append(f"Compatibility override: {override}")

        current = reference.version
        if not current:
            notes.append("Version managed outside the project file")
        elif is_version_range(current):
            notes.append("Version range left unchanged")
        elif parse_version(current) > parse_version(best):
            # never downgrade; a published version above best cannot support the target
            published = {info.version.lower() for info in lookup.versions}
            if current.lower() not in published:
                record.compatibility = Compatibility.UNKNOWN
                notes.append(f"Current version {current} not published; highest compatible is {best}")
            else:
                record.compatibility = Compatibility.INCOMPATIBLE
                notes.append(
                    f"Current version {current} does not support {target}; "
                    f"highest compatible {best} would be a downgrade"
                )
        elif best != current:
            record.resolved_version = best
            notes.append(f"Update available: {current} -> {best}")
        else:
            notes.append("Up to date")

        record.notes = "; ".join(notes)
        return record

    async def _resolve_private(
        self, reference: PackageReference, reason: str
    ) -> PackageCompatibilityRecord:
        lookup = await lookup_in_sources(reference.name, self.private_registries)
        if lookup is None:
            return PackageCompatibilityRecord(
                name=reference.name,
                current_version=reference.version,
                compatibility=Compatibility.UNKNOWN,
                source=PackageSource.UNRESOLVED_PRIVATE,
                notes=f"Not found in any configured source ({reason}); verify manually",
            )

        best = select_best(
            lookup.versions,
            self.settings.allowed_frameworks(),
            package_name=reference.name,
        )
        return PackageCompatibilityRecord(
            name=reference.name,
            current_version=reference.version,
            latest_version=highest_version(info.version for info in lookup.versions),
            compatibility=Compatibility.COMPATIBLE if best else Compatibility.INCOMPATIBLE,
            source=PackageSource.PRIVATE,
            source_url=lookup.source,
            notes=f"Found in private source {lookup.source}",
        )

    def _apply(
        self,
        project: ProjectDescriptor,
        reference: PackageReference,
        record: PackageCompatibilityRecord,
        report: MigrationReport,
    ) -> None:
        if record.is_private:
            report.add_private_package(
                PrivatePackage(
                    package=reference.name,
                    version=reference.version,
                    source_url=record.source_url,
                    latest_version=record.latest_version,
                    requires_manual_verification=record.source == PackageSource.UNRESOLVED_PRIVATE,
                )
            )
            return

        if record.compatibility in (Compatibility.INCOMPATIBLE, Compatibility.UNKNOWN):
            report.add_failed_update(
                FailedUpdate(
                    package=reference.name,
                    version=reference.version,
                    project=project.name,
                    reason=record.notes,
                )
            )
            return

        new_version = record.resolved_version
        if not new_version:
            return

        old_version = reference.version
        apply = self.settings.apply_changes
        try:
            changed = rewrite_package_version(
                project.path, reference.name, new_version, dry_run=not apply
            )
        except ProjectParseError as e:
            logger.warning("Cannot update %s in %s: %s", reference.name, project.name, e)
            changed = False

        if not changed:
            report.add_failed_update(
                FailedUpdate(
                    package=reference.name,
                    version=old_version,
                    project=project.name,
                    reason=REFERENCE_NOT_FOUND,
                )
            )
            return

        report.successful_updates.append(
            PackageUpdate(
                package=reference.name,
                old_version=old_version,
                new_version=new_version,
                project=project.name,
                semver_delta=semver_delta(old_version, new_version),
                applied=apply,
            )
        )
        if apply:
            reference.version = new_version
        logger.info("%s: %s %s -> %s", project.name, reference.name, old_version, new_version)
