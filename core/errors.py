"""Exception types raised by netmigrate."""


class MigrationError(Exception):
    """Base class for netmigrate errors."""


class RegistryError(MigrationError):
    """A registry could not be queried or returned unusable data."""

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source


class PackageNotFoundError(RegistryError):
    """No registry endpoint knows the package."""

    def __init__(self, package: str, source: str | None = None):
        super().__init__(f"Package {package} not found", source=source)
        self.package = package


class ProjectParseError(MigrationError):
    """A project file is not well-formed XML."""


class SetupError(MigrationError):
    """Unrecoverable problem preparing the run (tools, clone, URL)."""
