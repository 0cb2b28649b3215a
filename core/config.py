"""Run settings and the framework tables used by the planner."""

from dataclasses import dataclass, field

DEFAULT_TARGET_FRAMEWORK = "net8.0"
PUBLIC_REGISTRY_URL = "https://api.nuget.org"
DEFAULT_PRIVATE_PREFIX = "Internal."

# Standard identifiers every modern target can consume
BACKWARD_COMPATIBLE_FRAMEWORKS = ("netstandard2.0", "netstandard2.1")

# Monikers phase A rewrites to the target literal
OUTDATED_FRAMEWORKS = frozenset({
    "netcoreapp2.1",
    "netcoreapp3.0",
    "netcoreapp3.1",
    "net5.0",
    "net6.0",
    "net7.0",
})

# Platform and runtime packages that ship with the SDK
EXCLUDED_PREFIXES = (
    "System.",
    "runtime.",
    "Microsoft.NETCore.",
    "Microsoft.AspNetCore.App",
    "NETStandard.Library",
)

# Packages known to run on every modern target even though some of their
# published versions only declare older framework groups.
COMPATIBILITY_OVERRIDES: dict[str, str] = {
    "newtonsoft.json": "targets netstandard and net framework; loads on all modern runtimes",
}


def has_override(package_name: str) -> bool:
    return package_name.lower() in COMPATIBILITY_OVERRIDES


@dataclass
class MigrationSettings:
    """Settings for one migration run."""

    target_framework: str = DEFAULT_TARGET_FRAMEWORK
    public_registry_url: str = PUBLIC_REGISTRY_URL
    private_sources: list[str] = field(default_factory=list)
    private_username: str | None = None
    private_password: str | None = None
    private_prefix: str = DEFAULT_PRIVATE_PREFIX
    excluded_prefixes: tuple[str, ...] = EXCLUDED_PREFIXES
    timeout: float = 30.0
    apply_changes: bool = True

    def allowed_frameworks(self) -> set[str]:
        """Framework identifiers a package must declare to be selectable."""
        return {self.target_framework.lower(), *BACKWARD_COMPATIBLE_FRAMEWORKS}

    def private_credentials(self) -> tuple[str, str] | None:
        if self.private_username and self.private_password:
            return (self.private_username, self.private_password)
        return None

    def is_excluded(self, package_name: str) -> bool:
        return package_name.startswith(self.excluded_prefixes)

    def is_private_name(self, package_name: str) -> bool:
        return bool(self.private_prefix) and package_name.startswith(self.private_prefix)
