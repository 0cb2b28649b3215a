"""NuGet registry client."""

import logging
import xml.etree.ElementTree as ET

import httpx

from .config import PUBLIC_REGISTRY_URL, MigrationSettings
from .errors import PackageNotFoundError, RegistryError
from .models import PackageLookup, PackageVersionInfo
from .versions import highest_version

logger = logging.getLogger(__name__)

REGISTRATION_PATH = "/v3/registration5-semver1/{package_id}/index.json"
FLAT_CONTAINER_PATH = "/v3-flatcontainer/{package_id}/index.json"
NUSPEC_PATH = "/v3-flatcontainer/{package_id}/{version}/{package_id}.nuspec"


class NuGetRegistryClient:
    """Client for the NuGet v3 registration and flat container endpoints."""

    def __init__(
        self,
        base_url: str = PUBLIC_REGISTRY_URL,
        auth: tuple[str, str] | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize registry client.

        Args:
            base_url: Registry root, e.g. "https://api.nuget.org"
            auth: Optional (username, password) for HTTP Basic authentication
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self.base_url = base_url.rstrip("/")
        self.auth = auth
        self.timeout = timeout
        self._transport = transport
        self._cache: dict[str, dict] = {}

    async def lookup_package(self, name: str) -> PackageLookup:
        """Fetch every known version of a package with its framework groups.

        Args:
            name: Package name, matched case-insensitively

        Returns:
            PackageLookup with the versions this registry publishes

        Raises:
            PackageNotFoundError: Neither endpoint knows the package
            RegistryError: The registry could not be queried
        """
        package_id = name.lower()

        versions = await self._registration_versions(package_id)
        if not versions:
            logger.debug("No registration data for %s at %s, trying flat container", name, self.base_url)
            versions = await self._flat_container_versions(package_id)

        if not versions:
            raise PackageNotFoundError(name, source=self.base_url)

        return PackageLookup(name=name, source=self.base_url, versions=versions)

    async def _registration_versions(self, package_id: str) -> list[PackageVersionInfo]:
        url = self.base_url + REGISTRATION_PATH.format(package_id=package_id)
        index = await self._fetch_json(url)
        if not index:
            return []

        versions = []
        for page in index.get("items", []):
            leaves = page.get("items")
            if leaves is None and page.get("@id"):
                # Large packages page their leaves out of the index
                page_doc = await self._fetch_json(page["@id"])
                leaves = page_doc.get("items", []) if page_doc else []

            for leaf in leaves or []:
                entry = leaf.get("catalogEntry") or {}
                if entry.get("listed") is False:
                    continue
                version = entry.get("version")
                if not version:
                    continue
                versions.append(
                    PackageVersionInfo(
                        version=version,
                        frameworks=self._dependency_frameworks(entry),
                    )
                )

        return versions

    async def _flat_container_versions(self, package_id: str) -> list[PackageVersionInfo]:
        url = self.base_url + FLAT_CONTAINER_PATH.format(package_id=package_id)
        doc = await self._fetch_json(url)
        if not doc:
            return []

        latest = highest_version(doc.get("versions") or [])
        if latest is None:
            return []

        frameworks = await self._nuspec_frameworks(package_id, latest)
        return [PackageVersionInfo(version=latest, frameworks=frameworks)]

    async def _nuspec_frameworks(self, package_id: str, version: str) -> list[str] | None:
        """Read the dependency group frameworks from a version's manifest."""
        url = self.base_url + NUSPEC_PATH.format(
            package_id=package_id, version=version.lower()
        )
        response = await self._get(url)
        if response is None:
            logger.debug("No manifest for %s %s", package_id, version)
            return None

        try:
            root = ET.fromstring(response.content)
        except ET.ParseError as e:
            raise RegistryError(f"Invalid manifest for {package_id} {version}: {e}", source=self.base_url) from e

        frameworks = []
        for element in root.iter():
            # nuspec namespaces differ between schema versions
            if element.tag.rsplit("}", 1)[-1] != "group":
                continue
            framework = element.get("targetFramework")
            if not framework:
                return None
            frameworks.append(framework)

        return frameworks or None

    @staticmethod
    def _dependency_frameworks(entry: dict) -> list[str] | None:
        groups = entry.get("dependencyGroups") or []
        if not groups:
            return None

        frameworks = []
        for group in groups:
            framework = group.get("targetFramework")
            if not framework:
                # A group without a framework applies to every target
                return None
            frameworks.append(framework)
        return frameworks

    async def _fetch_json(self, url: str) -> dict | None:
        """Fetch a JSON document, returning None on 404."""
        if url in self._cache:
            return self._cache[url]

        response = await self._get(url)
        if response is None:
            return None

        try:
            document = response.json()
        except ValueError as e:
            raise RegistryError(f"Invalid JSON from {url}: {e}", source=self.base_url) from e

        self._cache[url] = document
        return document

    async def _get(self, url: str) -> httpx.Response | None:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                auth=self.auth,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                return response

        except httpx.TimeoutException as e:
            raise RegistryError(f"Timeout fetching {url}", source=self.base_url) from e
        except httpx.HTTPStatusError as e:
            raise RegistryError(f"HTTP error fetching {url}: {e}", source=self.base_url) from e
        except httpx.HTTPError as e:
            raise RegistryError(f"Network error fetching {url}: {e}", source=self.base_url) from e


async def lookup_in_sources(
    name: str, clients: list[NuGetRegistryClient]
) -> PackageLookup | None:
    """Probe registries in order and return the first that knows the package."""
    for client in clients:
        try:
            return await client.lookup_package(name)
        except PackageNotFoundError:
            logger.debug("%s not found in %s", name, client.base_url)
        except RegistryError as e:
            logger.warning("Private source %s failed for %s: %s", client.base_url, name, e)
    return None


def clients_from_settings(
    settings: MigrationSettings,
) -> tuple[NuGetRegistryClient, list[NuGetRegistryClient]]:
    """Build the public client and one client per private source."""
    public = NuGetRegistryClient(
        base_url=settings.public_registry_url, timeout=settings.timeout
    )
    credentials = settings.private_credentials()
    private = [
        NuGetRegistryClient(base_url=url, auth=credentials, timeout=settings.timeout)
        for url in settings.private_sources
    ]
    return public, private
