"""Version manifest and base game installation."""

import logging
from typing import Any, Optional, Protocol

from ..config import InstallerSettings
from ..exceptions import DescriptorNotFound
from .download_manager import DependencyInstaller
from .models import VersionDescriptor, VersionInfo, VersionManifest, VersionMetadata
from .store import VersionStore

logger = logging.getLogger(__name__)


class JsonClient(Protocol):
    async def get(self, url: str, headers: Optional[dict] = None) -> Any:
        ...


class VersionManager:
    def __init__(self, store: VersionStore, http: JsonClient, dependencies: DependencyInstaller,
                 settings: Optional[InstallerSettings] = None):
        self.store = store
        self.http = http
        self.dependencies = dependencies
        self.settings = settings or InstallerSettings()

    async def fetch_manifest(self) -> VersionManifest:
        """Fetch the launcher version manifest."""
        data = await self.http.get(self.settings.version_manifest_url)
        return VersionManifest(**data)

    async def get_version_info(self, version_id: str, manifest: Optional[VersionManifest] = None) -> VersionInfo:
        """Get version info for a specific version."""
        if not manifest:
            manifest = await self.fetch_manifest()

        for version in manifest.versions:
            if version.id == version_id:
                return version
        raise DescriptorNotFound(version_id, "not listed in the version manifest")

    async def fetch_version_metadata(self, version_info: VersionInfo) -> VersionMetadata:
        """Fetch version.json, reusing the stored copy when present."""
        if self.store.exists(version_info.id):
            return await self.store.read(version_info.id)

        data = await self.http.get(version_info.url)
        metadata = VersionMetadata(**data)
        await self.store.write(metadata)
        return metadata

    async def install(self, version_id: str, manifest: Optional[VersionManifest] = None) -> VersionDescriptor:
        """Install a base game version: descriptor first, then every artifact it needs."""
        version_info = await self.get_version_info(version_id, manifest)
        await self.fetch_version_metadata(version_info)
        descriptor = await self.store.resolve(version_id)
        await self.dependencies.install_dependencies(descriptor)
        logger.info("Installed version %s", version_id)
        return descriptor
