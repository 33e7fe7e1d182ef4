"""Mod loader manager."""

import logging
from typing import Any, Dict, Optional

from ..config import InstallerSettings
from ..exceptions import UnsupportedManifestShape
from ..runtime.java_manager import ProcessRunner
from ..versions.download_manager import Downloader
from ..versions.manager import JsonClient
from ..versions.store import VersionStore
from .base import LoaderInstaller
from .fabric import FabricInstaller
from .forge import ForgeInstaller
from .liteloader import LiteLoaderInstaller

logger = logging.getLogger(__name__)


class ModLoaderManager:
    """Builds one installer per loader around shared collaborators and dispatches by name."""

    def __init__(self, store: VersionStore, downloader: Downloader, http: Optional[JsonClient] = None,
                 runtime: Optional[ProcessRunner] = None, java: Optional[str] = None,
                 settings: Optional[InstallerSettings] = None):
        self.settings = settings or InstallerSettings()
        concurrency = self.settings.concurrency
        self.installers: Dict[str, LoaderInstaller] = {
            "forge": ForgeInstaller(store, downloader, runtime=runtime, java=java,
                                    settings=self.settings, concurrency=concurrency),
            "liteloader": LiteLoaderInstaller(store, downloader, settings=self.settings,
                                              concurrency=concurrency),
        }
        if http is not None:
            self.installers["fabric"] = FabricInstaller(store, downloader, http, settings=self.settings,
                                                        concurrency=concurrency)

    @property
    def loaders(self):
        return sorted(self.installers)

    def installer(self, loader: str) -> LoaderInstaller:
        try:
            return self.installers[loader.lower()]
        except KeyError:
            raise UnsupportedManifestShape(loader, f"no installer available (known: {', '.join(self.loaders)})") \
                from None

    async def install(self, loader: str, manifest: Any, **options) -> str:
        """Install ``manifest`` with the named loader and return the new version id."""
        installer = self.installer(loader)
        logger.info("Installing %s", loader)
        return await installer.install(manifest, options or None)
