"""Fabric installer."""

import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import InstallerSettings
from ..exceptions import UnsupportedManifestShape
from ..versions.download_manager import Downloader
from ..versions.manager import JsonClient
from ..versions.models import VersionArguments, VersionLibrary, VersionMetadata, library_path
from ..versions.store import VersionStore
from .base import InstallSession, LoaderInstaller

logger = logging.getLogger(__name__)

JVM_ARGUMENTS = ["-DFabricMcEmu= net.minecraft.client.main.Main "]


class FabricManifest(BaseModel):
    minecraft: str
    loader: str
    intermediary: Optional[str] = None


class FabricArtifact(BaseModel):
    model_config = ConfigDict(extra="allow")

    maven: str
    version: str
    separator: Optional[str] = None
    build: Optional[int] = None
    stable: Optional[bool] = None


class FabricSidedLibraries(BaseModel):
    common: List[VersionLibrary] = Field(default_factory=list)
    client: List[VersionLibrary] = Field(default_factory=list)
    server: List[VersionLibrary] = Field(default_factory=list)


class FabricTweakers(BaseModel):
    common: List[str] = Field(default_factory=list)
    client: List[str] = Field(default_factory=list)
    server: List[str] = Field(default_factory=list)


class FabricLaunchwrapper(BaseModel):
    tweakers: FabricTweakers = Field(default_factory=FabricTweakers)


class FabricLauncherMeta(BaseModel):
    model_config = ConfigDict(extra="allow")

    version: int = 1
    libraries: FabricSidedLibraries = Field(default_factory=FabricSidedLibraries)
    mainClass: Union[str, Dict[str, str]] = "net.fabricmc.loader.launch.knot.KnotClient"
    launchwrapper: Optional[FabricLaunchwrapper] = None

    @property
    def client_main_class(self) -> str:
        if isinstance(self.mainClass, str):
            return self.mainClass
        return self.mainClass["client"]


class FabricLoaderMetadata(BaseModel):
    """Response of ``/v2/versions/loader/<game>/<loader>``."""
    model_config = ConfigDict(extra="allow")

    loader: FabricArtifact
    intermediary: FabricArtifact
    launcherMeta: FabricLauncherMeta


class FabricInstaller(LoaderInstaller[FabricManifest]):
    loader = "fabric"

    def __init__(self, store: VersionStore, downloader: Downloader, http: JsonClient,
                 settings: Optional[InstallerSettings] = None, concurrency: int = 8):
        super().__init__(store, downloader, settings, concurrency)
        self.http = http

    def classify(self, raw_manifest: Any) -> FabricManifest:
        if isinstance(raw_manifest, FabricManifest):
            return raw_manifest
        try:
            return FabricManifest(**raw_manifest)
        except (TypeError, ValidationError) as e:
            raise UnsupportedManifestShape("fabric", str(e)) from e

    async def fetch_installer(self, session: InstallSession[FabricManifest]) -> None:
        manifest = session.manifest
        url = f"{self.settings.fabric_meta_url}v2/versions/loader/{manifest.minecraft}/{manifest.loader}"
        data = await self.http.get(url)
        try:
            metadata = FabricLoaderMetadata(**data)
        except (TypeError, ValidationError) as e:
            raise UnsupportedManifestShape("fabric", f"unexpected loader metadata: {e}") from e
        session.data["metadata"] = metadata
        logger.info("Fabric loader %s for %s", metadata.loader.version, manifest.minecraft)

        intermediary = metadata.intermediary.maven
        if manifest.intermediary:
            intermediary = f"net.fabricmc:intermediary:{manifest.intermediary}"
        session.data["intermediary"] = intermediary
        relative = library_path(intermediary)
        session.artifacts["intermediary"] = await self.fetch_artifact(
            self.settings.fabric_maven_url + relative, self.root.library_path(relative))

    async def build_descriptor(self, session: InstallSession[FabricManifest]) -> VersionMetadata:
        manifest = session.manifest
        metadata: FabricLoaderMetadata = session.data["metadata"]
        intermediary_version = manifest.intermediary or metadata.intermediary.version
        version_id = f"{manifest.minecraft}-fabric{intermediary_version}-{manifest.loader}"

        launcher = metadata.launcherMeta
        libraries = [*launcher.libraries.common, *launcher.libraries.client]
        libraries.append(VersionLibrary(name=metadata.loader.maven, url=self.settings.fabric_maven_url))
        libraries.append(VersionLibrary(name=session.data["intermediary"], url=self.settings.fabric_maven_url))

        game: List[str] = []
        if launcher.launchwrapper is not None:
            for tweaker in [*launcher.launchwrapper.tweakers.common, *launcher.launchwrapper.tweakers.client]:
                game.extend(["--tweakClass", tweaker])

        return VersionMetadata(
            id=version_id,
            inheritsFrom=manifest.minecraft,
            type="release",
            mainClass=launcher.client_main_class,
            libraries=libraries,
            arguments=VersionArguments(game=game, jvm=list(JVM_ARGUMENTS)),
        )
