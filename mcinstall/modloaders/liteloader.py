"""LiteLoader installer.

LiteLoader ships as a single launchwrapper tweaker jar. It installs either on
the base game or, when the caller asks for it, on top of an installed Forge
version.
"""

import logging
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ..exceptions import UnsupportedManifestShape
from ..versions.models import (VersionArguments, VersionLibrary, VersionLibraryArtifact,
                               VersionLibraryDownloads, VersionMetadata)
from .base import InstallSession, LoaderInstaller, checksum_of

logger = logging.getLogger(__name__)

MAIN_CLASS = "net.minecraft.launchwrapper.Launch"
DEFAULT_TWEAK_CLASS = "com.mumfrey.liteloader.launch.LiteLoaderTweaker"
SNAPSHOT_REPOSITORY = "http://repo.mumfrey.com/content/repositories/snapshots/"


class _LiteLoaderVersion(BaseModel):
    model_config = ConfigDict(extra="allow")

    mcversion: str
    version: str
    file: Optional[str] = None
    md5: Optional[str] = None
    timestamp: Optional[str] = None
    tweakClass: str = DEFAULT_TWEAK_CLASS
    url: Optional[str] = None
    libraries: List[VersionLibrary] = Field(default_factory=list)

    @property
    def file_name(self) -> str:
        return self.file or f"liteloader-{self.version}.jar"

    @property
    def library_name(self) -> str:
        return f"com.mumfrey:liteloader:{self.version}"


class LiteLoaderRelease(_LiteLoaderVersion):
    type: Literal["RELEASE"] = "RELEASE"


class LiteLoaderSnapshot(_LiteLoaderVersion):
    type: Literal["SNAPSHOT"]


LiteLoaderManifest = Union[LiteLoaderRelease, LiteLoaderSnapshot]

_manifest_adapter = TypeAdapter(Annotated[LiteLoaderManifest, Field(discriminator="type")])


class LiteLoaderInstallOptions(BaseModel):
    inherits_from: Optional[str] = None


class LiteLoaderInstaller(LoaderInstaller[LiteLoaderManifest]):
    loader = "liteloader"

    def classify(self, raw_manifest: Any) -> LiteLoaderManifest:
        if isinstance(raw_manifest, (LiteLoaderRelease, LiteLoaderSnapshot)):
            return raw_manifest
        if not isinstance(raw_manifest, dict):
            raise UnsupportedManifestShape("liteloader", "manifest must be an object")
        data = dict(raw_manifest)
        data["type"] = str(data.get("type") or "RELEASE").upper()
        try:
            return _manifest_adapter.validate_python(data)
        except ValidationError as e:
            raise UnsupportedManifestShape("liteloader", str(e)) from e

    def _download_url(self, manifest: LiteLoaderManifest) -> str:
        if isinstance(manifest, LiteLoaderSnapshot):
            repository = manifest.url or SNAPSHOT_REPOSITORY
            if not repository.endswith("/"):
                repository += "/"
            return f"{repository}com/mumfrey/liteloader/{manifest.version}/{manifest.file_name}"
        return f"{self.settings.liteloader_url}com/mumfrey/liteloader/{manifest.mcversion}/{manifest.file_name}"

    @staticmethod
    def _options(options: Any) -> LiteLoaderInstallOptions:
        if options is None:
            return LiteLoaderInstallOptions()
        if isinstance(options, LiteLoaderInstallOptions):
            return options
        return LiteLoaderInstallOptions(**options)

    async def fetch_installer(self, session: InstallSession[LiteLoaderManifest]) -> None:
        manifest = session.manifest
        options = self._options(session.options)
        session.data["options"] = options
        if options.inherits_from:
            # raises when the parent is missing or its chain is broken
            await self.store.resolve(options.inherits_from)

        relative = f"com/mumfrey/liteloader/{manifest.version}/liteloader-{manifest.version}.jar"
        url = self._download_url(manifest)
        session.data["url"] = url
        logger.debug("LiteLoader %s from %s", manifest.version, url)
        session.artifacts["liteloader"] = await self.fetch_artifact(
            url, self.root.library_path(relative), checksum_of(md5=manifest.md5))

    async def build_descriptor(self, session: InstallSession[LiteLoaderManifest]) -> VersionMetadata:
        manifest = session.manifest
        options: LiteLoaderInstallOptions = session.data["options"]
        parent = options.inherits_from or manifest.mcversion
        version_id = f"{parent}-Liteloader{manifest.mcversion}-{manifest.version}"

        liteloader = VersionLibrary(
            name=manifest.library_name,
            downloads=VersionLibraryDownloads(artifact=VersionLibraryArtifact(
                path=f"com/mumfrey/liteloader/{manifest.version}/liteloader-{manifest.version}.jar",
                url=session.data["url"],
            )),
        )
        return VersionMetadata(
            id=version_id,
            inheritsFrom=parent,
            type="release" if isinstance(manifest, LiteLoaderRelease) else "snapshot",
            mainClass=MAIN_CLASS,
            libraries=[liteloader, *manifest.libraries],
            arguments=VersionArguments(game=["--tweakClass", manifest.tweakClass]),
        )
