"""Forge installer.

Forge installers come in two historical families. Legacy installers embed a
complete version json (``versionInfo``) and the universal jar; modern ones
embed a version json, a maven tree, and a list of processors that must run
under a java runtime to produce patched artifacts.
"""

import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import InstallerSettings
from ..exceptions import ProcessorStepFailed, UnsupportedManifestShape
from ..runtime.java_manager import ProcessRunner
from ..utils.archive import ZipArchive, safe_join
from ..utils.tasks import collect_errors, run_bounded
from ..versions.download_manager import Downloader, file_digest
from ..versions.models import LibraryEntry, VersionLibrary, VersionMetadata, library_path
from ..versions.store import VersionStore
from .base import InstallSession, LoaderInstaller, checksum_of, raise_collected

logger = logging.getLogger(__name__)

INSTALL_PROFILE = "install_profile.json"


class ForgeArtifact(BaseModel):
    path: Optional[str] = None
    sha1: Optional[str] = None
    md5: Optional[str] = None


class ForgeManifest(BaseModel):
    """One Forge release as listed by the Forge version index."""
    mcversion: str
    version: str
    installer: ForgeArtifact
    universal: Optional[ForgeArtifact] = None
    type: Optional[str] = None


class LegacyInstallInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    path: str
    filePath: str
    profileName: Optional[str] = None
    target: Optional[str] = None
    minecraft: Optional[str] = None


class LegacyInstallProfile(BaseModel):
    model_config = ConfigDict(extra="allow")

    install: LegacyInstallInfo
    versionInfo: VersionMetadata


class SidedValue(BaseModel):
    client: str
    server: Optional[str] = None


class ForgeProcessor(BaseModel):
    model_config = ConfigDict(extra="allow")

    jar: str
    classpath: List[str] = Field(default_factory=list)
    args: List[str] = Field(default_factory=list)
    outputs: Dict[str, str] = Field(default_factory=dict)
    sides: Optional[List[str]] = None


class ModernInstallProfile(BaseModel):
    model_config = ConfigDict(extra="allow")

    spec: int = 0
    profile: Optional[str] = None
    version: Optional[str] = None
    json_path: str = Field(default="/version.json", alias="json")
    minecraft: Optional[str] = None
    data: Dict[str, SidedValue] = Field(default_factory=dict)
    processors: List[ForgeProcessor] = Field(default_factory=list)
    libraries: List[VersionLibrary] = Field(default_factory=list)


@dataclass(frozen=True)
class LegacyForgeShape:
    manifest: ForgeManifest
    profile: LegacyInstallProfile

    @property
    def version_id(self) -> str:
        return f"{self.manifest.mcversion}-forge{self.manifest.mcversion}-{self.manifest.version}"


@dataclass(frozen=True)
class ModernForgeShape:
    manifest: ForgeManifest
    profile: ModernInstallProfile

    @property
    def version_id(self) -> str:
        return f"{self.manifest.mcversion}-forge-{self.manifest.version}"


ForgeShape = Union[LegacyForgeShape, ModernForgeShape]


def classify_forge_manifest(raw: Any) -> ForgeManifest:
    if isinstance(raw, ForgeManifest):
        return raw
    if not isinstance(raw, dict):
        raise UnsupportedManifestShape("forge", "manifest must be an object")
    if raw.get("installer") is None:
        raise UnsupportedManifestShape("forge", "no installer artifact reference")
    try:
        return ForgeManifest(**raw)
    except ValidationError as e:
        raise UnsupportedManifestShape("forge", str(e)) from e


def classify_forge_shape(manifest: ForgeManifest, profile: Any) -> ForgeShape:
    """Pick the transform family from the installer's embedded install profile.

    A profile embedding ``versionInfo`` is self-contained (legacy); one pointing
    at a separate version json and/or listing processors is modern.
    """
    if not isinstance(profile, dict):
        raise UnsupportedManifestShape("forge", "install profile must be an object")
    try:
        if "versionInfo" in profile and "install" in profile:
            return LegacyForgeShape(manifest, LegacyInstallProfile(**profile))
        if "json" in profile or "processors" in profile:
            return ModernForgeShape(manifest, ModernInstallProfile(**profile))
    except ValidationError as e:
        raise UnsupportedManifestShape("forge", f"malformed install profile: {e}") from e
    raise UnsupportedManifestShape("forge", "install profile matches no known installer format")


def _maven_relative(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    path = path.lstrip("/")
    return path[len("maven/"):] if path.startswith("maven/") else path


def _read_main_class(jar: Path) -> Optional[str]:
    with ZipArchive(jar) as archive:
        if not archive.is_file("META-INF/MANIFEST.MF"):
            return None
        for line in archive.read_text("META-INF/MANIFEST.MF").splitlines():
            if line.startswith("Main-Class:"):
                return line.split(":", 1)[1].strip()
    return None


_VARIABLE = re.compile(r"\{(\w+)\}")


class ForgeInstaller(LoaderInstaller[ForgeManifest]):
    loader = "forge"

    def __init__(self, store: VersionStore, downloader: Downloader, runtime: Optional[ProcessRunner] = None,
                 java: Optional[str] = None, settings: Optional[InstallerSettings] = None,
                 concurrency: int = 8):
        super().__init__(store, downloader, settings, concurrency)
        self.runtime = runtime
        self.java = java

    def classify(self, raw_manifest: Any) -> ForgeManifest:
        return classify_forge_manifest(raw_manifest)

    def _artifact_location(self, manifest: ForgeManifest, artifact: ForgeArtifact, kind: str):
        relative = _maven_relative(artifact.path)
        if relative is None:
            full = f"{manifest.mcversion}-{manifest.version}"
            relative = f"net/minecraftforge/forge/{full}/forge-{full}-{kind}.jar"
        return self.settings.forge_maven_url + relative, self.root.library_path(relative)

    async def fetch_installer(self, session: InstallSession[ForgeManifest]) -> None:
        manifest = session.manifest
        wanted = {"installer": manifest.installer}
        if manifest.universal is not None:
            wanted["universal"] = manifest.universal

        jobs = []
        for kind, artifact in wanted.items():
            url, dest = self._artifact_location(manifest, artifact, kind)
            checksum = checksum_of(artifact.sha1, artifact.md5)
            session.artifacts[kind] = dest
            jobs.append(lambda url=url, dest=dest, checksum=checksum: self.fetch_artifact(url, dest, checksum))
        raise_collected(collect_errors(await run_bounded(jobs, self.concurrency)), "forge artifacts")

        with ZipArchive(session.artifacts["installer"]) as archive:
            if not archive.is_file(INSTALL_PROFILE):
                raise UnsupportedManifestShape("forge", f"installer has no {INSTALL_PROFILE}")
            profile = archive.read_json(INSTALL_PROFILE)

        shape = classify_forge_shape(manifest, profile)
        session.data["shape"] = shape
        session.version_id = shape.version_id
        logger.info("Forge %s-%s uses the %s installer format", manifest.mcversion, manifest.version,
                    "legacy" if isinstance(shape, LegacyForgeShape) else "modern")

    async def transform(self, session: InstallSession[ForgeManifest]) -> None:
        shape = session.data["shape"]
        if isinstance(shape, LegacyForgeShape):
            session.data["version_json"] = self._transform_legacy(shape, session.artifacts["installer"])
        else:
            session.data["version_json"] = await self._transform_modern(shape, session.artifacts["installer"])

    def _transform_legacy(self, shape: LegacyForgeShape, installer: Path) -> VersionMetadata:
        install = shape.profile.install
        dest = self.root.library_path(library_path(install.path))
        with ZipArchive(installer) as archive:
            if archive.is_file(install.filePath):
                archive.extract(install.filePath, dest)
            elif not dest.is_file():
                raise UnsupportedManifestShape("forge", f"installer does not embed {install.filePath}")

        version_info = shape.profile.versionInfo
        libraries = [lib for lib in version_info.libraries or [] if lib.clientreq is not False]
        return version_info.model_copy(update={"libraries": libraries})

    async def _transform_modern(self, shape: ModernForgeShape, installer: Path) -> VersionMetadata:
        profile = shape.profile
        mcversion = shape.manifest.mcversion

        with tempfile.TemporaryDirectory(prefix="forge-installer-") as tmp, ZipArchive(installer) as archive:
            json_entry = profile.json_path.lstrip("/")
            if not archive.is_file(json_entry):
                raise UnsupportedManifestShape("forge", f"installer has no {json_entry}")
            version_json = VersionMetadata(**archive.read_json(json_entry))

            if archive.is_directory("maven"):
                archive.extract_tree("maven", self.root.libraries_dir)

            tools = [LibraryEntry.from_metadata(lib, self.store.platform, self.settings.forge_maven_url)
                     for lib in profile.libraries]
            await self.fetch_libraries(tools)

            variables = self._resolve_data(profile, archive, Path(tmp), installer, mcversion)
            await self._run_processors(profile.processors, variables, mcversion)

        return version_json

    def _resolve_data(self, profile: ModernInstallProfile, archive: ZipArchive, tmp: Path,
                      installer: Path, mcversion: str) -> Dict[str, str]:
        variables = {
            "SIDE": "client",
            "MINECRAFT_JAR": str(self.root.version_jar(mcversion)),
            "MINECRAFT_VERSION": mcversion,
            "ROOT": str(self.root.root),
            "INSTALLER": str(installer),
            "LIBRARY_DIR": str(self.root.libraries_dir),
        }
        for key, sided in profile.data.items():
            value = sided.client
            if value.startswith("/") and archive.is_file(value):
                variables[key] = str(archive.extract(value, safe_join(tmp, value)))
            else:
                variables[key] = self._substitute(value, variables)
        return variables

    def _substitute(self, value: str, variables: Dict[str, str]) -> str:
        if len(value) >= 2 and value[0] == "[" and value[-1] == "]":
            return str(self.root.library_path(library_path(value[1:-1])))
        if len(value) >= 2 and value[0] == "'" and value[-1] == "'":
            return value[1:-1]
        return _VARIABLE.sub(lambda m: variables.get(m.group(1), m.group(0)), value)

    async def _outputs_valid(self, outputs: Dict[str, str]) -> Optional[str]:
        """None when every declared output exists with the expected sha1, else the problem."""
        for path, sha1 in outputs.items():
            output = Path(path)
            if not output.is_file():
                return f"missing output {output}"
            if sha1 and await file_digest(output) != sha1.lower():
                return f"output {output.name} checksum mismatch"
        return None

    def _java_executable(self) -> Optional[str]:
        if self.java:
            return self.java
        find_java = getattr(self.runtime, "find_java", None)
        found = find_java() if find_java else None
        return str(found) if found else None

    async def _run_processors(self, processors: List[ForgeProcessor], variables: Dict[str, str],
                              mcversion: str) -> None:
        for index, processor in enumerate(processors):
            if processor.sides and "client" not in processor.sides:
                continue
            step = f"processor[{index}] {processor.jar}"
            outputs = {self._substitute(k, variables): self._substitute(v, variables)
                       for k, v in processor.outputs.items()}
            if outputs and await self._outputs_valid(outputs) is None:
                logger.debug("Skipping %s, outputs already present", step)
                continue

            if self.runtime is None:
                raise ProcessorStepFailed(step, "no runtime available to run processors")
            java = self._java_executable()
            if java is None:
                raise ProcessorStepFailed(step, "no java executable found")
            if any("{MINECRAFT_JAR}" in arg for arg in processor.args) \
                    and not self.root.version_jar(mcversion).is_file():
                raise ProcessorStepFailed(step, f"base game jar of {mcversion} is not installed")

            jar = self.root.library_path(library_path(processor.jar))
            if not jar.is_file():
                raise ProcessorStepFailed(step, f"tool jar {jar.name} is missing")
            main_class = _read_main_class(jar)
            if not main_class:
                raise ProcessorStepFailed(step, f"{jar.name} declares no Main-Class")

            classpath = [jar] + [self.root.library_path(library_path(name)) for name in processor.classpath]
            args = [self._substitute(arg, variables) for arg in processor.args]
            logger.info("Running Forge %s", step)
            try:
                code = await self.runtime.run(java, ["-cp", os.pathsep.join(str(p) for p in classpath),
                                                     main_class, *args], cwd=self.root.root)
            except OSError as e:
                raise ProcessorStepFailed(step, f"could not start java: {e}") from e
            if code != 0:
                raise ProcessorStepFailed(step, f"exit status {code}", exit_code=code)

            problem = await self._outputs_valid(outputs)
            if problem:
                raise ProcessorStepFailed(step, problem)

    async def build_descriptor(self, session: InstallSession[ForgeManifest]) -> VersionMetadata:
        shape = session.data["shape"]
        version_json: VersionMetadata = session.data["version_json"]
        return version_json.model_copy(update={
            "id": shape.version_id,
            "inheritsFrom": shape.manifest.mcversion,
        })
