"""Curseforge modpack installer."""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Literal, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import InstallerSettings
from ..exceptions import ManifestValidationError, MultipleError, NetworkError
from ..utils.archive import ZipArchive
from ..utils.tasks import CANCELLED, run_bounded
from ..versions.download_manager import Downloader, verify_file
from ..versions.manager import JsonClient
from ..versions.models import Checksum

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"
FORGECDN_URL = "https://edge.forgecdn.net/files/"

# hash algorithm ids used by the Curseforge API
_HASH_ALGORITHMS = {1: "sha1", 2: "md5"}


class CurseforgeModLoader(BaseModel):
    id: str
    primary: bool = False


class CurseforgeMinecraft(BaseModel):
    version: str
    modLoaders: List[CurseforgeModLoader] = Field(default_factory=list)


class CurseforgeFile(BaseModel):
    projectID: int
    fileID: int
    required: bool


class CurseforgeManifest(BaseModel):
    model_config = ConfigDict(extra="allow")

    manifestType: Literal["minecraftModpack"]
    manifestVersion: int
    minecraft: CurseforgeMinecraft
    name: Optional[str] = None
    version: Optional[str] = None
    author: Optional[str] = None
    files: List[CurseforgeFile]
    overrides: str = "overrides"


class ModpackInstallOptions(BaseModel):
    skip_existing: bool = True
    mods_directory: str = "mods"


class ResolvedModFile(BaseModel):
    url: str
    file_name: str
    sha1: Optional[str] = None
    md5: Optional[str] = None
    size: Optional[int] = None

    @property
    def checksum(self) -> Optional[Checksum]:
        if self.sha1:
            return Checksum(algorithm="sha1", hexdigest=self.sha1)
        if self.md5:
            return Checksum(algorithm="md5", hexdigest=self.md5)
        return None


class ModFileResolver(Protocol):
    async def resolve(self, project_id: int, file_id: int) -> ResolvedModFile:
        ...


@dataclass
class ModpackInstallReport:
    manifest: CurseforgeManifest
    destination: Path
    installed: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    overrides: List[Path] = field(default_factory=list)
    failures: List[Exception] = field(default_factory=list)


def forgecdn_url(file_id: int, file_name: str) -> str:
    return f"{FORGECDN_URL}{file_id // 1000}/{file_id % 1000}/{file_name}"


class CurseforgeApiResolver:
    """Resolves project/file ids through the Curseforge REST API."""

    def __init__(self, http: JsonClient, settings: Optional[InstallerSettings] = None):
        self.http = http
        self.settings = settings or InstallerSettings()

    @property
    def headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.settings.curseforge_api_key:
            headers["x-api-key"] = self.settings.curseforge_api_key
        return headers

    async def resolve(self, project_id: int, file_id: int) -> ResolvedModFile:
        url = f"{self.settings.curseforge_api_url.rstrip('/')}/v1/mods/{project_id}/files/{file_id}"
        payload = await self.http.get(url, headers=self.headers)
        data = payload.get("data") if isinstance(payload, dict) else None
        if not data or not data.get("fileName"):
            raise NetworkError(url, "response carries no file data")

        hashes = {}
        for entry in data.get("hashes") or []:
            algorithm = _HASH_ALGORITHMS.get(entry.get("algo"))
            if algorithm:
                hashes[algorithm] = entry.get("value")

        file_name = data["fileName"]
        # authors can withhold the API download url, the CDN still serves the file
        download_url = data.get("downloadUrl") or forgecdn_url(file_id, file_name)
        return ResolvedModFile(url=download_url, file_name=file_name, size=data.get("fileLength"),
                               sha1=hashes.get("sha1"), md5=hashes.get("md5"))


class CurseforgeInstaller:
    def __init__(self, downloader: Downloader, resolver: ModFileResolver, concurrency: int = 8):
        self.downloader = downloader
        self.resolver = resolver
        self.concurrency = concurrency

    @staticmethod
    def read_manifest(archive: ZipArchive) -> CurseforgeManifest:
        """Validate the modpack's ``manifest.json``."""
        if not archive.is_file(MANIFEST_NAME):
            raise ManifestValidationError(f"{archive.path.name} has no {MANIFEST_NAME}", [MANIFEST_NAME])
        try:
            data = archive.read_json(MANIFEST_NAME)
        except ValueError as e:
            raise ManifestValidationError(f"{MANIFEST_NAME} is not valid json: {e}", [MANIFEST_NAME]) from e
        if not isinstance(data, dict):
            raise ManifestValidationError(f"{MANIFEST_NAME} must be an object", [MANIFEST_NAME])
        try:
            return CurseforgeManifest(**data)
        except ValidationError as e:
            fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
            raise ManifestValidationError(f"invalid {MANIFEST_NAME}: {', '.join(fields)}", fields) from e

    @staticmethod
    async def _is_current(dest: Path, resolved: ResolvedModFile) -> bool:
        if not dest.is_file():
            return False
        if resolved.checksum is not None:
            return await verify_file(dest, resolved.checksum)
        if resolved.size is not None:
            return dest.stat().st_size == resolved.size
        return True

    async def _install_file(self, entry: CurseforgeFile, mods_dir: Path, options: ModpackInstallOptions,
                            cancel: asyncio.Event):
        try:
            resolved = await self.resolver.resolve(entry.projectID, entry.fileID)
            dest = mods_dir / resolved.file_name
            if options.skip_existing and await self._is_current(dest, resolved):
                logger.debug("Skipping %s, already present", resolved.file_name)
                return "skipped", dest
            await self.downloader.fetch(resolved.url, dest, resolved.checksum)
            return "installed", dest
        except Exception:
            if entry.required:
                cancel.set()
            raise

    async def install(self, archive_path: Union[str, Path], destination: Union[str, Path],
                      options: Optional[ModpackInstallOptions] = None) -> ModpackInstallReport:
        """Install a modpack archive into ``destination``.

        A required mod that cannot be fetched stops the remaining downloads and
        raises MultipleError carrying every failure. Failed optional mods are
        listed in the report.
        """
        options = options or ModpackInstallOptions()
        destination = Path(destination)

        with ZipArchive(archive_path) as archive:
            manifest = self.read_manifest(archive)
            report = ModpackInstallReport(manifest=manifest, destination=destination)
            mods_dir = destination / options.mods_directory
            logger.info("Installing modpack %s (%d files) into %s",
                        manifest.name or archive.path.name, len(manifest.files), destination)

            cancel = asyncio.Event()
            jobs = [lambda entry=entry: self._install_file(entry, mods_dir, options, cancel)
                    for entry in manifest.files]
            results = await run_bounded(jobs, self.concurrency, cancel)

            required_failed = False
            for entry, result in zip(manifest.files, results):
                if result is CANCELLED:
                    continue
                if isinstance(result, Exception):
                    report.failures.append(result)
                    required_failed = required_failed or entry.required
                    if not entry.required:
                        logger.warning("Optional mod %s/%s failed: %s", entry.projectID, entry.fileID, result)
                    continue
                outcome, path = result
                (report.skipped if outcome == "skipped" else report.installed).append(path)

            if required_failed:
                raise MultipleError(report.failures, "modpack install aborted, required mod(s) failed")

            if archive.is_directory(manifest.overrides):
                report.overrides = archive.extract_tree(manifest.overrides, destination)

        logger.info("Modpack installed: %d fetched, %d skipped, %d override file(s)",
                    len(report.installed), len(report.skipped), len(report.overrides))
        return report
