"""Download manager for assets and libraries."""

import aiohttp
import aiofiles
import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Union

from ..config import InstallerSettings
from ..core.folder import MinecraftFolder
from ..exceptions import ChecksumMismatch, MultipleError, NetworkError
from ..utils.tasks import collect_errors, run_bounded
from .models import Checksum, LibraryEntry, VersionDescriptor
from .rules import Platform

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class Downloader(Protocol):
    async def fetch(self, url: str, dest: Path, checksum: Optional[Checksum] = None) -> None:
        ...


async def file_digest(file_path: Path, algorithm: str = "sha1") -> str:
    """Hex digest of a file, read in chunks."""
    digest = hashlib.new(algorithm)
    async with aiofiles.open(file_path, 'rb') as f:
        while chunk := await f.read(CHUNK_SIZE):
            digest.update(chunk)
    return digest.hexdigest()


async def verify_file(file_path: Path, checksum: Optional[Checksum]) -> bool:
    """True if the file exists and matches ``checksum`` (an unknown checksum always matches)."""
    if not file_path.is_file():
        return False
    if checksum is None or not checksum.known:
        return True
    return await file_digest(file_path, checksum.algorithm) == checksum.hexdigest.lower()


class DownloadManager:
    """HTTP implementation of the download collaborator."""

    def __init__(self, concurrent_downloads: int = 8, session: Optional[aiohttp.ClientSession] = None,
                 progress_callback: Optional[Callable] = None):
        self.concurrent_downloads = concurrent_downloads
        self.session = session
        self._owns_session = session is None
        self.progress_callback = progress_callback

    async def __aenter__(self):
        if self.session is None:
            self.session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    async def fetch(self, url: str, dest: Path, checksum: Optional[Checksum] = None) -> None:
        """Download ``url`` to ``dest``, verifying ``checksum`` when it is known."""
        if self.session is None:
            raise RuntimeError("DownloadManager used outside of 'async with'")

        dest.parent.mkdir(parents=True, exist_ok=True)
        part = dest.with_name(dest.name + ".part")
        digest = hashlib.new(checksum.algorithm) if checksum and checksum.known else None
        try:
            async with self.session.get(url) as resp:
                if resp.status >= 400:
                    raise NetworkError(url, resp.reason or "", status=resp.status)
                total_size = int(resp.headers.get('Content-Length', 0))
                downloaded = 0

                async with aiofiles.open(part, 'wb') as f:
                    async for chunk in resp.content.iter_chunked(CHUNK_SIZE):
                        await f.write(chunk)
                        if digest is not None:
                            digest.update(chunk)
                        downloaded += len(chunk)
                        if self.progress_callback:
                            await self.progress_callback(dest.name, downloaded, total_size)
        except aiohttp.ClientError as e:
            part.unlink(missing_ok=True)
            raise NetworkError(url, str(e)) from e
        except NetworkError:
            part.unlink(missing_ok=True)
            raise

        if digest is not None and digest.hexdigest() != checksum.hexdigest.lower():
            part.unlink(missing_ok=True)
            raise ChecksumMismatch(dest, checksum.algorithm, checksum.hexdigest, digest.hexdigest())
        os.replace(part, dest)
        logger.debug("Downloaded %s -> %s", url, dest)


class DependencyInstaller:
    """Fetches everything an effective descriptor needs: jar, libraries, asset index, assets."""

    def __init__(self, root: Union[str, Path, MinecraftFolder], downloader: Downloader,
                 platform: Optional[Platform] = None, concurrency: int = 8,
                 settings: Optional[InstallerSettings] = None):
        self.root = MinecraftFolder.from_path(root)
        self.downloader = downloader
        self.platform = platform or Platform.current()
        self.concurrency = concurrency
        self.settings = settings or InstallerSettings()

    async def _ensure(self, url: Optional[str], dest: Path, checksum: Optional[Checksum]) -> Path:
        if await verify_file(dest, checksum):
            return dest
        if not url:
            raise NetworkError(str(dest), "no download url and file is missing")
        await self.downloader.fetch(url, dest, checksum)
        return dest

    async def _fan_out(self, jobs, what: str) -> List:
        results = await run_bounded(jobs, self.concurrency)
        errors = collect_errors(results)
        if errors:
            raise MultipleError(errors, f"{len(errors)} {what} failed to download")
        return results

    async def install_libraries(self, libraries: List[LibraryEntry]) -> List[Path]:
        """Download all libraries."""
        jobs = []
        for lib in libraries:
            dest = self.root.library_path(lib.path)
            jobs.append(lambda lib=lib, dest=dest: self._ensure(lib.url, dest, lib.checksum))
        return await self._fan_out(jobs, "libraries")

    async def install_version_jar(self, descriptor: VersionDescriptor) -> Path:
        """Download version JAR."""
        jar_id = descriptor.jar or descriptor.id
        dest = self.root.version_jar(jar_id)
        url = descriptor.client_download.url if descriptor.client_download else None
        return await self._ensure(url, dest, descriptor.client_checksum)

    async def install_asset_index(self, descriptor: VersionDescriptor) -> Optional[dict]:
        """Download asset index JSON."""
        index = descriptor.asset_index
        if not descriptor.asset_index_id:
            return None
        dest = self.root.asset_index(descriptor.asset_index_id)
        checksum = Checksum(hexdigest=index.sha1) if index and index.sha1 else None
        await self._ensure(index.url if index else None, dest, checksum)
        async with aiofiles.open(dest, 'r', encoding='utf-8') as f:
            return json.loads(await f.read())

    async def install_assets(self, asset_index: dict) -> List[Path]:
        """Download all assets from index."""
        objects = asset_index.get('objects', {})
        base_url = self.settings.resources_url

        jobs = []
        for asset_info in objects.values():
            hash_part = asset_info['hash']
            url = f"{base_url}{hash_part[:2]}/{hash_part}"
            dest = self.root.asset_object(hash_part)
            checksum = Checksum(hexdigest=hash_part)
            jobs.append(lambda url=url, dest=dest, checksum=checksum: self._ensure(url, dest, checksum))
        return await self._fan_out(jobs, "assets")

    async def install_dependencies(self, descriptor: VersionDescriptor) -> None:
        """Install every artifact of ``descriptor``; all failures are reported together."""
        errors: List[Exception] = []
        try:
            await self.install_version_jar(descriptor)
        except (NetworkError, ChecksumMismatch) as e:
            errors.append(e)
        try:
            await self.install_libraries(descriptor.applicable_libraries(self.platform))
        except MultipleError as e:
            errors.extend(e.errors)
        try:
            asset_index = await self.install_asset_index(descriptor)
            if asset_index:
                await self.install_assets(asset_index)
        except MultipleError as e:
            errors.extend(e.errors)
        except (NetworkError, ChecksumMismatch) as e:
            errors.append(e)

        if errors:
            raise MultipleError(errors, f"{descriptor.id}: {len(errors)} artifact(s) failed")
        logger.info("Installed dependencies of %s", descriptor.id)
