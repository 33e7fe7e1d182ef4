"""Common state machine of the mod loader installers."""

import logging
import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar

from ..config import InstallerSettings
from ..exceptions import InstallerError, InstallStepFailed, MultipleError, NetworkError
from ..utils.tasks import collect_errors, run_bounded
from ..versions.download_manager import Downloader, verify_file
from ..versions.models import Checksum, LibraryEntry, VersionMetadata
from ..versions.store import VersionStore

logger = logging.getLogger(__name__)

M = TypeVar("M")


class InstallState(str, Enum):
    START = "Start"
    FETCH_INSTALLER = "FetchInstaller"
    TRANSFORM = "Transform"
    MERGE_DESCRIPTOR = "MergeDescriptor"
    DONE = "Done"
    FAILED = "Failed"


@dataclass
class InstallSession(Generic[M]):
    """Per-invocation state of an installer run."""
    raw_manifest: Any
    options: Any = None
    manifest: Optional[M] = None
    state: InstallState = InstallState.START
    history: List[InstallState] = field(default_factory=lambda: [InstallState.START])
    version_id: Optional[str] = None
    artifacts: Dict[str, Path] = field(default_factory=dict)
    data: Dict[str, Any] = field(default_factory=dict)


def checksum_of(sha1: Optional[str] = None, md5: Optional[str] = None) -> Optional[Checksum]:
    if sha1:
        return Checksum(algorithm="sha1", hexdigest=sha1)
    if md5:
        return Checksum(algorithm="md5", hexdigest=md5)
    return None


def raise_collected(errors: Sequence[Exception], what: str):
    """Re-raise one error as itself, several as a MultipleError."""
    if len(errors) == 1:
        raise errors[0]
    if errors:
        raise MultipleError(errors, f"{len(errors)} {what} failed")


class LoaderInstaller(ABC, Generic[M]):
    """Drives Start -> FetchInstaller -> Transform -> MergeDescriptor -> Done.

    Any error moves the session to Failed and leaves the machine with the
    failing state recorded in ``error.step``. The descriptor is persisted as the
    very last action, so a failed run never leaves a version json behind.
    """

    loader = "loader"

    def __init__(self, store: VersionStore, downloader: Downloader,
                 settings: Optional[InstallerSettings] = None, concurrency: int = 8):
        self.store = store
        self.root = store.root
        self.downloader = downloader
        self.settings = settings or InstallerSettings()
        self.concurrency = concurrency

    @abstractmethod
    def classify(self, raw_manifest: Any) -> M:
        """Map raw input to exactly one manifest variant or raise UnsupportedManifestShape."""

    @abstractmethod
    async def fetch_installer(self, session: InstallSession[M]) -> None:
        ...

    async def transform(self, session: InstallSession[M]) -> None:
        """Loaders without a transform step keep this no-op."""

    @abstractmethod
    async def build_descriptor(self, session: InstallSession[M]) -> VersionMetadata:
        ...

    async def persist(self, metadata: VersionMetadata) -> Path:
        return await self.store.write(metadata)

    def _advance(self, session: InstallSession[M], state: InstallState):
        logger.debug("%s install %s: %s -> %s", self.loader, session.version_id or "?",
                     session.state.value, state.value)
        session.state = state
        session.history.append(state)

    async def run(self, raw_manifest: Any, options: Any = None) -> InstallSession[M]:
        session: InstallSession[M] = InstallSession(raw_manifest=raw_manifest, options=options)
        try:
            session.manifest = self.classify(raw_manifest)
            self._advance(session, InstallState.FETCH_INSTALLER)
            await self.fetch_installer(session)
            self._advance(session, InstallState.TRANSFORM)
            await self.transform(session)
            self._advance(session, InstallState.MERGE_DESCRIPTOR)
            metadata = await self.build_descriptor(session)
            session.version_id = metadata.id
            await self.persist(metadata)
        except InstallerError as e:
            if e.step is None:
                e.step = session.state.value
            self._advance(session, InstallState.FAILED)
            logger.error("%s install failed: %s", self.loader, e)
            raise
        except (OSError, ValueError, KeyError, zipfile.BadZipFile) as e:
            failed = session.state
            self._advance(session, InstallState.FAILED)
            logger.error("%s install failed in %s: %s", self.loader, failed.value, e)
            raise InstallStepFailed(failed.value, e) from e

        self._advance(session, InstallState.DONE)
        logger.info("Installed %s as %s", self.loader, session.version_id)
        return session

    async def install(self, raw_manifest: Any, options: Any = None) -> str:
        """Run the installer and return the id of the written version."""
        session = await self.run(raw_manifest, options)
        return session.version_id

    async def fetch_artifact(self, url: Optional[str], dest: Path, checksum: Optional[Checksum] = None) -> Path:
        """Fetch unless ``dest`` already holds a verified copy."""
        if await verify_file(dest, checksum):
            return dest
        if not url:
            raise NetworkError(str(dest), "no download url and file is missing")
        await self.downloader.fetch(url, dest, checksum)
        return dest

    async def fetch_libraries(self, libraries: Sequence[LibraryEntry]) -> List[Path]:
        jobs = [lambda lib=lib: self.fetch_artifact(lib.url, self.root.library_path(lib.path), lib.checksum)
                for lib in libraries]
        results = await run_bounded(jobs, self.concurrency)
        raise_collected(collect_errors(results), "libraries")
        return results
