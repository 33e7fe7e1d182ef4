"""Integrity checks of an installed version against its effective descriptor."""

import json
import logging
from pathlib import Path
from typing import List, Optional, Union

import aiofiles

from ..core.folder import MinecraftFolder
from ..utils.tasks import run_bounded
from ..versions.download_manager import file_digest
from ..versions.models import Checksum, LibraryEntry, VersionDescriptor
from ..versions.rules import Platform
from .models import Issue, IssueKind

logger = logging.getLogger(__name__)


class IntegrityChecker:
    """Finds missing and corrupt artifacts; never raises for them."""

    def __init__(self, platform: Optional[Platform] = None, concurrency: int = 8):
        self.platform = platform or Platform.current()
        self.concurrency = concurrency

    async def _check_file(self, path: Path, checksum: Optional[Checksum]) -> Optional[str]:
        """None if fine, "missing", or the actual digest when it mismatches."""
        if not path.is_file():
            return "missing"
        if checksum is None or not checksum.known:
            return None
        actual = await file_digest(path, checksum.algorithm)
        return None if actual == checksum.hexdigest.lower() else actual

    async def _check_library(self, root: MinecraftFolder, lib: LibraryEntry) -> Optional[Issue]:
        path = root.library_path(lib.path)
        result = await self._check_file(path, lib.checksum)
        if result is None:
            return None
        if result == "missing":
            return Issue(kind=IssueKind.MISSING_LIBRARY, entity=str(lib.coordinate), path=path, library=lib)
        return Issue(kind=IssueKind.CORRUPTED_LIBRARY, entity=str(lib.coordinate), path=path,
                     expected=lib.checksum.hexdigest, actual=result, library=lib)

    async def check_version_files(self, root: Union[str, Path, MinecraftFolder],
                                  descriptor: VersionDescriptor) -> List[Issue]:
        root = MinecraftFolder.from_path(root)
        issues = []
        json_path = root.version_json(descriptor.id)
        if not json_path.is_file():
            issues.append(Issue(kind=IssueKind.MISSING_VERSION_JSON, entity=descriptor.id, path=json_path))

        jar_id = descriptor.jar or descriptor.id
        jar_path = root.version_jar(jar_id)
        checksum = descriptor.client_checksum
        result = await self._check_file(jar_path, checksum)
        if result == "missing":
            issues.append(Issue(kind=IssueKind.MISSING_VERSION_JAR, entity=jar_id, path=jar_path))
        elif result is not None:
            issues.append(Issue(kind=IssueKind.CORRUPTED_VERSION_JAR, entity=jar_id, path=jar_path,
                                expected=checksum.hexdigest, actual=result))
        return issues

    async def check_libraries(self, root: Union[str, Path, MinecraftFolder],
                              descriptor: VersionDescriptor) -> List[Issue]:
        """Per-library checks, run concurrently and reported in descriptor order."""
        root = MinecraftFolder.from_path(root)
        libraries = descriptor.applicable_libraries(self.platform)
        jobs = [lambda lib=lib: self._check_library(root, lib) for lib in libraries]
        results = await run_bounded(jobs, self.concurrency)

        issues = []
        for lib, result in zip(libraries, results):
            if isinstance(result, Exception):
                # unreadable file: treat it as corrupt rather than aborting the whole check
                logger.warning("Could not verify %s: %s", lib.name, result)
                issues.append(Issue(kind=IssueKind.CORRUPTED_LIBRARY, entity=str(lib.coordinate),
                                    path=root.library_path(lib.path), library=lib, detail=str(result)))
            elif result is not None:
                issues.append(result)
        return issues

    async def check(self, root: Union[str, Path, MinecraftFolder], descriptor: VersionDescriptor) -> List[Issue]:
        """Version json/jar issues followed by library issues."""
        issues = await self.check_version_files(root, descriptor)
        issues.extend(await self.check_libraries(root, descriptor))
        return issues

    async def check_assets(self, root: Union[str, Path, MinecraftFolder], descriptor: VersionDescriptor,
                           verify: bool = False) -> List[Issue]:
        """Asset index presence/digest, then every object it lists."""
        root = MinecraftFolder.from_path(root)
        if not descriptor.asset_index_id:
            return []

        index_id = descriptor.asset_index_id
        index_path = root.asset_index(index_id)
        index = descriptor.asset_index
        checksum = Checksum(hexdigest=index.sha1) if index and index.sha1 else None
        result = await self._check_file(index_path, checksum)
        if result == "missing":
            return [Issue(kind=IssueKind.MISSING_ASSETS_INDEX, entity=index_id, path=index_path)]
        if result is not None:
            return [Issue(kind=IssueKind.CORRUPTED_ASSETS_INDEX, entity=index_id, path=index_path,
                          expected=checksum.hexdigest, actual=result)]

        try:
            async with aiofiles.open(index_path, 'r', encoding='utf-8') as f:
                objects = json.loads(await f.read()).get("objects", {})
        except (OSError, ValueError, AttributeError) as e:
            return [Issue(kind=IssueKind.CORRUPTED_ASSETS_INDEX, entity=index_id, path=index_path, detail=str(e))]

        names = list(objects)

        async def _check_asset(name: str) -> Optional[Issue]:
            hash_value = objects[name]["hash"]
            path = root.asset_object(hash_value)
            outcome = await self._check_file(path, Checksum(hexdigest=hash_value) if verify else None)
            if outcome is None:
                return None
            if outcome == "missing":
                return Issue(kind=IssueKind.MISSING_ASSET, entity=name, path=path, expected=hash_value)
            return Issue(kind=IssueKind.CORRUPTED_ASSET, entity=name, path=path, expected=hash_value, actual=outcome)

        results = await run_bounded([lambda n=n: _check_asset(n) for n in names], self.concurrency)
        issues = []
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                issues.append(Issue(kind=IssueKind.CORRUPTED_ASSET, entity=name, detail=str(result)))
            elif result is not None:
                issues.append(result)
        return issues
