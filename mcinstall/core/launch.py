"""Launch-time preparation of an installed version."""

import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from ..diagnosis.integrity import IntegrityChecker
from ..diagnosis.models import Issue
from ..utils.archive import ZipArchive
from ..versions.models import VersionDescriptor
from ..versions.rules import Platform
from .folder import MinecraftFolder

logger = logging.getLogger(__name__)


async def check_launch_ready(root: Union[str, Path, MinecraftFolder], descriptor: VersionDescriptor,
                             platform: Optional[Platform] = None, concurrency: int = 8) -> List[Issue]:
    """Issues that would prevent ``descriptor`` from launching; empty when ready."""
    checker = IntegrityChecker(platform, concurrency)
    issues = await checker.check(root, descriptor)
    if issues:
        logger.warning("%s is not ready to launch: %d issue(s)", descriptor.id, len(issues))
    return issues


def extract_natives(root: Union[str, Path, MinecraftFolder], descriptor: VersionDescriptor,
                    platform: Optional[Platform] = None) -> Path:
    """Unpack the platform's native libraries into the version's natives directory."""
    root = MinecraftFolder.from_path(root)
    platform = platform or Platform.current()
    natives_dir = root.natives_dir(descriptor.id)
    natives_dir.mkdir(parents=True, exist_ok=True)

    for lib in descriptor.applicable_libraries(platform):
        if not lib.native:
            continue
        with ZipArchive(root.library_path(lib.path)) as archive:
            archive.extract_tree("", natives_dir, exclude=list(lib.extract_exclude))
        logger.debug("Extracted natives of %s", lib.name)
    return natives_dir


def assemble_classpath(root: Union[str, Path, MinecraftFolder], descriptor: VersionDescriptor,
                       platform: Optional[Platform] = None) -> str:
    """Assemble Java classpath."""
    root = MinecraftFolder.from_path(root)
    platform = platform or Platform.current()
    paths = [str(root.library_path(lib.path))
             for lib in descriptor.applicable_libraries(platform) if not lib.native]
    paths.append(str(root.version_jar(descriptor.jar or descriptor.id)))
    return os.pathsep.join(paths)
