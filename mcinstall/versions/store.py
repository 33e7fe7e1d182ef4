"""Version descriptor store: reads, merges and writes version json files."""

import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import aiofiles

from ..config import InstallerSettings
from ..core.folder import MinecraftFolder
from ..exceptions import BrokenInheritanceChain, CyclicInheritance, DescriptorNotFound
from .models import ArgumentToken, LibraryEntry, VersionDescriptor, VersionMetadata
from .rules import Platform

logger = logging.getLogger(__name__)

DEFAULT_LIBRARIES_URL = "https://libraries.minecraft.net/"

# used when nothing in the chain declares jvm arguments (pre-1.13 versions)
LEGACY_JVM_ARGUMENTS = (
    "-Djava.library.path=${natives_directory}",
    "-cp",
    "${classpath}",
)


def merge_chain(chain: Sequence[VersionMetadata], platform: Optional[Platform] = None,
                default_repository: str = DEFAULT_LIBRARIES_URL) -> VersionDescriptor:
    """Merge a descriptor chain (leaf first) into the effective descriptor.

    Merge policy per field:

    * libraries -- walked root to leaf; a level's entries replace earlier
      entries with the same merge key (group, artifact, classifier, native),
      keeping the earlier position. New keys are appended.
    * game arguments -- ``arguments.game`` extends what was inherited,
      legacy ``minecraftArguments`` replaces it.
    * jvm arguments -- ``arguments.jvm`` extends; empty result falls back to
      the legacy template.
    * main class, asset index, type, jar, client download -- leaf value unless
      absent, then the nearest ancestor defining it.
    """
    if not chain:
        raise ValueError("cannot merge an empty descriptor chain")
    platform = platform or Platform.current()

    libraries: Dict[str, List[LibraryEntry]] = {}
    game: List[ArgumentToken] = []
    jvm: List[ArgumentToken] = []
    main_class = version_type = jar = None
    asset_index_id = asset_index = client_download = None

    for meta in reversed(chain):
        level: Dict[str, List[LibraryEntry]] = {}
        for lib in meta.libraries or []:
            entry = LibraryEntry.from_metadata(lib, platform, default_repository)
            level.setdefault(entry.merge_key, []).append(entry)
        libraries.update(level)

        if meta.minecraftArguments is not None:
            game = list(meta.minecraftArguments.split())
        if meta.arguments is not None:
            game.extend(meta.arguments.game or [])
            jvm.extend(meta.arguments.jvm or [])

        if meta.mainClass:
            main_class = meta.mainClass
        if meta.type:
            version_type = meta.type
        if meta.jar:
            jar = meta.jar
        if meta.downloads and meta.downloads.client:
            client_download = meta.downloads.client
        if meta.assetIndex is not None:
            asset_index = meta.assetIndex
            asset_index_id = meta.assetIndex.id
        elif meta.assets:
            asset_index_id = meta.assets
            if asset_index is not None and asset_index.id != meta.assets:
                asset_index = None

    leaf = chain[0]
    return VersionDescriptor(
        id=leaf.id,
        inherits_from=leaf.inheritsFrom,
        type=version_type,
        main_class=main_class,
        asset_index_id=asset_index_id,
        asset_index=asset_index,
        libraries=tuple(entry for entries in libraries.values() for entry in entries),
        jvm_arguments=tuple(jvm) if jvm else LEGACY_JVM_ARGUMENTS,
        game_arguments=tuple(game),
        jar=jar or chain[-1].id,
        client_download=client_download,
        inheritances=tuple(meta.id for meta in chain),
    )


class VersionStore:
    """Descriptor access for one root directory."""

    def __init__(self, root: Union[str, Path, MinecraftFolder], platform: Optional[Platform] = None,
                 settings: Optional[InstallerSettings] = None):
        self.root = MinecraftFolder.from_path(root)
        self.platform = platform or Platform.current()
        self.libraries_url = settings.libraries_url if settings else DEFAULT_LIBRARIES_URL

    def exists(self, version_id: str) -> bool:
        return self.root.version_json(version_id).is_file()

    def list_versions(self) -> List[str]:
        if not self.root.versions_dir.is_dir():
            return []
        return sorted(d.name for d in self.root.versions_dir.iterdir()
                      if d.is_dir() and self.exists(d.name))

    async def read(self, version_id: str) -> VersionMetadata:
        """Read the raw json of one version, without following its parents."""
        path = self.root.version_json(version_id)
        try:
            async with aiofiles.open(path, 'r', encoding='utf-8') as f:
                data = json.loads(await f.read())
        except FileNotFoundError:
            raise DescriptorNotFound(version_id) from None
        except (OSError, ValueError) as e:
            raise DescriptorNotFound(version_id, f"unreadable version json: {e}") from e

        if not isinstance(data, dict):
            raise DescriptorNotFound(version_id, "version json is not an object")
        data.setdefault("id", version_id)
        try:
            return VersionMetadata(**data)
        except ValueError as e:
            raise DescriptorNotFound(version_id, f"invalid version json: {e}") from e

    async def read_chain(self, version_id: str) -> List[VersionMetadata]:
        """Raw descriptors from ``version_id`` up to the root-most ancestor (leaf first)."""
        leaf = await self.read(version_id)
        chain = [leaf]
        visited = [version_id]
        parent = leaf.inheritsFrom
        while parent:
            if parent in visited:
                raise CyclicInheritance(visited + [parent])
            try:
                meta = await self.read(parent)
            except DescriptorNotFound as e:
                raise BrokenInheritanceChain(version_id, parent) from e
            visited.append(parent)
            chain.append(meta)
            parent = meta.inheritsFrom
        return chain

    async def resolve(self, version_id: str) -> VersionDescriptor:
        chain = await self.read_chain(version_id)
        logger.debug("Resolved %s through %s", version_id, " -> ".join(m.id for m in chain))
        return merge_chain(chain, self.platform, self.libraries_url)

    async def write(self, metadata: VersionMetadata) -> Path:
        """Persist a raw descriptor as ``versions/<id>/<id>.json``.

        This is the last action of every installer, so the file is written to a
        temporary name and moved into place.
        """
        path = self.root.version_json(metadata.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
            await f.write(json.dumps(metadata.to_json_dict(), indent=2))
        os.replace(tmp_path, path)
        logger.info("Wrote version descriptor %s", metadata.id)
        return path


async def resolve_version(root: Union[str, Path, MinecraftFolder], version_id: str,
                          platform: Optional[Platform] = None) -> VersionDescriptor:
    """Resolve ``version_id`` under ``root`` into its effective descriptor."""
    return await VersionStore(root, platform).resolve(version_id)
