"""Path layout of a Minecraft root directory."""

from pathlib import Path
from typing import Union


class MinecraftFolder:
    """Pure path derivations under a root; nothing here touches the disk."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.versions_dir = self.root / "versions"
        self.libraries_dir = self.root / "libraries"
        self.assets_dir = self.root / "assets"
        self.mods_dir = self.root / "mods"

    @classmethod
    def from_path(cls, location: Union[str, Path, "MinecraftFolder"]) -> "MinecraftFolder":
        if isinstance(location, MinecraftFolder):
            return location
        return cls(location)

    def version_dir(self, version_id: str) -> Path:
        return self.versions_dir / version_id

    def version_json(self, version_id: str) -> Path:
        return self.version_dir(version_id) / f"{version_id}.json"

    def version_jar(self, version_id: str) -> Path:
        return self.version_dir(version_id) / f"{version_id}.jar"

    def natives_dir(self, version_id: str) -> Path:
        return self.version_dir(version_id) / f"{version_id}-natives"

    def library_path(self, relative_path: str) -> Path:
        return self.libraries_dir / relative_path

    def asset_index(self, asset_index_id: str) -> Path:
        return self.assets_dir / "indexes" / f"{asset_index_id}.json"

    def asset_object(self, hash_value: str) -> Path:
        return self.assets_dir / "objects" / hash_value[:2] / hash_value

    def __repr__(self) -> str:
        return f"MinecraftFolder({str(self.root)!r})"
