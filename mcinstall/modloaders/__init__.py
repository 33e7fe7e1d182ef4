"""Mod loader installers."""

from .base import InstallSession, InstallState, LoaderInstaller
from .fabric import FabricInstaller, FabricManifest
from .forge import (ForgeInstaller, ForgeManifest, LegacyForgeShape, ModernForgeShape,
                    classify_forge_manifest, classify_forge_shape)
from .liteloader import LiteLoaderInstaller, LiteLoaderInstallOptions, LiteLoaderRelease, LiteLoaderSnapshot
from .modloader_manager import ModLoaderManager

__all__ = [
    "InstallSession", "InstallState", "LoaderInstaller",
    "FabricInstaller", "FabricManifest",
    "ForgeInstaller", "ForgeManifest", "LegacyForgeShape", "ModernForgeShape",
    "classify_forge_manifest", "classify_forge_shape",
    "LiteLoaderInstaller", "LiteLoaderInstallOptions", "LiteLoaderRelease", "LiteLoaderSnapshot",
    "ModLoaderManager",
]
