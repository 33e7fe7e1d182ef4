"""Modpack installation."""

from .curseforge import (CurseforgeApiResolver, CurseforgeFile, CurseforgeInstaller, CurseforgeManifest,
                         ModFileResolver, ModpackInstallOptions, ModpackInstallReport, ResolvedModFile)

__all__ = [
    "CurseforgeApiResolver", "CurseforgeFile", "CurseforgeInstaller", "CurseforgeManifest",
    "ModFileResolver", "ModpackInstallOptions", "ModpackInstallReport", "ResolvedModFile",
]
