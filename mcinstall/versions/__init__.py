"""Version management module."""

from .download_manager import DependencyInstaller, DownloadManager, file_digest, verify_file
from .manager import VersionManager
from .models import (Checksum, LibraryEntry, MavenCoordinate, VersionDescriptor, VersionInfo,
                     VersionManifest, VersionMetadata)
from .rules import Platform, evaluate_rules
from .store import VersionStore, merge_chain, resolve_version

__all__ = [
    "DependencyInstaller", "DownloadManager", "file_digest", "verify_file",
    "VersionManager", "Checksum", "LibraryEntry", "MavenCoordinate", "VersionDescriptor",
    "VersionInfo", "VersionManifest", "VersionMetadata", "Platform", "evaluate_rules",
    "VersionStore", "merge_chain", "resolve_version",
]
