"""Data models for Minecraft versions.

Two families live here: the raw models mirror the version json on disk
(camelCase, unknown keys preserved), the effective models are the frozen,
chain-merged view used for checking and installing.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional, Any, Tuple, Union
from datetime import datetime

from .rules import Platform, evaluate_rules


# ---------------------------------------------------------------------------
# Raw version json
# ---------------------------------------------------------------------------

class _Raw(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class VersionDownload(_Raw):
    sha1: Optional[str] = None
    size: Optional[int] = None
    url: Optional[str] = None


class VersionDownloads(_Raw):
    client: Optional[VersionDownload] = None
    server: Optional[VersionDownload] = None


class VersionLibraryExtractor(_Raw):
    exclude: Optional[List[str]] = None


class VersionLibraryArtifact(_Raw):
    path: Optional[str] = None
    sha1: Optional[str] = None
    size: Optional[int] = None
    url: Optional[str] = None


class VersionLibraryDownloads(_Raw):
    artifact: Optional[VersionLibraryArtifact] = None
    classifiers: Optional[Dict[str, VersionLibraryArtifact]] = None


class VersionLibraryRulesOs(_Raw):
    name: Optional[str] = None
    version: Optional[str] = None
    arch: Optional[str] = None


class VersionLibraryRules(_Raw):
    action: str
    os: Optional[VersionLibraryRulesOs] = None
    features: Optional[Dict[str, Any]] = None


class VersionLibrary(_Raw):
    name: str
    url: Optional[str] = None
    downloads: Optional[VersionLibraryDownloads] = None
    rules: Optional[List[VersionLibraryRules]] = None
    extract: Optional[VersionLibraryExtractor] = None
    natives: Optional[Dict[str, str]] = None
    checksums: Optional[List[str]] = None
    clientreq: Optional[bool] = None
    serverreq: Optional[bool] = None


class VersionAssetIndex(_Raw):
    id: str
    sha1: Optional[str] = None
    size: Optional[int] = None
    totalSize: Optional[int] = None
    url: Optional[str] = None


class ConditionalArgument(_Raw):
    rules: List[VersionLibraryRules] = Field(default_factory=list)
    value: Union[str, List[str]]


ArgumentToken = Union[str, ConditionalArgument]


class VersionArguments(_Raw):
    game: Optional[List[ArgumentToken]] = None
    jvm: Optional[List[ArgumentToken]] = None


class VersionInfo(_Raw):
    id: str
    type: str
    url: str
    time: datetime
    releaseTime: datetime
    sha1: Optional[str] = None
    complianceLevel: int = 0


class VersionManifest(_Raw):
    latest: Dict[str, str]
    versions: List[VersionInfo]


class VersionMetadata(_Raw):
    """Parsed version.json data - flexible for all versions"""
    id: str
    inheritsFrom: Optional[str] = None
    type: Optional[str] = None
    time: Optional[datetime] = None
    releaseTime: Optional[datetime] = None
    minimumLauncherVersion: Optional[int] = None
    downloads: Optional[VersionDownloads] = None
    assets: Optional[str] = None
    assetIndex: Optional[VersionAssetIndex] = None
    arguments: Optional[VersionArguments] = None
    minecraftArguments: Optional[str] = None
    libraries: Optional[List[VersionLibrary]] = None
    mainClass: Optional[str] = None
    jar: Optional[str] = None

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Effective descriptor
# ---------------------------------------------------------------------------

class Checksum(BaseModel):
    model_config = ConfigDict(frozen=True)

    algorithm: str = "sha1"
    hexdigest: str = ""

    @property
    def known(self) -> bool:
        """An empty digest means "unknown", never "corrupt"."""
        return bool(self.hexdigest)


class MavenCoordinate(BaseModel):
    """``group:artifact:version[:classifier][@extension]``"""
    model_config = ConfigDict(frozen=True)

    group: str
    artifact: str
    version: str
    classifier: Optional[str] = None
    extension: str = "jar"

    @classmethod
    def parse(cls, name: str) -> "MavenCoordinate":
        extension = "jar"
        if "@" in name:
            name, extension = name.rsplit("@", 1)
        parts = name.split(":")
        if len(parts) < 3:
            raise ValueError(f"Invalid maven coordinate: {name!r}")
        classifier = parts[3] if len(parts) > 3 and parts[3] else None
        return cls(group=parts[0], artifact=parts[1], version=parts[2],
                   classifier=classifier, extension=extension)

    def with_classifier(self, classifier: Optional[str]) -> "MavenCoordinate":
        return self.model_copy(update={"classifier": classifier})

    @property
    def path(self) -> str:
        """Repository-relative path; a pure function of the coordinate."""
        file_name = f"{self.artifact}-{self.version}"
        if self.classifier:
            file_name += f"-{self.classifier}"
        file_name += f".{self.extension}"
        return "/".join([*self.group.split("."), self.artifact, self.version, file_name])

    @property
    def key(self) -> str:
        key = f"{self.group}:{self.artifact}"
        return f"{key}:{self.classifier}" if self.classifier else key

    def __str__(self) -> str:
        text = f"{self.group}:{self.artifact}:{self.version}"
        if self.classifier:
            text += f":{self.classifier}"
        if self.extension != "jar":
            text += f"@{self.extension}"
        return text


def library_path(name: str) -> str:
    """Relative library path for a maven coordinate string."""
    return MavenCoordinate.parse(name).path


class LibraryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    coordinate: MavenCoordinate
    path: str
    url: Optional[str] = None
    checksum: Optional[Checksum] = None
    size: Optional[int] = None
    rules: Tuple[VersionLibraryRules, ...] = ()
    natives: Optional[Dict[str, str]] = None
    extract_exclude: Tuple[str, ...] = ()

    @property
    def native(self) -> bool:
        return self.natives is not None

    @property
    def merge_key(self) -> str:
        return f"{self.coordinate.key}#native" if self.native else self.coordinate.key

    def applies_to(self, platform: Platform) -> bool:
        if self.natives is not None and platform.name not in self.natives:
            return False
        return evaluate_rules(self.rules, platform)

    @classmethod
    def from_metadata(cls, library: VersionLibrary, platform: Platform,
                      default_repository: str = "https://libraries.minecraft.net/") -> "LibraryEntry":
        coordinate = MavenCoordinate.parse(library.name)
        artifact = library.downloads.artifact if library.downloads else None

        if library.natives is not None:
            classifier = library.natives.get(platform.name)
            artifact = None
            if classifier:
                classifier = classifier.replace("${arch}", platform.arch_bits)
                coordinate = coordinate.with_classifier(classifier)
                if library.downloads and library.downloads.classifiers:
                    artifact = library.downloads.classifiers.get(classifier)

        path = coordinate.path
        checksum = None
        size = None
        url = None
        if artifact is not None:
            if artifact.sha1 is not None:
                checksum = Checksum(algorithm="sha1", hexdigest=artifact.sha1)
            size = artifact.size
            url = artifact.url
        if checksum is None and library.checksums:
            checksum = Checksum(algorithm="sha1", hexdigest=library.checksums[0])
        if artifact is None or artifact.url is None:
            repository = library.url or default_repository
            if not repository.endswith("/"):
                repository += "/"
            url = repository + path

        return cls(
            name=library.name,
            coordinate=coordinate,
            path=path,
            # an explicit empty url means "shipped by an installer"
            url=url or None,
            checksum=checksum,
            size=size,
            rules=tuple(library.rules or ()),
            natives=library.natives,
            extract_exclude=tuple(library.extract.exclude or ()) if library.extract else (),
        )


class VersionDescriptor(BaseModel):
    """Effective, chain-merged version; never mutated after resolution."""
    model_config = ConfigDict(frozen=True)

    id: str
    inherits_from: Optional[str] = None
    type: Optional[str] = None
    main_class: Optional[str] = None
    asset_index_id: Optional[str] = None
    asset_index: Optional[VersionAssetIndex] = None
    libraries: Tuple[LibraryEntry, ...] = ()
    jvm_arguments: Tuple[ArgumentToken, ...] = ()
    game_arguments: Tuple[ArgumentToken, ...] = ()
    jar: Optional[str] = None
    client_download: Optional[VersionDownload] = None
    inheritances: Tuple[str, ...] = ()

    @property
    def client_checksum(self) -> Optional[Checksum]:
        if self.client_download and self.client_download.sha1:
            return Checksum(algorithm="sha1", hexdigest=self.client_download.sha1)
        return None

    def applicable_libraries(self, platform: Platform) -> List[LibraryEntry]:
        return [lib for lib in self.libraries if lib.applies_to(platform)]
