"""Diagnosis result models."""

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..versions.models import LibraryEntry


class IssueKind(str, Enum):
    MISSING_VERSION_JSON = "MissingVersionJson"
    MISSING_VERSION_JAR = "MissingVersionJar"
    CORRUPTED_VERSION_JAR = "CorruptedVersionJar"
    BROKEN_INHERITANCE_CHAIN = "BrokenInheritanceChain"
    MISSING_LIBRARY = "MissingLibrary"
    CORRUPTED_LIBRARY = "CorruptedLibrary"
    MISSING_ASSETS_INDEX = "MissingAssetsIndex"
    CORRUPTED_ASSETS_INDEX = "CorruptedAssetsIndex"
    MISSING_ASSET = "MissingAsset"
    CORRUPTED_ASSET = "CorruptedAsset"


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: IssueKind
    entity: str
    path: Optional[Path] = None
    expected: Optional[str] = None
    actual: Optional[str] = None
    library: Optional[LibraryEntry] = None
    detail: Optional[str] = None


class DiagnosisReport(BaseModel):
    """Outcome of one diagnosis; an empty ``issues`` list means the version is intact."""

    version: str
    root: Path
    issues: List[Issue] = Field(default_factory=list)

    def of_kind(self, kind: IssueKind) -> List[Issue]:
        return [issue for issue in self.issues if issue.kind == kind]
