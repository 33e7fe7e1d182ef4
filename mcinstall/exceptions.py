"""
Typed errors raised by the installer, store and modpack code paths.

Every error carries an optional ``step`` naming the installer state (or the
processor step) that failed, so a caller can report where an install stopped.
Missing or corrupt artifacts found by diagnosis are *not* errors, they are
``Issue`` values.
"""

from pathlib import Path
from typing import List, Optional, Sequence


class InstallerError(Exception):
    """Base class for all package errors."""

    def __init__(self, message: str, step: Optional[str] = None):
        self.message = message
        self.step = step
        super().__init__(message)

    def __str__(self) -> str:
        if self.step:
            return f"[{self.step}] {self.message}"
        return self.message

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} step={self.step!r} message={self.message!r}>"


class DescriptorNotFound(InstallerError):
    """The leaf version json is absent or unreadable."""

    def __init__(self, version_id: str, reason: str = "version json not found"):
        self.version_id = version_id
        super().__init__(f"{version_id}: {reason}")


class InheritanceError(InstallerError):
    """Base for descriptor chain failures."""


class BrokenInheritanceChain(InheritanceError):
    """An ancestor referenced through ``inheritsFrom`` cannot be loaded."""

    def __init__(self, version_id: str, missing: str):
        self.version_id = version_id
        self.missing = missing
        super().__init__(f"{version_id}: ancestor {missing} is missing or unreadable")


class CyclicInheritance(InheritanceError):
    """An id appears twice while walking the ancestors of a version."""

    def __init__(self, chain: Sequence[str]):
        self.chain = list(chain)
        super().__init__("cyclic inheritance: " + " -> ".join(self.chain))


class ChecksumMismatch(InstallerError):
    def __init__(self, path: Path, algorithm: str, expected: str, actual: str):
        self.path = Path(path)
        self.algorithm = algorithm
        self.expected = expected
        self.actual = actual
        super().__init__(f"{algorithm} mismatch for {self.path.name}: expected {expected}, got {actual}")


class NetworkError(InstallerError):
    """Any transport failure or non-success HTTP status."""

    def __init__(self, url: str, reason: str = "", status: Optional[int] = None):
        self.url = url
        self.status = status
        text = f"failed to fetch {url}"
        if status is not None:
            text += f" (HTTP {status})"
        if reason:
            text += f": {reason}"
        super().__init__(text)


class UnsupportedManifestShape(InstallerError):
    def __init__(self, loader: str, reason: str):
        self.loader = loader
        super().__init__(f"unsupported {loader} manifest: {reason}")


class ProcessorStepFailed(InstallerError):
    """A modern Forge processor exited non-zero or did not produce its outputs."""

    def __init__(self, step: str, reason: str, exit_code: Optional[int] = None):
        self.processor = step
        self.exit_code = exit_code
        super().__init__(f"processor {step} failed: {reason}", step=step)


class ManifestValidationError(InstallerError):
    def __init__(self, message: str, fields: Optional[List[str]] = None):
        self.fields = fields or []
        super().__init__(message)


class InstallStepFailed(InstallerError):
    """Unexpected I/O or data error raised inside an installer step."""

    def __init__(self, step: str, cause: BaseException):
        self.cause = cause
        super().__init__(f"{type(cause).__name__}: {cause}", step=step)


class MultipleError(InstallerError):
    """Failures collected from a concurrent fan-out, all causes preserved."""

    def __init__(self, errors: Sequence[BaseException], message: str = ""):
        self.errors = list(errors)
        summary = message or f"{len(self.errors)} operation(s) failed"
        details = "; ".join(str(e) for e in self.errors[:5])
        if len(self.errors) > 5:
            details += "; ..."
        super().__init__(f"{summary}: {details}" if details else summary)
