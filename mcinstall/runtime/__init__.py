"""Java runtime helpers."""

from .java_manager import JavaManager, ProcessRunner

__all__ = ["JavaManager", "ProcessRunner"]
