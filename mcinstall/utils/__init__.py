"""Common utilities."""

from .archive import ZipArchive
from .async_http import AsyncHTTPClient
from .logger import setup_logging
from .tasks import CANCELLED, collect_errors, run_bounded

__all__ = ["ZipArchive", "AsyncHTTPClient", "setup_logging", "CANCELLED", "collect_errors", "run_bounded"]
