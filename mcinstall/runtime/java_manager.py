"""Java runtime discovery and process invocation."""

import asyncio
import logging
import os
import platform
import shutil
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

logger = logging.getLogger(__name__)


class ProcessRunner(Protocol):
    async def run(self, executable: str, args: Sequence[str], cwd: Optional[Path] = None) -> int:
        ...


def _java_binary_name() -> str:
    return "java.exe" if platform.system() == "Windows" else "java"


class JavaManager:
    """Runs java processes to completion and locates an installed runtime."""

    def __init__(self, runtime_dir: Optional[Path] = None):
        self.runtime_dir = runtime_dir or (Path.home() / ".minecraft" / "runtime")

    def find_java(self) -> Optional[Path]:
        """Detect installed Java on system."""
        java_home = os.environ.get("JAVA_HOME")
        if java_home:
            candidate = Path(java_home) / "bin" / _java_binary_name()
            if candidate.exists():
                return candidate

        on_path = shutil.which("java")
        if on_path:
            return Path(on_path)

        # Check common paths
        common_paths = [
            self.runtime_dir,
            Path("C:/Program Files/Java"),
            Path("C:/Program Files (x86)/Java"),
            Path("/usr/lib/jvm"),
            Path("/Library/Java/JavaVirtualMachines"),
        ]

        for base in common_paths:
            if not base.is_dir():
                continue
            for java_bin in sorted(base.glob(f"**/bin/{_java_binary_name()}")):
                if java_bin.is_file():
                    return java_bin

        return None

    async def run(self, executable: str, args: Sequence[str], cwd: Optional[Path] = None) -> int:
        """Run ``executable`` with ``args`` and return its exit status."""
        logger.debug("Running %s %s", executable, " ".join(args))
        process = await asyncio.create_subprocess_exec(
            str(executable), *[str(a) for a in args],
            cwd=str(cwd) if cwd else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            stdin=asyncio.subprocess.DEVNULL,
        )
        output, _ = await process.communicate()
        lines: List[str] = output.decode("utf-8", errors="replace").splitlines() if output else []
        for line in lines:
            logger.debug("[%s] %s", Path(executable).name, line)
        if process.returncode != 0:
            logger.warning("%s exited with %s", executable, process.returncode)
        return process.returncode
