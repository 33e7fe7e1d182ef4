"""Platform description and evaluation of version json rules."""

import platform as _platform
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional


@dataclass(frozen=True)
class Platform:
    """The system a descriptor is resolved for."""
    name: str                   # "windows" | "osx" | "linux"
    arch: str                   # "x86_64", "x86", "arm64", ...
    version: str = ""

    @property
    def arch_bits(self) -> str:
        return "64" if "64" in self.arch else "32"

    @classmethod
    def current(cls) -> "Platform":
        current_os = _platform.system().lower()
        if current_os == "darwin":
            current_os = "osx"
        current_arch = _platform.machine().lower()
        if current_arch == "amd64":
            current_arch = "x86_64"
        return cls(name=current_os, arch=current_arch, version=_platform.release())


def _get(obj: Any, key: str) -> Any:
    # rules come either as pydantic models or as plain dicts
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def rule_matches(rule: Any, platform: Platform) -> bool:
    """Check if a single rule's conditions hold on ``platform``."""
    # feature-gated rules (demo user, custom resolution...) are never enabled here
    if _get(rule, "features"):
        return False

    rule_os = _get(rule, "os")
    if not rule_os:
        return True

    name = _get(rule_os, "name")
    if name and name != platform.name:
        return False
    arch = _get(rule_os, "arch")
    if arch and arch not in (platform.arch, "x86" if platform.arch_bits == "32" else None):
        return False
    version = _get(rule_os, "version")
    if version and not re.search(version, platform.version or ""):
        return False
    return True


def evaluate_rules(rules: Optional[Iterable[Any]], platform: Platform) -> bool:
    """Mojang rule semantics: no rules means allowed, otherwise the last matching rule decides."""
    if not rules:
        return True

    allow = False
    for rule in rules:
        if rule_matches(rule, platform):
            allow = _get(rule, "action") == "allow"
    return allow
