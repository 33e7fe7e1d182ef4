"""Installer settings loaded from the environment."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ENV_FILENAME = ".env"


class InstallerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MCINSTALL_", extra="ignore")

    minecraft_dir: Path = Field(default_factory=lambda: Path.home() / ".minecraft")
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".cache" / "mcinstall")
    concurrency: int = Field(default=8, ge=1, description="Parallel downloads and checks")

    version_manifest_url: str = "https://launchermeta.mojang.com/mc/game/version_manifest.json"
    libraries_url: str = "https://libraries.minecraft.net/"
    resources_url: str = "https://resources.download.minecraft.net/"
    forge_maven_url: str = "https://maven.minecraftforge.net/"
    fabric_meta_url: str = "https://meta.fabricmc.net/"
    fabric_maven_url: str = "https://maven.fabricmc.net/"
    liteloader_url: str = "http://dl.liteloader.com/versions/"
    curseforge_api_url: str = "https://api.curseforge.com"
    curseforge_api_key: Optional[str] = None


def load_settings(env_file: Optional[Path] = None) -> InstallerSettings:
    """Load settings from ``MCINSTALL_*`` variables and an optional ``.env`` file."""

    candidate = env_file or Path.cwd() / DEFAULT_ENV_FILENAME
    return InstallerSettings(_env_file=candidate if candidate.exists() else None)
