"""Tests for settings and logging setup."""

import logging

from mcinstall.config import InstallerSettings, load_settings
from mcinstall.utils.logger import setup_logging


def test_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("MCINSTALL_CONCURRENCY", "3")
    monkeypatch.setenv("MCINSTALL_MINECRAFT_DIR", str(tmp_path / "mc"))
    settings = InstallerSettings()
    assert settings.concurrency == 3
    assert settings.minecraft_dir == tmp_path / "mc"
    assert settings.forge_maven_url == "https://maven.minecraftforge.net/"


def test_settings_from_env_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("MCINSTALL_CURSEFORGE_API_KEY=abc\n")
    assert load_settings(env_file).curseforge_api_key == "abc"


def test_setup_logging_writes_file(tmp_path):
    logger = setup_logging(tmp_path)
    try:
        logging.getLogger("mcinstall.tests").info("hello")
        for handler in logger.handlers:
            handler.flush()
        assert "hello" in (tmp_path / "installer.log").read_text()
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()


def test_setup_logging_twice_keeps_one_set_of_handlers(tmp_path):
    logger = setup_logging(tmp_path)
    try:
        assert setup_logging(tmp_path) is logger
        assert len(logger.handlers) == 2
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
