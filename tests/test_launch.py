"""Tests for launch preparation."""

import os

import pytest

from mcinstall.core.launch import assemble_classpath, check_launch_ready, extract_natives
from mcinstall.diagnosis import IssueKind

from conftest import build_zip

NATIVES = "org/lwjgl/lwjgl/lwjgl-platform/2.9.4/lwjgl-platform-2.9.4-natives-linux.jar"
LWJGL = "org/lwjgl/lwjgl/lwjgl/2.9.4/lwjgl-2.9.4.jar"


@pytest.fixture
def legacy_version(write_version):
    write_version("1.8.9", mainClass="net.minecraft.client.main.Main", libraries=[
        {"name": "org.lwjgl.lwjgl:lwjgl:2.9.4"},
        {"name": "org.lwjgl.lwjgl:lwjgl-platform:2.9.4",
         "natives": {"linux": "natives-linux", "windows": "natives-windows"},
         "extract": {"exclude": ["META-INF/"]}},
    ])


@pytest.mark.asyncio
async def test_not_ready_lists_missing_libraries(store, legacy_version, platform):
    descriptor = await store.resolve("1.8.9")
    issues = await check_launch_ready(store.root, descriptor, platform)

    assert [issue.kind for issue in issues] == [
        IssueKind.MISSING_VERSION_JAR, IssueKind.MISSING_LIBRARY, IssueKind.MISSING_LIBRARY]


@pytest.mark.asyncio
async def test_extract_natives_and_classpath(store, root, legacy_version, platform, write_library):
    write_library(LWJGL)
    build_zip(root.library_path(NATIVES), {
        "liblwjgl64.so": b"so",
        "META-INF/MANIFEST.MF": "Manifest-Version: 1.0\n",
    })
    root.version_jar("1.8.9").write_bytes(b"client")
    descriptor = await store.resolve("1.8.9")

    assert await check_launch_ready(root, descriptor, platform) == []

    natives = extract_natives(root, descriptor, platform)
    assert natives == root.natives_dir("1.8.9")
    assert (natives / "liblwjgl64.so").read_bytes() == b"so"
    assert not (natives / "META-INF").exists()

    classpath = assemble_classpath(root, descriptor, platform).split(os.pathsep)
    assert classpath == [str(root.library_path(LWJGL)), str(root.version_jar("1.8.9"))]
