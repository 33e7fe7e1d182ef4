"""Tests for the Curseforge modpack installer."""

import pytest

from mcinstall.config import InstallerSettings
from mcinstall.exceptions import ManifestValidationError, MultipleError, NetworkError
from mcinstall.modpack import (CurseforgeApiResolver, CurseforgeInstaller, ModpackInstallOptions,
                               ResolvedModFile)

from conftest import FakeDownloader, FakeHttp, sha1_of


class FakeResolver:
    def __init__(self, files):
        self.files = files
        self.resolved = []

    async def resolve(self, project_id, file_id):
        self.resolved.append((project_id, file_id))
        result = self.files[(project_id, file_id)]
        if isinstance(result, Exception):
            raise result
        return result


def mod(name, content):
    return ResolvedModFile(url=f"https://cdn.invalid/{name}", file_name=name, sha1=sha1_of(content),
                           size=len(content))


def manifest(files, **extra):
    data = {
        "manifestType": "minecraftModpack",
        "manifestVersion": 1,
        "name": "Test Pack",
        "version": "1.0",
        "minecraft": {"version": "1.12.2", "modLoaders": [{"id": "forge-14.23.5.2847", "primary": True}]},
        "files": files,
        "overrides": "overrides",
    }
    data.update(extra)
    return data


@pytest.fixture
def pack(make_zip):
    def _pack(files, **extra):
        return make_zip("pack.zip", {
            "manifest.json": manifest(files, **extra),
            "overrides/config/jei.cfg": "enabled=true",
            "overrides/resourcepacks/readme.txt": "hi",
        })
    return _pack


@pytest.mark.asyncio
async def test_install_fetches_mods_and_copies_overrides(pack, tmp_path):
    archive = pack([
        {"projectID": 1, "fileID": 10, "required": True},
        {"projectID": 2, "fileID": 20, "required": False},
    ])
    resolver = FakeResolver({(1, 10): mod("jei.jar", b"jei"), (2, 20): mod("ae2.jar", b"ae2")})
    downloader = FakeDownloader({"https://cdn.invalid/jei.jar": b"jei", "https://cdn.invalid/ae2.jar": b"ae2"})
    dest = tmp_path / "instance"

    report = await CurseforgeInstaller(downloader, resolver).install(archive, dest)

    assert report.manifest.minecraft.version == "1.12.2"
    assert report.installed == [dest / "mods" / "jei.jar", dest / "mods" / "ae2.jar"]
    assert (dest / "mods" / "ae2.jar").read_bytes() == b"ae2"
    assert (dest / "config" / "jei.cfg").read_text() == "enabled=true"
    assert sorted(p.name for p in report.overrides) == ["jei.cfg", "readme.txt"]
    assert report.failures == []


@pytest.mark.asyncio
async def test_optional_failure_is_reported_not_fatal(pack, tmp_path):
    archive = pack([
        {"projectID": 1, "fileID": 10, "required": True},
        {"projectID": 2, "fileID": 20, "required": False},
    ])
    resolver = FakeResolver({(1, 10): mod("jei.jar", b"jei"), (2, 20): mod("gone.jar", b"gone")})
    downloader = FakeDownloader({"https://cdn.invalid/jei.jar": b"jei"})

    report = await CurseforgeInstaller(downloader, resolver).install(archive, tmp_path / "instance")

    assert len(report.failures) == 1
    assert isinstance(report.failures[0], NetworkError)
    assert [p.name for p in report.installed] == ["jei.jar"]
    assert (tmp_path / "instance" / "config" / "jei.cfg").exists()


@pytest.mark.asyncio
async def test_required_failure_cancels_remaining_and_aborts(pack, tmp_path):
    archive = pack([{"projectID": i, "fileID": i * 10, "required": True} for i in range(1, 6)])
    files = {(i, i * 10): mod(f"mod{i}.jar", b"x") for i in range(1, 6)}
    files[(1, 10)] = NetworkError("https://api.invalid/mods/1", "boom", status=500)
    resolver = FakeResolver(files)
    downloader = FakeDownloader({f"https://cdn.invalid/mod{i}.jar": b"x" for i in range(1, 6)})
    dest = tmp_path / "instance"

    with pytest.raises(MultipleError) as info:
        await CurseforgeInstaller(downloader, resolver, concurrency=1).install(archive, dest)

    assert len(info.value.errors) == 1
    assert resolver.resolved == [(1, 10)]
    assert downloader.calls == []
    assert not (dest / "config").exists()


@pytest.mark.asyncio
async def test_required_failure_keeps_files_already_written(pack, tmp_path):
    archive = pack([
        {"projectID": 1, "fileID": 10, "required": True},
        {"projectID": 2, "fileID": 20, "required": True},
    ])
    resolver = FakeResolver({(1, 10): mod("jei.jar", b"jei"), (2, 20): mod("gone.jar", b"gone")})
    downloader = FakeDownloader({"https://cdn.invalid/jei.jar": b"jei"})
    dest = tmp_path / "instance"

    with pytest.raises(MultipleError) as info:
        await CurseforgeInstaller(downloader, resolver, concurrency=1).install(archive, dest)

    assert [type(e) for e in info.value.errors] == [NetworkError]
    assert (dest / "mods" / "jei.jar").read_bytes() == b"jei"
    assert not (dest / "mods" / "gone.jar").exists()
    assert not (dest / "config").exists()


@pytest.mark.asyncio
async def test_overrides_cannot_escape_destination(make_zip, tmp_path, downloader):
    archive = make_zip("evil.zip", {
        "manifest.json": manifest([]),
        "overrides/config/ok.cfg": "ok",
        "overrides/../../escaped.txt": "gotcha",
    })
    dest = tmp_path / "a" / "instance"

    with pytest.raises(ManifestValidationError) as info:
        await CurseforgeInstaller(downloader, FakeResolver({})).install(archive, dest)

    assert info.value.fields == ["../../escaped.txt"]
    assert not (tmp_path / "escaped.txt").exists()
    assert not (dest / "config" / "ok.cfg").exists()


@pytest.mark.asyncio
async def test_skip_existing_avoids_refetch(pack, tmp_path):
    archive = pack([
        {"projectID": 1, "fileID": 10, "required": True},
        {"projectID": 2, "fileID": 20, "required": True},
    ])
    dest = tmp_path / "instance"
    (dest / "mods").mkdir(parents=True)
    (dest / "mods" / "jei.jar").write_bytes(b"jei")
    (dest / "mods" / "ae2.jar").write_bytes(b"stale")
    resolver = FakeResolver({(1, 10): mod("jei.jar", b"jei"), (2, 20): mod("ae2.jar", b"ae2")})
    downloader = FakeDownloader({"https://cdn.invalid/jei.jar": b"jei", "https://cdn.invalid/ae2.jar": b"ae2"})

    report = await CurseforgeInstaller(downloader, resolver).install(archive, dest)

    assert report.skipped == [dest / "mods" / "jei.jar"]
    assert downloader.calls == ["https://cdn.invalid/ae2.jar"]
    assert (dest / "mods" / "ae2.jar").read_bytes() == b"ae2"

    downloader.calls.clear()
    await CurseforgeInstaller(downloader, resolver).install(archive, dest, ModpackInstallOptions(skip_existing=False))
    assert len(downloader.calls) == 2


@pytest.mark.asyncio
async def test_missing_manifest(make_zip, tmp_path, downloader):
    archive = make_zip("empty.zip", {"overrides/a.txt": "a"})
    with pytest.raises(ManifestValidationError) as info:
        await CurseforgeInstaller(downloader, FakeResolver({})).install(archive, tmp_path / "instance")
    assert info.value.fields == ["manifest.json"]


@pytest.mark.asyncio
async def test_invalid_manifest_lists_fields(make_zip, tmp_path, downloader):
    data = manifest([{"projectID": "not a number", "fileID": 1, "required": True}])
    del data["manifestVersion"]
    archive = make_zip("bad.zip", {"manifest.json": data})

    with pytest.raises(ManifestValidationError) as info:
        await CurseforgeInstaller(downloader, FakeResolver({})).install(archive, tmp_path / "instance")
    assert "manifestVersion" in info.value.fields
    assert "files.0.projectID" in info.value.fields


@pytest.mark.asyncio
async def test_api_resolver_falls_back_to_cdn():
    http = FakeHttp({
        "https://api.invalid/v1/mods/238222/files/2724420": {"data": {
            "id": 2724420,
            "fileName": "jei_1.12.2-4.15.0.268.jar",
            "downloadUrl": None,
            "fileLength": 1000,
            "hashes": [{"value": "a" * 40, "algo": 1}, {"value": "b" * 32, "algo": 2}],
        }},
    })
    settings = InstallerSettings(curseforge_api_url="https://api.invalid/", curseforge_api_key="secret")

    resolved = await CurseforgeApiResolver(http, settings).resolve(238222, 2724420)

    assert resolved.url == "https://edge.forgecdn.net/files/2724/420/jei_1.12.2-4.15.0.268.jar"
    assert resolved.sha1 == "a" * 40
    assert resolved.checksum.algorithm == "sha1"
    assert http.requests[0][1]["x-api-key"] == "secret"


@pytest.mark.asyncio
async def test_manifest_without_files_is_rejected(make_zip, tmp_path, downloader):
    data = manifest([])
    del data["files"]
    archive = make_zip("nofiles.zip", {"manifest.json": data})

    with pytest.raises(ManifestValidationError) as info:
        await CurseforgeInstaller(downloader, FakeResolver({})).install(archive, tmp_path / "instance")
    assert info.value.fields == ["files"]


@pytest.mark.asyncio
async def test_file_entry_without_required_flag_is_rejected(make_zip, tmp_path, downloader):
    archive = make_zip("noflag.zip", {"manifest.json": manifest([{"projectID": 1, "fileID": 10}])})
    resolver = FakeResolver({})

    with pytest.raises(ManifestValidationError) as info:
        await CurseforgeInstaller(downloader, resolver).install(archive, tmp_path / "instance")
    assert info.value.fields == ["files.0.required"]
    assert resolver.resolved == []
