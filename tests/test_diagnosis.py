"""Tests for the integrity checker and the diagnosis report."""

import pytest

from mcinstall.diagnosis import Diagnosis, IntegrityChecker, IssueKind, diagnose


GUAVA = "com/google/guava/guava/21.0/guava-21.0.jar"
GSON = "com/google/code/gson/gson/2.8.0/gson-2.8.0.jar"


@pytest.fixture
def installed(root, write_version, write_library, sha1):
    """A 1.14.4 install whose files are all present and valid."""
    jar = b"client jar"
    guava = b"guava bytes"
    index = b'{"objects": {"minecraft/sounds/a.ogg": {"hash": "%s", "size": 5}}}' % sha1(b"sound").encode()

    write_version("1.14.4", {
        "mainClass": "net.minecraft.client.main.Main",
        "downloads": {"client": {"sha1": sha1(jar), "url": "https://example.invalid/client.jar"}},
        "assetIndex": {"id": "1.14", "sha1": sha1(index)},
        "libraries": [
            {"name": "com.google.guava:guava:21.0",
             "downloads": {"artifact": {"path": GUAVA, "sha1": sha1(guava)}}},
            {"name": "com.google.code.gson:gson:2.8.0",
             "downloads": {"artifact": {"path": GSON, "sha1": ""}}},
            {"name": "ca.weblite:java-objc-bridge:1.0.0",
             "rules": [{"action": "allow", "os": {"name": "osx"}}]},
        ],
    })
    root.version_jar("1.14.4").write_bytes(jar)
    write_library(GUAVA, guava)
    write_library(GSON, b"anything goes")
    index_path = root.asset_index("1.14")
    index_path.parent.mkdir(parents=True)
    index_path.write_bytes(index)
    asset = root.asset_object(sha1(b"sound"))
    asset.parent.mkdir(parents=True)
    asset.write_bytes(b"sound")
    return root


@pytest.mark.asyncio
async def test_intact_version_has_no_issues(installed, platform):
    """Empty issue list is the success signal; osx-only and unknown-checksum libraries pass."""
    report = await diagnose(installed.root, "1.14.4", platform, verify_assets=True)
    assert report.issues == []
    assert report.version == "1.14.4"


@pytest.mark.asyncio
async def test_missing_version_json(root, platform):
    report = await diagnose(root.root, "1.12.2", platform)
    assert [issue.kind for issue in report.issues] == [IssueKind.MISSING_VERSION_JSON]
    assert report.issues[0].entity == "1.12.2"


@pytest.mark.asyncio
async def test_broken_chain_short_circuits(store, write_version):
    write_version("1.12.2-forge", inheritsFrom="1.12.2", libraries=[{"name": "a:b:1"}])
    report = await Diagnosis(store).diagnose("1.12.2-forge")

    assert len(report.issues) == 1
    assert report.issues[0].kind == IssueKind.BROKEN_INHERITANCE_CHAIN
    assert report.issues[0].entity == "1.12.2"


@pytest.mark.asyncio
async def test_cycle_reported_as_broken_chain(store, write_version):
    write_version("a", inheritsFrom="b")
    write_version("b", inheritsFrom="a")
    report = await Diagnosis(store).diagnose("a")
    assert [issue.kind for issue in report.issues] == [IssueKind.BROKEN_INHERITANCE_CHAIN]


@pytest.mark.asyncio
async def test_missing_and_corrupt_artifacts_in_order(installed, store, sha1):
    installed.version_jar("1.14.4").write_bytes(b"tampered")
    installed.library_path(GUAVA).write_bytes(b"tampered")
    installed.library_path(GSON).unlink()
    installed.asset_object(sha1(b"sound")).unlink()

    report = await Diagnosis(store).diagnose("1.14.4")

    assert [issue.kind for issue in report.issues] == [
        IssueKind.CORRUPTED_VERSION_JAR,
        IssueKind.CORRUPTED_LIBRARY,
        IssueKind.MISSING_LIBRARY,
        IssueKind.MISSING_ASSET,
    ]
    corrupted = report.issues[1]
    assert corrupted.entity == "com.google.guava:guava:21.0"
    assert corrupted.expected == sha1(b"guava bytes")
    assert corrupted.actual == sha1(b"tampered")
    assert report.issues[2].library.path == GSON


@pytest.mark.asyncio
async def test_missing_asset_index(installed, store):
    installed.asset_index("1.14").unlink()
    report = await Diagnosis(store).diagnose("1.14.4")
    assert report.of_kind(IssueKind.MISSING_ASSETS_INDEX)[0].entity == "1.14"
    assert not report.of_kind(IssueKind.MISSING_ASSET)


@pytest.mark.asyncio
async def test_library_checks_keep_descriptor_order(store, write_version, platform):
    """Results are recombined by index even with a tiny concurrency limit."""
    write_version("many", libraries=[{"name": f"org.example:lib{i}:1.0"} for i in range(20)])
    descriptor = await store.resolve("many")
    issues = await IntegrityChecker(platform, concurrency=3).check_libraries(store.root, descriptor)

    assert [issue.entity for issue in issues] == [f"org.example:lib{i}:1.0" for i in range(20)]
    assert all(issue.kind == IssueKind.MISSING_LIBRARY for issue in issues)
