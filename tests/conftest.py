"""Shared fakes for the collaborator interfaces."""

import hashlib
import json
import zipfile
from pathlib import Path

import pytest

from mcinstall.core.folder import MinecraftFolder
from mcinstall.exceptions import ChecksumMismatch, NetworkError
from mcinstall.versions.rules import Platform
from mcinstall.versions.store import VersionStore


class FakeDownloader:
    """Serves bytes from a url map and records every fetch."""

    def __init__(self, files=None):
        self.files = dict(files or {})
        self.calls = []

    async def fetch(self, url, dest, checksum=None):
        self.calls.append(url)
        if url not in self.files:
            raise NetworkError(url, "Not Found", status=404)
        content = self.files[url]
        if checksum is not None and checksum.known:
            actual = hashlib.new(checksum.algorithm, content).hexdigest()
            if actual != checksum.hexdigest.lower():
                raise ChecksumMismatch(dest, checksum.algorithm, checksum.hexdigest, actual)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(content)


class FakeHttp:
    def __init__(self, documents=None):
        self.documents = dict(documents or {})
        self.requests = []

    async def get(self, url, headers=None):
        self.requests.append((url, headers))
        if url not in self.documents:
            raise NetworkError(url, "Not Found", status=404)
        return self.documents[url]


class FakeRunner:
    """Records invocations; ``on_run`` may create outputs before the exit code is returned."""

    def __init__(self, exit_code=0, on_run=None):
        self.exit_code = exit_code
        self.on_run = on_run
        self.calls = []

    async def run(self, executable, args, cwd=None):
        self.calls.append((executable, list(args)))
        if self.on_run:
            self.on_run(list(args))
        return self.exit_code


def sha1_of(content: bytes) -> str:
    return hashlib.sha1(content).hexdigest()


def build_zip(path: Path, entries: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in entries.items():
            if isinstance(content, (dict, list)):
                content = json.dumps(content)
            zf.writestr(name, content)
    return path


def write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


async def assert_layered_on(store, version_id, base_id):
    """An installed descriptor resolves as its base plus its own entries.

    Library coordinates compare as a set, argument templates in order.
    """
    leaf = await store.read(version_id)
    base = await store.resolve(base_id)
    descriptor = await store.resolve(version_id)

    assert descriptor.inheritances == (version_id, *base.inheritances)
    assert {lib.name for lib in descriptor.libraries} == \
        {lib.name for lib in base.libraries} | {lib.name for lib in leaf.libraries or []}

    own_game = list(leaf.arguments.game or []) if leaf.arguments else []
    own_jvm = list(leaf.arguments.jvm or []) if leaf.arguments else []
    if leaf.minecraftArguments is not None:
        assert list(descriptor.game_arguments) == leaf.minecraftArguments.split() + own_game
    else:
        assert list(descriptor.game_arguments) == [*base.game_arguments, *own_game]
    assert list(descriptor.jvm_arguments) == [*base.jvm_arguments, *own_jvm]
    return descriptor


@pytest.fixture
def platform():
    return Platform(name="linux", arch="x86_64", version="6.1")


@pytest.fixture
def root(tmp_path):
    return MinecraftFolder(tmp_path / ".minecraft")


@pytest.fixture
def store(root, platform):
    return VersionStore(root, platform)


@pytest.fixture
def write_version(root):
    def _write(version_id, data=None, **fields):
        data = dict(data or {}, **fields)
        data.setdefault("id", version_id)
        return write_json(root.version_json(version_id), data)
    return _write


@pytest.fixture
def write_library(root):
    def _write(relative_path, content=b"jar"):
        path = root.library_path(relative_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path
    return _write


@pytest.fixture
def make_zip(tmp_path):
    def _make(name, entries):
        return build_zip(tmp_path / name, entries)
    return _make


@pytest.fixture
def downloader():
    return FakeDownloader()


@pytest.fixture
def sha1():
    return sha1_of
