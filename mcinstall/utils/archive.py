"""Random-access reading of zip archives (installer jars, modpacks)."""

import json
import shutil
import zipfile
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from ..exceptions import ManifestValidationError


def _normalize(name: str) -> str:
    return name.replace("\\", "/").strip("/")


def safe_join(dest: Path, relative: str) -> Path:
    """Join an archive-supplied path onto ``dest``, refusing anything that lands outside it."""
    base = dest.resolve()
    target = (base / _normalize(relative)).resolve()
    if target != base and base not in target.parents:
        raise ManifestValidationError(f"archive entry {relative} escapes {dest}", [relative])
    return dest / _normalize(relative)


class ZipArchive:
    """Read-only view of a zip file.

    Many archives carry no explicit directory entries, so a directory index is
    derived once on open: every prefix of every entry path is recorded as a
    directory. ``is_directory`` and ``list_dir`` answer from that index.
    """

    def __init__(self, source: Union[str, Path]):
        self.path = Path(source)
        self._zip = zipfile.ZipFile(self.path, "r")
        self._files: Dict[str, zipfile.ZipInfo] = {}
        self._dirs: Dict[str, List[str]] = {"": []}
        self._build_index()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        self._zip.close()

    def _build_index(self):
        for info in self._zip.infolist():
            name = _normalize(info.filename)
            if not name:
                continue
            if info.is_dir():
                self._add_dir(name)
                continue
            self._files[name] = info
            parent, _, _ = name.rpartition("/")
            self._add_dir(parent)
            self._dirs[parent].append(name)

    def _add_dir(self, name: str):
        if name in self._dirs:
            return
        parent, _, _ = name.rpartition("/")
        self._add_dir(parent)
        self._dirs[name] = []
        self._dirs[parent].append(name)

    def entries(self) -> List[str]:
        """All file entry names, in archive order."""
        return list(self._files)

    def exists(self, name: str) -> bool:
        name = _normalize(name)
        return name in self._files or name in self._dirs

    def is_directory(self, name: str) -> bool:
        return _normalize(name) in self._dirs

    def is_file(self, name: str) -> bool:
        return _normalize(name) in self._files

    def list_dir(self, name: str = "") -> List[str]:
        """Immediate children (base names) of a directory, explicit or synthetic."""
        children = self._dirs.get(_normalize(name))
        if children is None:
            raise FileNotFoundError(f"{name} is not a directory in {self.path.name}")
        return sorted(child.rpartition("/")[2] for child in children)

    def walk(self, prefix: str = "") -> Iterator[str]:
        """File entries under ``prefix`` (recursive)."""
        root = _normalize(prefix)
        start = root + "/" if root else ""
        for name in self._files:
            if name.startswith(start):
                yield name

    def read(self, name: str) -> bytes:
        info = self._files.get(_normalize(name))
        if info is None:
            raise FileNotFoundError(f"No entry named {name} in {self.path.name}")
        return self._zip.read(info)

    def read_text(self, name: str, encoding: str = "utf-8") -> str:
        return self.read(name).decode(encoding)

    def read_json(self, name: str) -> Any:
        return json.loads(self.read_text(name))

    def extract(self, name: str, dest: Path) -> Path:
        """Write one file entry to ``dest`` (parents created, existing file replaced)."""
        info = self._files.get(_normalize(name))
        if info is None:
            raise FileNotFoundError(f"No entry named {name} in {self.path.name}")
        dest.parent.mkdir(parents=True, exist_ok=True)
        with self._zip.open(info) as src, open(dest, "wb") as out:
            shutil.copyfileobj(src, out)
        return dest

    def extract_tree(self, prefix: str, dest: Path, exclude: Optional[List[str]] = None) -> List[Path]:
        """Extract every file under ``prefix`` into ``dest`` keeping relative paths."""
        root = _normalize(prefix)
        targets = []
        for name in self.walk(root):
            relative = name[len(root) + 1:] if root else name
            if exclude and any(relative.startswith(e) for e in exclude):
                continue
            targets.append((name, safe_join(dest, relative)))
        # every target is checked before the first write
        return [self.extract(name, target) for name, target in targets]
