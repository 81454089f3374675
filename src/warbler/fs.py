"""Read-only virtual filesystems.

Everything above this module sees files by slash-separated names relative
to the filesystem root (``pages/index.html``), never by OS path.

- ``DirFS`` reads a directory on disk; contents may change while serving.
- ``MapFS`` is an in-memory mapping of name to ``MapFile``; mutable, mostly
  used by tests to drive hot reload.
- ``EmbedFS`` is an immutable snapshot (a directory or package resources
  read once). Viewers precompute ETags for immutable filesystems.
"""

import os
import posixpath
import time
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Protocol, runtime_checkable

type WalkErrorHandler = Callable[[OSError], None]


@dataclass(frozen=True, slots=True)
class FileInfo:
    """Metadata of a regular file."""

    name: str
    size: int
    mod_time: float


@runtime_checkable
class FileSystem(Protocol):
    """Minimal read-only filesystem used by view engines, viewers and the watcher."""

    @property
    def immutable(self) -> bool: ...

    def stat(self, name: str) -> FileInfo: ...

    def read_bytes(self, name: str) -> bytes: ...

    def walk(self, root: str = ".", on_error: WalkErrorHandler | None = None) -> Iterator[FileInfo]: ...


def clean(name: str) -> str:
    """Normalize *name* to a root-relative slash path (``"."`` for the root)."""
    cleaned = posixpath.normpath("/" + name.replace("\\", "/")).lstrip("/")
    return cleaned or "."


def _under(name: str, root: str) -> bool:
    return root == "." or name == root or name.startswith(root + "/")


class DirFS:
    """A directory on disk."""

    __slots__ = ("_root",)

    immutable = False

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def __repr__(self) -> str:
        return f"DirFS({str(self._root)!r})"

    def _path(self, name: str) -> Path:
        name = clean(name)
        return self._root if name == "." else self._root / name

    def stat(self, name: str) -> FileInfo:
        path = self._path(name)
        st = path.stat()
        if not path.is_file():
            raise IsADirectoryError(name)
        return FileInfo(name=clean(name), size=st.st_size, mod_time=st.st_mtime)

    def read_bytes(self, name: str) -> bytes:
        return self._path(name).read_bytes()

    def walk(self, root: str = ".", on_error: WalkErrorHandler | None = None) -> Iterator[FileInfo]:
        """Yield every regular file under *root*, depth-first in name order."""
        root = clean(root)
        top = self._path(root)
        if not top.exists():
            return
        for dirpath, dirnames, filenames in os.walk(top, onerror=on_error):
            dirnames.sort()
            rel = Path(dirpath).relative_to(self._root).as_posix()
            for filename in sorted(filenames):
                name = filename if rel == "." else f"{rel}/{filename}"
                try:
                    yield self.stat(name)
                except OSError as exc:
                    if on_error is None:
                        raise
                    on_error(exc)


@dataclass(slots=True)
class MapFile:
    """A file held in memory."""

    data: bytes = b""
    mod_time: float = field(default_factory=time.time)


class MapFS(dict[str, MapFile]):
    """In-memory filesystem: ``MapFS({"pages/index.html": MapFile(b"...")})``.

    Writing a key with a newer ``mod_time`` is how tests simulate edits.
    """

    immutable = False

    def stat(self, name: str) -> FileInfo:
        name = clean(name)
        try:
            f = self[name]
        except KeyError:
            raise FileNotFoundError(name) from None
        return FileInfo(name=name, size=len(f.data), mod_time=f.mod_time)

    def read_bytes(self, name: str) -> bytes:
        name = clean(name)
        try:
            return self[name].data
        except KeyError:
            raise FileNotFoundError(name) from None

    def walk(self, root: str = ".", on_error: WalkErrorHandler | None = None) -> Iterator[FileInfo]:
        root = clean(root)
        for name in sorted(list(self)):
            if _under(name, root) and name in self:
                yield self.stat(name)


class EmbedFS:
    """An immutable snapshot of files, fixed at construction.

    Build one from a mapping, a directory (``EmbedFS.from_dir``) or package
    data (``EmbedFS.from_package``). Modification times are zero.
    """

    __slots__ = ("_files",)

    immutable = True

    def __init__(self, files: Mapping[str, bytes]) -> None:
        self._files: dict[str, bytes] = {clean(k): bytes(v) for k, v in files.items()}

    @classmethod
    def from_dir(cls, root: str | Path) -> "EmbedFS":
        source = DirFS(root)
        return cls({info.name: source.read_bytes(info.name) for info in source.walk()})

    @classmethod
    def from_package(cls, package: str, directory: str = "") -> "EmbedFS":
        top = resources.files(package)
        if directory:
            top = top.joinpath(directory)
        files: dict[str, bytes] = {}
        pending = [("", top)]
        while pending:
            prefix, node = pending.pop()
            for child in node.iterdir():
                name = f"{prefix}{child.name}"
                if child.is_dir():
                    pending.append((name + "/", child))
                elif child.is_file():
                    files[name] = child.read_bytes()
        return cls(files)

    def stat(self, name: str) -> FileInfo:
        name = clean(name)
        try:
            data = self._files[name]
        except KeyError:
            raise FileNotFoundError(name) from None
        return FileInfo(name=name, size=len(data), mod_time=0.0)

    def read_bytes(self, name: str) -> bytes:
        name = clean(name)
        try:
            return self._files[name]
        except KeyError:
            raise FileNotFoundError(name) from None

    def walk(self, root: str = ".", on_error: WalkErrorHandler | None = None) -> Iterator[FileInfo]:
        root = clean(root)
        for name in sorted(self._files):
            if _under(name, root):
                yield self.stat(name)
