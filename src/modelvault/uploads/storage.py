"""Object storage for accepted uploads."""

import hashlib
import os
from pathlib import Path, PurePosixPath
from typing import Protocol

from fastapi.concurrency import run_in_threadpool

from modelvault.uploads.rules import KEY_PREFIXES, SizeClass


class ObjectStore(Protocol):
    """What Modelvault needs from an object store."""

    async def put(self, key: str, data: bytes, content_type: str = "") -> None: ...

    async def get(self, key: str) -> bytes: ...

    async def delete(self, key: str) -> bool: ...

    async def exists(self, key: str) -> bool: ...


def content_key(size_class: SizeClass, data: bytes, extension: str) -> str:
    """Content-addressed key, e.g. ``models/<sha256>.glb``."""
    digest = hashlib.sha256(data).hexdigest()
    return f"{KEY_PREFIXES[SizeClass(size_class)]}/{digest}.{extension}"


class LocalObjectStore:
    """Filesystem-backed store rooted at a single directory.

    File I/O runs in the threadpool so large objects never block the loop.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _path(self, key: str) -> Path:
        rel = PurePosixPath(key)
        if not key or rel.is_absolute() or ".." in rel.parts or "\0" in key:
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root.joinpath(*rel.parts)

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f".{path.name}.{os.urandom(4).hex()}.tmp")
        with tmp.open("wb") as buffer:
            buffer.write(data)
        tmp.replace(path)

    @staticmethod
    def _read(path: Path) -> bytes:
        if not path.is_file():
            raise FileNotFoundError(str(path))
        return path.read_bytes()

    @staticmethod
    def _unlink(path: Path) -> bool:
        if not path.is_file():
            return False
        path.unlink()
        return True

    async def put(self, key: str, data: bytes, content_type: str = "") -> None:
        await run_in_threadpool(self._write, self._path(key), data)

    async def get(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return await run_in_threadpool(self._read, path)
        except FileNotFoundError:
            raise FileNotFoundError(key)

    async def delete(self, key: str) -> bool:
        return await run_in_threadpool(self._unlink, self._path(key))

    async def exists(self, key: str) -> bool:
        return await run_in_threadpool(self._path(key).is_file)
