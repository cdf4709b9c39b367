"""Readers that expose the entries of container formats.

Readers are registered per container type (``ZIP``, ``OLE2``) so the container
matcher can stay agnostic of archive libraries. The registry keeps insertion
order and rejects a second factory for the same type, mirroring how format
plugins are registered.
"""

from __future__ import annotations

import logging
import zipfile
import zlib
from typing import BinaryIO, Callable, Dict, Optional, Protocol, Tuple

import olefile

logger = logging.getLogger(__name__)


class ContainerFormatError(Exception):
    """The stream is not a readable container of the expected type."""


class ContainerReader(Protocol):
    container_type: str

    def exists(self, path: str) -> bool:
        ...

    def read(self, path: str, limit: int = -1) -> bytes:
        ...

    def close(self) -> None:
        ...


ReaderFactory = Callable[[BinaryIO], ContainerReader]

_READERS: Dict[str, ReaderFactory] = {}


def register_container_reader(container_type: str, factory: ReaderFactory) -> None:
    """Register ``factory`` for ``container_type`` (case-insensitive)."""

    key = container_type.upper()
    existing = _READERS.get(key)
    if existing is factory:
        return
    if existing is not None:
        raise ValueError(f"A container reader for {key!r} is already registered: {existing!r}")
    _READERS[key] = factory


def get_container_reader(container_type: str) -> Optional[ReaderFactory]:
    return _READERS.get(container_type.upper())


def registered_container_types() -> Tuple[str, ...]:
    return tuple(_READERS)


class ZipContainerReader:
    container_type = "ZIP"

    _READ_ERRORS = (zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError, EOFError, ValueError)

    def __init__(self, stream: BinaryIO) -> None:
        try:
            self._zip = zipfile.ZipFile(stream)
        except (zipfile.BadZipFile, EOFError, ValueError, NotImplementedError) as exc:
            raise ContainerFormatError(f"not a readable zip archive: {exc}") from exc
        self._names = {info.filename.lstrip("/"): info for info in self._zip.infolist()}

    def exists(self, path: str) -> bool:
        path = path.lstrip("/")
        if path in self._names:
            return True
        if path.endswith("/"):
            return any(name.startswith(path) for name in self._names)
        return False

    def read(self, path: str, limit: int = -1) -> bytes:
        info = self._names.get(path.lstrip("/"))
        if info is None:
            return b""
        try:
            with self._zip.open(info) as handle:
                return handle.read(limit if limit > 0 else -1)
        except self._READ_ERRORS as exc:
            raise ContainerFormatError(f"unable to read zip entry {path!r}: {exc}") from exc

    def close(self) -> None:
        self._zip.close()


class Ole2ContainerReader:
    container_type = "OLE2"

    def __init__(self, stream: BinaryIO) -> None:
        try:
            self._ole = olefile.OleFileIO(stream)
        except (OSError, ValueError) as exc:
            # olefile reports structural problems as OSError.
            raise ContainerFormatError(f"not a readable OLE2 document: {exc}") from exc

    def exists(self, path: str) -> bool:
        return bool(self._ole.exists(path))

    def read(self, path: str, limit: int = -1) -> bytes:
        try:
            with self._ole.openstream(path) as handle:
                return handle.read(limit if limit > 0 else -1)
        except (OSError, ValueError) as exc:
            raise ContainerFormatError(f"unable to read OLE2 stream {path!r}: {exc}") from exc

    def close(self) -> None:
        self._ole.close()


register_container_reader(ZipContainerReader.container_type, ZipContainerReader)
register_container_reader(Ole2ContainerReader.container_type, Ole2ContainerReader)
